import threading

import pytest
import requests
from docker.errors import APIError, ImageNotFound

from socrates.config import SandboxConfig
from socrates.sandbox.workspace import WorkspaceManager


def api_error(status_code: int, message: str = "api error") -> APIError:
    response = requests.Response()
    response.status_code = status_code
    return APIError(message, response=response)


class FakeContainer:
    """Stands in for ``docker.models.containers.Container``."""

    def __init__(self, create_kwargs, logs=b"", status_code=0, hang=False,
                 kill_error=None, remove_error=None, status_after_run="exited"):
        self.id = "c0ffee"
        self.create_kwargs = create_kwargs
        self.status = "created"
        self.started = False
        self.killed = False
        self.removed = False
        self.wait_kwargs = None
        self._logs = logs
        self._status_code = status_code
        self._hang = hang
        self._kill_error = kill_error
        self._remove_error = remove_error
        self._status_after_run = status_after_run
        self._released = threading.Event()

    def start(self):
        self.started = True
        self.status = "running"

    def wait(self, **kwargs):
        self.wait_kwargs = kwargs
        if self._hang:
            self._released.wait(5)
        self.status = self._status_after_run
        return {"StatusCode": self._status_code, "Error": None}

    def logs(self, **kwargs):
        if self._hang:
            self._released.wait(5)
        return iter([self._logs])

    def kill(self):
        self.killed = True
        self._released.set()
        if self._kill_error:
            raise self._kill_error

    def reload(self):
        pass

    def remove(self, force=False):
        if self._remove_error:
            raise self._remove_error
        self.removed = True


class FakeImages:

    def __init__(self, present=True, pull_error=None):
        self.present = present
        self.pull_error = pull_error
        self.get_calls = 0
        self.pulled = []

    def get(self, name):
        self.get_calls += 1
        if not self.present:
            raise ImageNotFound(f"No such image: {name}")
        return object()

    def pull(self, name):
        if self.pull_error:
            raise self.pull_error
        self.pulled.append(name)
        self.present = True


class FakeContainers:

    def __init__(self, client):
        self._client = client
        self.created = []

    def create(self, **kwargs):
        container = FakeContainer(kwargs, **self._client.container_options)
        self.created.append(container)
        return container


class FakeDockerClient:
    """Minimal ``docker.DockerClient`` replacement."""

    def __init__(self, image_present=True, pull_error=None, **container_options):
        self.images = FakeImages(present=image_present, pull_error=pull_error)
        self.containers = FakeContainers(self)
        self.container_options = container_options
        self.closed = False

    def ping(self):
        return True

    def close(self):
        self.closed = True

    @property
    def last_container(self) -> FakeContainer:
        return self.containers.created[-1]


@pytest.fixture
def sandbox_config(tmp_path):
    return SandboxConfig(
        workspace_root=tmp_path / "workspaces",
        compile_timeout=0.1,
        run_timeout=0.1,
    )


@pytest.fixture
def workspaces(sandbox_config):
    return WorkspaceManager(sandbox_config.workspace_root)


@pytest.fixture
def fake_docker():
    """Factory for fake clients: ``fake_docker(logs=b"...", status_code=1)``."""
    return FakeDockerClient


@pytest.fixture
def make_api_error():
    return api_error
