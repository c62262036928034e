"""
Docker-based sandbox manager for C++ compilation and execution.

Lifecycle per execution:
  1. Make sure the compiler image is present (pulled once per manager)
  2. Create an ephemeral container with the workspace mounted read-only
  3. Start it and follow its combined log stream
  4. Wait for exit, bounded by compile_timeout + run_timeout
  5. Demultiplex the captured logs into an ``ExecutionResult``
  6. Remove the container (auto-remove usually beats us to it)

All Docker SDK calls are synchronous and wrapped with ``asyncio.to_thread``
to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import docker
import requests
from docker.errors import APIError, DockerException, ImageNotFound, NotFound
from structlog import get_logger

from socrates.sandbox.demux import demultiplex
from socrates.sandbox.errors import DockerUnavailable, ExecutionTimeout
from socrates.sandbox.models import ExecutionResult, Workspace
from socrates.sandbox.script import TIMEOUT_EXIT_CODE, render_script

if TYPE_CHECKING:
    from socrates.config import SandboxConfig

logger = get_logger()

TIMEOUT_MESSAGE = "Execution timed out. Your program took too long to run."
LOG_DRAIN_TIMEOUT = 5.0

# Removal races with auto-remove: 404 = already gone, 409 = removal in progress.
_REMOVAL_RACE_STATUSES = {404, 409}

_INFRA_ERRORS = (DockerException, requests.exceptions.RequestException)


class DockerSandboxManager:
    """
    Runs the build script for one workspace inside a throw-away container.

    The Docker client is an owned handle: pass one in (tests use a fake),
    or let ``initialize()`` create one from the environment.
    """

    def __init__(
        self,
        config: "SandboxConfig",
        client: docker.DockerClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None
        self._image_ready = False
        self._image_lock = asyncio.Lock()
        self._script = render_script(config)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect to the Docker daemon and make sure the image exists."""
        if self._client is None:
            try:
                self._client = await asyncio.to_thread(self._connect)
                await asyncio.to_thread(self._client.ping)
                logger.info("Docker daemon connected")
            except _INFRA_ERRORS as exc:
                self._client = None
                logger.error("Cannot connect to Docker", error=str(exc))
                raise DockerUnavailable(
                    "Docker is not available. Install and start Docker to enable code execution."
                ) from exc

        await self.ensure_image()

    async def shutdown(self) -> None:
        """Release Docker client resources."""
        if self._client and self._owns_client:
            await asyncio.to_thread(self._client.close)
            self._client = None
            self._image_ready = False
            logger.info("Docker sandbox manager shut down")

    def _connect(self) -> docker.DockerClient:
        if self._config.docker_base_url:
            return docker.DockerClient(base_url=self._config.docker_base_url)
        return docker.from_env()

    # ------------------------------------------------------------------
    # Image management
    # ------------------------------------------------------------------

    async def ensure_image(self) -> None:
        """Pull the compiler image unless an earlier call already found it."""
        if self._image_ready:
            return
        async with self._image_lock:
            if self._image_ready:
                return
            client = self._require_client()
            image = self._config.image_name
            try:
                await asyncio.to_thread(client.images.get, image)
                logger.info("Sandbox image found", image=image)
            except ImageNotFound:
                logger.info("Sandbox image not found, pulling", image=image)
                try:
                    await asyncio.to_thread(client.images.pull, image)
                except _INFRA_ERRORS as exc:
                    raise DockerUnavailable(f"Failed to pull image {image}: {exc}") from exc
                logger.info("Sandbox image pulled", image=image)
            except _INFRA_ERRORS as exc:
                raise DockerUnavailable(f"Failed to inspect image {image}: {exc}") from exc
            self._image_ready = True

    def _require_client(self) -> docker.DockerClient:
        if self._client is None:
            raise DockerUnavailable("Sandbox not initialized. Call initialize() first.")
        return self._client

    # ------------------------------------------------------------------
    # Code execution
    # ------------------------------------------------------------------

    async def run(self, workspace: Workspace) -> ExecutionResult:
        """Compile and run ``workspace/main.cpp`` inside an ephemeral container."""
        if self._client is None:
            await self.initialize()
        else:
            await self.ensure_image()

        container = None
        start_time = time.monotonic()

        try:
            # --- create & start -------------------------------------------
            container = await asyncio.to_thread(self._create_container, workspace)
            await asyncio.to_thread(container.start)
            logs_task = asyncio.create_task(
                asyncio.to_thread(self._collect_logs, container)
            )

            # --- wait -----------------------------------------------------
            try:
                status_code = await self._wait(container)
            except ExecutionTimeout:
                partial = await self._drain_logs(logs_task)
                result = demultiplex(partial, TIMEOUT_EXIT_CODE)
                logger.warning(
                    "Execution timed out",
                    container_id=container.id,
                    timeout=self._config.total_timeout,
                )
                return ExecutionResult(
                    output=result.output,
                    errors=TIMEOUT_MESSAGE,
                    exit_code=TIMEOUT_EXIT_CODE,
                    execution_time=time.monotonic() - start_time,
                )

            # --- capture output -------------------------------------------
            raw_logs = await self._drain_logs(logs_task)
            result = demultiplex(
                raw_logs,
                fallback_exit_code=status_code,
                execution_time=time.monotonic() - start_time,
            )
            logger.debug(
                "Container finished",
                container_id=container.id,
                exit_code=result.exit_code,
                duration=f"{result.execution_time:.2f}s",
            )
            return result

        except _INFRA_ERRORS as exc:
            logger.error("Sandbox execution error", error=str(exc))
            raise DockerUnavailable(f"Sandbox error: {exc}") from exc
        finally:
            if container is not None:
                await self._safe_remove(container)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create_container(self, workspace: Workspace):  # noqa: ANN202
        """Create (but don't start) the sandbox container."""
        client = self._require_client()
        config = self._config
        return client.containers.create(
            image=config.image_name,
            command=["sh", "-c", self._script],
            working_dir=config.container_workdir,
            detach=True,
            # Source is read-only; the binary goes to binary_path in the container fs
            volumes={
                str(workspace.path): {"bind": config.container_workdir, "mode": "ro"},
            },
            # Resource limits
            mem_limit=config.memory_limit,
            memswap_limit=config.memswap_limit,
            cpu_period=config.cpu_period,
            cpu_quota=config.cpu_quota,
            # Network isolation
            network_disabled=True,
            network_mode="none",
            auto_remove=True,
            tty=False,
            stdin_open=False,
        )

    async def _wait(self, container) -> int:  # noqa: ANN001
        """Wait for the container to stop; kill it and raise on timeout."""
        try:
            exit_info = await asyncio.wait_for(
                asyncio.to_thread(
                    container.wait,
                    condition="not-running",
                    # HTTP read timeout; the client default is 60s
                    timeout=self._config.total_timeout + LOG_DRAIN_TIMEOUT,
                ),
                timeout=self._config.total_timeout,
            )
        except asyncio.TimeoutError:
            await self._safe_kill(container)
            raise ExecutionTimeout(
                f"Execution exceeded {self._config.total_timeout:g}s"
            ) from None
        return exit_info.get("StatusCode", 0)

    @staticmethod
    def _collect_logs(container) -> bytes:  # noqa: ANN001
        """Follow stdout+stderr until the container stops."""
        try:
            stream = container.logs(stdout=True, stderr=True, stream=True, follow=True)
            return b"".join(stream)
        except NotFound:
            logger.warning("Container gone before logs were read", container_id=container.id)
        except _INFRA_ERRORS as exc:
            logger.error("Failed to read container logs", container_id=container.id, error=str(exc))
        return b""

    @staticmethod
    async def _drain_logs(logs_task: asyncio.Task) -> bytes:
        """Await the log follower; it ends once the container has stopped."""
        try:
            return await asyncio.wait_for(logs_task, timeout=LOG_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Log stream did not close after container stopped")
            return b""

    @staticmethod
    async def _safe_kill(container) -> None:  # noqa: ANN001
        try:
            await asyncio.to_thread(container.kill)
        except _INFRA_ERRORS as exc:
            # usually the container exited between the timeout and the kill
            logger.debug("Kill failed", container_id=container.id, error=str(exc))

    @staticmethod
    async def _safe_remove(container) -> None:  # noqa: ANN001
        try:
            await asyncio.to_thread(container.reload)
            if container.status != "removing":
                await asyncio.to_thread(container.remove, force=True)
        except APIError as exc:
            if not isinstance(exc, NotFound) and exc.status_code not in _REMOVAL_RACE_STATUSES:
                logger.error("Failed to remove container", container_id=container.id, error=str(exc))
        except _INFRA_ERRORS as exc:
            logger.error("Failed to remove container", container_id=container.id, error=str(exc))
