"""
Per-request scratch directories.

Every execution gets its own uuid-named directory, so concurrent requests
never share files. Removal is best-effort: a failed cleanup is logged and
never fails the request that triggered it.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from uuid import uuid4

from structlog import get_logger

from socrates.sandbox.errors import CodeTooLarge
from socrates.sandbox.models import Workspace

logger = get_logger()

DEFAULT_MAX_CODE_SIZE = 10 * 1024


def validate_size(content: str, max_bytes: int = DEFAULT_MAX_CODE_SIZE) -> None:
    """Raise ``CodeTooLarge`` when the UTF-8 payload exceeds ``max_bytes``."""
    size = len(content.encode("utf-8"))
    if size > max_bytes:
        raise CodeTooLarge(size, max_bytes)


class WorkspaceManager:
    """Allocates and destroys workspaces under a root directory."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def create(self) -> Workspace:
        self._root.mkdir(parents=True, exist_ok=True)
        workspace_id = uuid4().hex
        path = (self._root / workspace_id).resolve()
        path.mkdir()
        logger.debug("Workspace created", workspace=workspace_id)
        return Workspace(id=workspace_id, path=path)

    def write(self, workspace: Workspace, relative_path: str, content: str) -> Path:
        """Write ``content`` to a file inside the workspace and return its path."""
        target = (workspace.path / relative_path).resolve()
        if not target.is_relative_to(workspace.path):
            raise ValueError(f"Path escapes workspace: {relative_path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def destroy(self, workspace: Workspace) -> None:
        try:
            shutil.rmtree(workspace.path)
            logger.debug("Workspace removed", workspace=workspace.id)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error(
                "Failed to clean up workspace",
                workspace=workspace.id,
                path=str(workspace.path),
                error=str(exc),
            )

    @contextmanager
    def session(self) -> Iterator[Workspace]:
        """Create a workspace and destroy it however the block exits."""
        workspace = self.create()
        try:
            yield workspace
        finally:
            self.destroy(workspace)
