"""
Session workspaces.

Creates one private directory per request and guarantees its recursive
removal when the request finishes, fails or is cancelled.
"""

import os
import secrets
import shutil
import stat
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from cppengine.domain.entities import Session
from cppengine.domain.errors import WorkspaceError
from cppengine.domain.ports import IWorkspacePort
from cppengine.infrastructure.logging.logging_config import get_logger


logger = get_logger(__name__)


def _make_writable(path: Path) -> None:
    """Restore owner permissions a program may have removed from its tree."""
    for root, dirs, _ in os.walk(path):
        for name in dirs:
            try:
                os.chmod(os.path.join(root, name), stat.S_IRWXU)
            except OSError:
                continue


def remove_tree(path: Path) -> bool:
    """
    Recursively delete a workspace.

    Returns:
        True if the directory no longer exists
    """
    if not path.exists():
        return True
    try:
        shutil.rmtree(path)
    except OSError:
        try:
            os.chmod(path, stat.S_IRWXU)
        except OSError:
            pass
        _make_writable(path)
        shutil.rmtree(path, ignore_errors=True)
    return not path.exists()


class WorkspaceManager(IWorkspacePort):
    """
    Manages session workspaces under a root directory.

    Workspace names are derived from an unguessable token and created with
    owner-only permissions.
    """

    def __init__(self, root: Optional[Path] = None):
        """
        Initialize the manager.

        Args:
            root: Parent of all workspaces, the system temp directory when None
        """
        self.root = Path(root) if root else Path(tempfile.gettempdir())

    def _create(self, request_id: str) -> Session:
        session_id = secrets.token_hex(16)
        workspace = self.root / f"cppengine-{session_id}"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            workspace.mkdir(mode=0o700)
        except OSError as e:
            raise WorkspaceError(
                "Cannot create session workspace",
                {"reason": e.strerror or str(e)},
            ) from e
        return Session(session_id=session_id, workspace=workspace, request_id=request_id)

    @asynccontextmanager
    async def session(self, request_id: str) -> AsyncIterator[Session]:
        """
        Open a session whose workspace is removed on every exit path.

        Args:
            request_id: Identifier of the owning request

        Yields:
            The new Session

        Raises:
            WorkspaceError: If the workspace cannot be created
        """
        session = self._create(request_id)
        logger.debug("Session opened", request_id=request_id)
        try:
            yield session
        finally:
            if remove_tree(session.workspace):
                logger.debug("Session closed", request_id=request_id)
            else:
                logger.error("Session workspace could not be removed", request_id=request_id)

    def stage(self, directory: Path, filename: str, content: str) -> Path:
        """
        Write source text verbatim into a workspace directory.

        Raises:
            WorkspaceError: If the file cannot be written
        """
        if "/" in filename or filename.startswith("."):
            raise WorkspaceError("Invalid source file name", {"filename": filename})
        target = directory / filename
        try:
            with open(target, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)
        except OSError as e:
            raise WorkspaceError("Cannot stage source", {"reason": e.strerror or str(e)}) from e
        return target
