"""
Workspace Port Interface

Defines the contract for per-request workspace sessions.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncContextManager

from cppengine.domain.entities import Session


class IWorkspacePort(ABC):
    """Port interface for creating and destroying session workspaces."""

    @abstractmethod
    def session(self, request_id: str) -> AsyncContextManager[Session]:
        """
        Open a session whose workspace is removed when the context exits.

        Args:
            request_id: Identifier of the owning request

        Returns:
            Async context manager yielding the Session

        Raises:
            WorkspaceError: If the workspace cannot be created
        """
        pass

    @abstractmethod
    def stage(self, directory: Path, filename: str, content: str) -> Path:
        """
        Write source text verbatim into a workspace directory.

        Raises:
            WorkspaceError: If the file cannot be written
        """
        pass
