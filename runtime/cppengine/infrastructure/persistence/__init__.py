"""
Persistence Module

Per-request workspace directories.
"""

from .workspace import WorkspaceManager, remove_tree

__all__ = ["WorkspaceManager", "remove_tree"]
