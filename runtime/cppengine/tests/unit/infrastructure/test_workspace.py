"""
Unit tests for session workspaces.
"""

import asyncio

import pytest

from cppengine.domain.errors import WorkspaceError
from cppengine.infrastructure.persistence import WorkspaceManager


pytestmark = pytest.mark.unit


@pytest.fixture
def manager(tmp_path):
    return WorkspaceManager(root=tmp_path / "sessions")


class TestWorkspaceManager:
    """Tests for WorkspaceManager."""

    @pytest.mark.asyncio
    async def test_workspace_private_and_removed(self, manager):
        async with manager.session("req-1") as session:
            workspace = session.workspace
            assert workspace.is_dir()
            assert (workspace.stat().st_mode & 0o077) == 0
            (workspace / "build").mkdir()
            (workspace / "build" / "main").write_bytes(b"\x7fELF")
        assert not workspace.exists()

    @pytest.mark.asyncio
    async def test_sessions_are_distinct(self, manager):
        async with manager.session("a") as first, manager.session("b") as second:
            assert first.workspace != second.workspace
            assert first.session_id != second.session_id

    @pytest.mark.asyncio
    async def test_removed_on_exception(self, manager):
        seen = {}
        with pytest.raises(RuntimeError):
            async with manager.session("req-1") as session:
                seen["path"] = session.workspace
                raise RuntimeError("boom")
        assert not seen["path"].exists()

    @pytest.mark.asyncio
    async def test_removed_on_cancellation(self, manager):
        entered = asyncio.Event()
        seen = {}

        async def hold():
            async with manager.session("req-1") as session:
                seen["path"] = session.workspace
                entered.set()
                await asyncio.sleep(60)

        task = asyncio.create_task(hold())
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not seen["path"].exists()

    @pytest.mark.asyncio
    async def test_removed_when_program_drops_permissions(self, manager):
        async with manager.session("req-1") as session:
            locked = session.workspace / "locked"
            locked.mkdir()
            (locked / "file").write_text("x")
            locked.chmod(0o500)
            workspace = session.workspace
        assert not workspace.exists()

    @pytest.mark.asyncio
    async def test_unwritable_root(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        manager = WorkspaceManager(root=blocker / "sessions")
        with pytest.raises(WorkspaceError):
            async with manager.session("req-1"):
                pass


class TestStage:
    """Tests for staging source text."""

    def test_content_written_verbatim(self, manager, tmp_path):
        code = "int main() {\r\n  return 0; // ünïcode\r\n}"
        path = manager.stage(tmp_path, "main.cpp", code)
        assert path.read_bytes() == code.encode("utf-8")

    @pytest.mark.parametrize("name", ["../main.cpp", ".hidden.c", "dir/main.c"])
    def test_invalid_names(self, manager, tmp_path, name):
        with pytest.raises(WorkspaceError):
            manager.stage(tmp_path, name, "int main(){}")
