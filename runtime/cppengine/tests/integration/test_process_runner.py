"""
Integration tests for the bounded process runner.

These spawn real processes without Bubblewrap so they run on any POSIX
host with /bin/sh.
"""

import pytest

from cppengine.domain.value_objects import ResourceLimit, SpawnFailure
from cppengine.infrastructure.isolation import BoundedProcessRunner


pytestmark = pytest.mark.integration


@pytest.fixture
def runner():
    return BoundedProcessRunner(bwrap_path=None)


@pytest.fixture
def limits():
    return ResourceLimit(timeout_seconds=5, max_memory_mb=None)


class TestBoundedProcessRunner:
    """Tests for BoundedProcessRunner."""

    @pytest.mark.asyncio
    async def test_stdin_round_trip(self, runner, limits, tmp_path):
        result = await runner.run(["cat"], tmp_path, limits, stdin="3 4\n")
        assert result.exit_code == 0
        assert result.stdout == "3 4\n"
        assert not result.truncated

    @pytest.mark.asyncio
    async def test_no_stdin_reads_eof(self, runner, limits, tmp_path):
        result = await runner.run(["cat"], tmp_path, limits)
        assert result.exit_code == 0
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_exit_code_and_stderr(self, runner, limits, tmp_path):
        result = await runner.run(["sh", "-c", "echo oops >&2; exit 3"], tmp_path, limits)
        assert result.exit_code == 3
        assert result.stderr == "oops\n"

    @pytest.mark.asyncio
    async def test_memory_text_on_stderr_keeps_exit_code(self, runner, tmp_path):
        limits = ResourceLimit(timeout_seconds=5, max_memory_mb=256)
        script = "echo 'error: out of memory in my queue, std::bad_alloc' >&2; exit 3"
        result = await runner.run(["sh", "-c", script], tmp_path, limits)
        assert result.exit_code == 3
        assert not result.memory_exceeded
        assert not result.killed

    @pytest.mark.asyncio
    async def test_abort_on_bad_alloc_flags_memory(self, runner, tmp_path):
        limits = ResourceLimit(timeout_seconds=5, max_memory_mb=256)
        script = "echo 'terminate called after throwing an instance of std::bad_alloc' >&2; kill -ABRT $$"
        result = await runner.run(["sh", "-c", script], tmp_path, limits)
        assert result.memory_exceeded
        assert not result.timed_out
        assert result.exit_code == 134

    @pytest.mark.asyncio
    async def test_signal_death(self, runner, limits, tmp_path):
        result = await runner.run(["sh", "-c", "kill -SEGV $$"], tmp_path, limits)
        assert result.exit_code == 139
        assert not result.killed

    @pytest.mark.asyncio
    async def test_timeout_kills_process_ignoring_sigterm(self, runner, tmp_path):
        limits = ResourceLimit(timeout_seconds=0.5, max_memory_mb=None)
        result = await runner.run(["sh", "-c", "trap '' TERM; while :; do :; done"], tmp_path, limits)
        assert result.timed_out
        assert result.exit_code == -1
        assert result.duration_ms < 5000

    @pytest.mark.asyncio
    async def test_timeout_kills_descendants(self, runner, tmp_path):
        limits = ResourceLimit(timeout_seconds=0.5, max_memory_mb=None)
        result = await runner.run(["sh", "-c", "sleep 30 & sleep 30"], tmp_path, limits)
        assert result.timed_out
        assert result.duration_ms < 5000

    @pytest.mark.asyncio
    async def test_output_truncated(self, runner, tmp_path):
        limits = ResourceLimit(timeout_seconds=5, max_memory_mb=None, max_output_bytes=1000)
        result = await runner.run(["sh", "-c", "yes x | head -c 100000"], tmp_path, limits)
        assert result.exit_code == 0
        assert result.stdout_truncated
        assert len(result.stdout) == 1000

    @pytest.mark.asyncio
    async def test_program_not_found(self, runner, limits, tmp_path):
        result = await runner.run(["definitely-not-a-real-program"], tmp_path, limits)
        assert result.exit_code == 127
        assert result.spawn_error == SpawnFailure.NOT_FOUND
        assert result.error

    @pytest.mark.asyncio
    async def test_relative_binary_missing(self, runner, limits, tmp_path):
        result = await runner.run(["./main"], tmp_path, limits)
        assert result.spawn_error == SpawnFailure.NOT_FOUND

    @pytest.mark.asyncio
    async def test_binary_not_executable(self, runner, limits, tmp_path):
        binary = tmp_path / "main"
        binary.write_text("not a program")
        binary.chmod(0o644)
        result = await runner.run(["./main"], tmp_path, limits)
        assert result.spawn_error == SpawnFailure.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_environment_scrubbed(self, runner, limits, tmp_path, monkeypatch):
        monkeypatch.setenv("SECRET_TOKEN", "hunter2")
        result = await runner.run(["sh", "-c", "echo \"$SECRET_TOKEN|$HOME\""], tmp_path, limits)
        assert result.stdout == f"|{tmp_path}\n"
