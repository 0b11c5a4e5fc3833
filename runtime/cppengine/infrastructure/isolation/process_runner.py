"""
Bounded Process Runner

Runs one external program from an argument vector under a wall-clock
timeout, a memory ceiling and a captured-output ceiling. The process gets
its own session so the whole group can be killed, and is optionally
confined with Bubblewrap.
"""

import asyncio
import errno
import os
import shutil
import signal
import time
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import psutil
import structlog

from cppengine.domain.ports.process_runner_port import IProcessRunnerPort
from cppengine.domain.value_objects import ProcessResult, ResourceLimit, SpawnFailure
from cppengine.infrastructure.isolation.bwrap import SANDBOX_PATH, build_bwrap_prefix
from cppengine.infrastructure.isolation.limits import make_preexec
from cppengine.infrastructure.monitoring.metrics import MemorySampler


logger = structlog.get_logger(__name__)

KILLED_EXIT_CODE = -1
CHUNK_SIZE = 64 * 1024
# Time allowed for pipes to drain after the main process is gone
DRAIN_GRACE_SECONDS = 1.0
# libstdc++ reports a failed allocation under RLIMIT_AS this way before aborting
BAD_ALLOC_MARKER = "std::bad_alloc"


class _CappedBuffer:
    """Collects a stream up to a byte ceiling and keeps draining past it."""

    def __init__(self, limit: int):
        self.limit = limit
        self.data = bytearray()
        self.truncated = False

    async def fill(self, stream: asyncio.StreamReader) -> None:
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            if not chunk:
                return
            room = self.limit - len(self.data)
            if room > 0:
                self.data += chunk[:room]
            if len(chunk) > room:
                self.truncated = True

    def text(self) -> str:
        return bytes(self.data).decode("utf-8", errors="replace")


async def _feed_stdin(stream: asyncio.StreamWriter, data: str) -> None:
    try:
        if data:
            stream.write(data.encode("utf-8"))
            await stream.drain()
    except (BrokenPipeError, ConnectionResetError):
        # the program exited without reading all of its input
        pass
    finally:
        stream.close()


def kill_process_tree(pid: int) -> None:
    """SIGKILL a process group and any descendants that left it."""
    try:
        descendants = psutil.Process(pid).children(recursive=True)
    except psutil.NoSuchProcess:
        descendants = []
    try:
        os.killpg(pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass
    for child in descendants:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass


def normalize_exit_code(returncode: int) -> int:
    """Map a signal death (negative returncode) to the shell's 128+N form."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def _aborted_on_allocation(exit_code: int, stderr: str) -> bool:
    """A program that aborted on std::bad_alloc ran into its address-space limit."""
    return exit_code == 128 + signal.SIGABRT and BAD_ALLOC_MARKER in stderr


class BoundedProcessRunner(IProcessRunnerPort):
    """
    Executes programs with enforced resource ceilings.

    Without Bubblewrap the process still runs under rlimits, in a new
    session and with a scrubbed environment, but shares the host
    filesystem view.
    """

    def __init__(self, bwrap_path: Optional[str] = None, poll_interval: float = 0.02):
        """
        Initialize the runner.

        Args:
            bwrap_path: Resolved Bubblewrap executable, None to run unconfined
            poll_interval: Seconds between memory samples
        """
        self.bwrap_path = bwrap_path
        self.poll_interval = poll_interval
        if bwrap_path is None:
            logger.warning("Process runner started without Bubblewrap - filesystem and network are not isolated")

    @property
    def isolated(self) -> bool:
        return self.bwrap_path is not None

    def _resolve(self, program: str, cwd: Path) -> Tuple[Optional[str], Optional[SpawnFailure]]:
        if "/" in program:
            path = Path(program) if os.path.isabs(program) else cwd / program
            if not path.exists():
                return None, SpawnFailure.NOT_FOUND
            if not os.access(path, os.X_OK):
                return None, SpawnFailure.PERMISSION_DENIED
            return program, None
        found = shutil.which(program, path=SANDBOX_PATH)
        if found is None:
            return None, SpawnFailure.NOT_FOUND
        return found, None

    def _build_command(
        self, argv: Sequence[str], cwd: Path, env: Optional[Mapping[str, str]]
    ) -> Tuple[List[str], Dict[str, str]]:
        host_env = {
            "PATH": SANDBOX_PATH,
            "HOME": str(cwd),
            "TMPDIR": str(cwd),
            "LANG": "C.UTF-8",
        }
        if self.bwrap_path is None:
            host_env.update(env or {})
            return list(argv), host_env
        return build_bwrap_prefix(self.bwrap_path, cwd, env=env) + list(argv), host_env

    async def run(
        self,
        argv: Sequence[str],
        cwd: Path,
        limits: ResourceLimit,
        stdin: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ProcessResult:
        """
        Run a program to completion or until a limit is hit.

        Args:
            argv: Program and arguments, never interpreted by a shell
            cwd: Working directory
            limits: Timeout, memory and output ceilings
            stdin: Text written to standard input, closed immediately when None
            env: Extra environment variables

        Returns:
            ProcessResult with exit code -1 when the process was killed
        """
        start_time = time.perf_counter()
        program, failure = self._resolve(argv[0], cwd)
        if failure is not None:
            logger.warning("Executable unavailable", program=argv[0], reason=failure.value)
            return ProcessResult(
                exit_code=127,
                spawn_error=failure,
                error=f"{argv[0]}: {failure.value.replace('_', ' ')}",
            )

        command, host_env = self._build_command([program, *argv[1:]], cwd, env)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd),
                env=host_env,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
                preexec_fn=make_preexec(limits),
            )
        except FileNotFoundError as e:
            return self._spawn_failed(argv, SpawnFailure.NOT_FOUND, e, start_time)
        except PermissionError as e:
            return self._spawn_failed(argv, SpawnFailure.PERMISSION_DENIED, e, start_time)
        except OSError as e:
            if e.errno in (errno.EAGAIN, errno.ENOMEM, errno.EMFILE, errno.ENFILE):
                return self._spawn_failed(argv, SpawnFailure.RESOURCES, e, start_time)
            return self._spawn_failed(argv, SpawnFailure.NOT_FOUND, e, start_time)

        stdout = _CappedBuffer(limits.max_output_bytes)
        stderr = _CappedBuffer(limits.max_output_bytes)
        limit_kb = limits.max_memory_mb * 1024 if limits.max_memory_mb else None
        sampler = MemorySampler(process.pid, limit_kb=limit_kb, interval=self.poll_interval)

        tasks = [
            asyncio.create_task(stdout.fill(process.stdout)),
            asyncio.create_task(stderr.fill(process.stderr)),
            asyncio.create_task(sampler.watch(on_exceeded=lambda: kill_process_tree(process.pid))),
        ]
        if stdin is not None:
            tasks.append(asyncio.create_task(_feed_stdin(process.stdin, stdin)))

        timed_out = False
        try:
            deadline = start_time + limits.timeout_seconds
            try:
                await asyncio.wait_for(process.wait(), timeout=max(0.0, deadline - time.perf_counter()))
            except asyncio.TimeoutError:
                timed_out = not sampler.exceeded
                kill_process_tree(process.pid)
                await process.wait()

            readers = asyncio.gather(tasks[0], tasks[1])
            remaining = max(deadline - time.perf_counter(), DRAIN_GRACE_SECONDS)
            try:
                await asyncio.wait_for(asyncio.shield(readers), timeout=remaining)
            except asyncio.TimeoutError:
                # a descendant outlived the program and holds the pipes
                kill_process_tree(process.pid)
                readers.cancel()
        finally:
            if process.returncode is None:
                kill_process_tree(process.pid)
                await asyncio.shield(process.wait())
            for task in tasks:
                if not task.done():
                    task.cancel()

        duration_ms = (time.perf_counter() - start_time) * 1000
        exit_code = normalize_exit_code(process.returncode)
        stderr_text = stderr.text()
        killed = timed_out or sampler.exceeded
        result = ProcessResult(
            exit_code=KILLED_EXIT_CODE if killed else exit_code,
            stdout=stdout.text(),
            stderr=stderr_text,
            duration_ms=round(duration_ms, 2),
            timed_out=timed_out,
            memory_exceeded=sampler.exceeded or (
                limits.max_memory_mb is not None and _aborted_on_allocation(exit_code, stderr_text)
            ),
            stdout_truncated=stdout.truncated,
            stderr_truncated=stderr.truncated,
            peak_memory_kb=sampler.peak_kb,
            average_memory_kb=sampler.average_kb,
        )
        logger.debug(
            "Process finished",
            program=os.path.basename(argv[0]),
            exit_code=result.exit_code,
            duration_ms=result.duration_ms,
            timed_out=result.timed_out,
            memory_exceeded=result.memory_exceeded,
            peak_memory_kb=result.peak_memory_kb,
        )
        return result

    @staticmethod
    def _spawn_failed(argv: Sequence[str], failure: SpawnFailure, error: OSError, start_time: float) -> ProcessResult:
        logger.warning("Process spawn failed", program=argv[0], reason=failure.value, error=str(error))
        return ProcessResult(
            exit_code=127,
            spawn_error=failure,
            error=f"{argv[0]}: {error.strerror or error}",
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
