"""
Execute Code Command

Compile-and-run use case. Stages the source, compiles it, runs the binary
under resource ceilings and assembles the execution trace.
"""

import signal
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

import structlog

from cppengine.domain.entities import PipelineRun, Session
from cppengine.domain.errors import WorkspaceError
from cppengine.domain.memory_layout import build_memory_trace
from cppengine.domain.ports import ICompilerPort, IProcessRunnerPort, IProfilerPort, IWorkspacePort
from cppengine.domain.services import find_restricted_constructs, scrub_path
from cppengine.domain.source import SourceText
from cppengine.domain.value_objects import (
    ExecutionRequest,
    ExecutionResult,
    ExecutionState,
    Language,
    PerformanceProfile,
    ProcessResult,
    ResourceLimit,
    RuntimeErrorKind,
)


logger = structlog.get_logger(__name__)

BUILD_DIR = "build"

_SIGNAL_KINDS = {
    signal.SIGSEGV: RuntimeErrorKind.SEGMENTATION_FAULT,
    signal.SIGABRT: RuntimeErrorKind.ABORTED,
    signal.SIGFPE: RuntimeErrorKind.FLOATING_POINT_EXCEPTION,
    signal.SIGBUS: RuntimeErrorKind.BUS_ERROR,
    signal.SIGILL: RuntimeErrorKind.ILLEGAL_INSTRUCTION,
}


def classify_exit(exit_code: int) -> Tuple[RuntimeErrorKind, str]:
    """
    Classify a nonzero exit code.

    Codes above 128 follow the shell convention for death by signal.

    Returns:
        Tuple of (kind, human readable description)
    """
    if 128 < exit_code < 128 + 65:
        number = exit_code - 128
        kind = _SIGNAL_KINDS.get(number, RuntimeErrorKind.KILLED)
        try:
            name = signal.Signals(number).name
        except ValueError:
            name = f"signal {number}"
        return kind, f"Program terminated by {name} ({kind.value.replace('_', ' ')})"
    return RuntimeErrorKind.NONZERO_EXIT, f"Program exited with code {exit_code}"


@dataclass(frozen=True)
class ExecutionPolicy:
    """
    Limits and defaults applied to every compile and run.

    Attributes:
        compile_timeout: Compiler wall-clock limit in seconds
        compile_memory_mb: Compiler memory ceiling
        default_timeout: Run timeout when the request sets none
        max_timeout: Upper bound for requested run timeouts
        default_memory_mb: Run memory ceiling when the request sets none
        max_memory_mb: Upper bound for requested memory ceilings
        max_output_bytes: Upper bound for captured bytes per stream
        max_processes: Process limit for the learner program
        max_file_size_mb: Largest file the program may write
    """

    compile_timeout: float = 30.0
    compile_memory_mb: int = 2048
    default_timeout: float = 10.0
    max_timeout: float = 30.0
    default_memory_mb: int = 512
    max_memory_mb: int = 1024
    max_output_bytes: int = 1024 * 1024
    max_processes: Optional[int] = 64
    max_file_size_mb: int = 64

    def compile_limits(self) -> ResourceLimit:
        return ResourceLimit(
            timeout_seconds=self.compile_timeout,
            max_memory_mb=self.compile_memory_mb,
            max_file_size_mb=max(self.max_file_size_mb, 256),
            max_output_bytes=self.max_output_bytes,
        )

    def run_limits(self, request: ExecutionRequest) -> ResourceLimit:
        timeout = request.timeout_seconds or self.default_timeout
        memory = request.max_memory_mb or self.default_memory_mb
        output = request.max_output_bytes or self.max_output_bytes
        return ResourceLimit(
            timeout_seconds=min(timeout, self.max_timeout),
            max_memory_mb=min(memory, self.max_memory_mb),
            max_processes=self.max_processes,
            max_file_size_mb=self.max_file_size_mb,
            max_output_bytes=min(output, self.max_output_bytes),
        )


class ExecuteCodeCommand:
    """
    Command handler for the compile-and-run use case.

    Orchestrates the pipeline:
    1. Stage the source into the session's build directory
    2. Compile it (COMPILE_FAILED stops here)
    3. Run the binary with stdin under the run limits
    4. Collect the profile and memory trace when requested
    """

    def __init__(
        self,
        runner: IProcessRunnerPort,
        workspace: IWorkspacePort,
        compiler: ICompilerPort,
        profiler: IProfilerPort,
        policy: Optional[ExecutionPolicy] = None,
    ):
        """
        Initialize the execute code command.

        Args:
            runner: Port for bounded process execution
            workspace: Port for staging files
            compiler: Port for compiler invocation
            profiler: Port for counters and hotspots
            policy: Limits and defaults
        """
        self._runner = runner
        self._workspace = workspace
        self._profiler = profiler
        self._compiler = compiler
        self._policy = policy or ExecutionPolicy()

    async def execute(self, request: ExecutionRequest, session: Session) -> ExecutionResult:
        """
        Compile and run a submission inside a session.

        Args:
            request: Execution request value object
            session: Session owning the workspace

        Returns:
            ExecutionResult in a terminal pipeline state

        Raises:
            WorkspaceError: If the source cannot be staged
        """
        pipeline = PipelineRun(request_id=session.request_id)
        directory = session.subdir(BUILD_DIR)
        try:
            self._workspace.stage(directory, self._compiler.source_name(request.language), request.code)
        except WorkspaceError as e:
            pipeline.mark_as_error(e.message)
            raise

        restricted = find_restricted_constructs(request.code)
        if restricted:
            logger.warning("Submission uses restricted constructs", request_id=session.request_id, constructs=restricted)

        def scrub(text: str) -> str:
            return scrub_path(text, str(directory), str(session.workspace))

        compile_failure, warnings, compile_ms = await self._compile(request, pipeline, directory, scrub)
        if compile_failure is not None:
            return compile_failure

        limits = self._policy.run_limits(request)
        options = request.options
        argv = [f"./{self._compiler.binary_name}"]
        profiling = options.performance_profiling and self._profiler.available
        command = self._profiler.wrap(argv, directory) if profiling else argv

        pipeline.mark_as_running()
        logger.info(
            "Running program",
            request_id=session.request_id,
            timeout=limits.timeout_seconds,
            memory_mb=limits.max_memory_mb,
            profiling=profiling,
        )
        run = await self._runner.run(command, directory, limits, stdin=request.stdin)
        result = self._finish(pipeline, run, limits, scrub)
        result.compilation_time_ms = compile_ms
        result.compiler_warnings = warnings

        if options.performance_profiling:
            if profiling and not run.killed and run.spawned:
                # hotspot sampling only gets what the run left of the wall-clock limit
                remaining = max(limits.timeout_seconds - run.duration_ms / 1000.0, 0.0)
                result.performance_profile = await self._profiler.collect(
                    argv, directory, replace(limits, timeout_seconds=remaining), stdin=request.stdin or ""
                )
            else:
                result.performance_profile = PerformanceProfile()
        if options.memory_visualization:
            result.memory_trace = build_memory_trace(SourceText(request.code))

        logger.info(
            "Execution finished",
            request_id=session.request_id,
            state=result.state.value,
            exit_code=result.exit_code,
            duration_ms=result.execution_time_ms,
            peak_memory_kb=result.peak_memory_kb,
        )
        return result

    async def _compile(self, request, pipeline, directory, scrub):
        """Run the compiler; returns (failure result or None, warnings, elapsed ms)."""
        options = request.options
        pipeline.mark_as_compiling()
        compiler = self._compiler.resolve(request.language, options.compiler)
        if compiler is None:
            name = options.compiler or ("g++" if request.language == Language.CPP else "gcc")
            message = f"Compiler not available: {name}"
            pipeline.mark_as_compile_failed(message)
            logger.error("Compiler not available", request_id=pipeline.request_id, compiler=name)
            return self._compile_failed(message, message, 0.0), [], 0.0

        command = self._compiler.build_command(compiler, request.language, options)
        limits = self._policy.compile_limits()
        result = await self._runner.run(command, directory, limits)
        diagnostics = scrub((result.stderr + result.stdout).strip())

        if not result.spawned:
            message = f"Compiler could not be started: {result.error}"
            pipeline.mark_as_compile_failed(message)
            return self._compile_failed(message, message, result.duration_ms), [], result.duration_ms
        if result.timed_out:
            message = f"Compilation timed out after {limits.timeout_seconds:g}s"
            pipeline.mark_as_compile_failed(message)
            return self._compile_failed(message, message, result.duration_ms), [], result.duration_ms
        if result.memory_exceeded:
            message = f"Compilation exceeded the {limits.max_memory_mb}MB memory limit"
            pipeline.mark_as_compile_failed(message)
            return self._compile_failed(message, message, result.duration_ms), [], result.duration_ms
        if result.exit_code != 0:
            pipeline.mark_as_compile_failed(diagnostics)
            logger.info("Compilation failed", request_id=pipeline.request_id, exit_code=result.exit_code)
            return (
                self._compile_failed(diagnostics, "Compilation failed", result.duration_ms),
                [],
                result.duration_ms,
            )

        pipeline.mark_as_compiled()
        return None, self._compiler.extract_warnings(diagnostics), result.duration_ms

    @staticmethod
    def _compile_failed(diagnostics: str, error: str, duration_ms: float) -> ExecutionResult:
        return ExecutionResult(
            success=False,
            state=ExecutionState.COMPILE_FAILED,
            compilation_error=diagnostics,
            compilation_time_ms=duration_ms,
            error=error,
        )

    @staticmethod
    def _finish(
        pipeline: PipelineRun,
        run: ProcessResult,
        limits: ResourceLimit,
        scrub: Callable[[str], str],
    ) -> ExecutionResult:
        """Map the program's ProcessResult onto a terminal state."""
        runtime_error = None
        if not run.spawned:
            state = ExecutionState.RUNTIME_ERROR
            error = f"Program could not be started: {run.error}"
        elif run.memory_exceeded:
            state = ExecutionState.MEMORY_EXCEEDED
            error = f"Memory limit of {limits.max_memory_mb}MB exceeded"
        elif run.timed_out:
            state = ExecutionState.TIMED_OUT
            error = f"Execution timed out after {limits.timeout_seconds:g}s"
        elif run.exit_code == 0:
            state = ExecutionState.COMPLETED
            error = None
        else:
            state = ExecutionState.RUNTIME_ERROR
            runtime_error, error = classify_exit(run.exit_code)
        pipeline.mark_as_finished(state)

        return ExecutionResult(
            success=state == ExecutionState.COMPLETED,
            state=state,
            stdout=scrub(run.stdout),
            stderr=scrub(run.stderr),
            exit_code=run.exit_code,
            execution_time_ms=run.duration_ms,
            peak_memory_kb=run.peak_memory_kb,
            average_memory_kb=run.average_memory_kb,
            runtime_error=runtime_error,
            timed_out=run.timed_out,
            memory_exceeded=run.memory_exceeded,
            output_truncated=run.truncated,
            error=error,
        )
