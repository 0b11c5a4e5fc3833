"""
Engine Value Objects

Immutable value objects for compilation, execution and analysis requests
and the results the engine hands back to its callers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any, Tuple


MAX_SOURCE_LENGTH = 50_000
MAX_STDIN_LENGTH = 10_000


class Language(str, Enum):
    """Source language of a submission."""

    C = "c"
    CPP = "cpp"


class OptimizationLevel(str, Enum):
    """Compiler optimization level."""

    O0 = "O0"
    O1 = "O1"
    O2 = "O2"
    O3 = "O3"
    OS = "Os"
    OZ = "Oz"


class ExecutionState(str, Enum):
    """State of the compile-and-run pipeline."""

    STAGED = "staged"
    COMPILING = "compiling"
    COMPILE_FAILED = "compile_failed"
    COMPILED = "compiled"
    RUNNING = "running"
    COMPLETED = "completed"
    RUNTIME_ERROR = "runtime_error"
    TIMED_OUT = "timed_out"
    MEMORY_EXCEEDED = "memory_exceeded"
    # Session setup or internal failure before a terminal pipeline state
    ERROR = "error"


class RuntimeErrorKind(str, Enum):
    """Classification of an abnormal program termination."""

    SEGMENTATION_FAULT = "segmentation_fault"
    ABORTED = "aborted"
    FLOATING_POINT_EXCEPTION = "floating_point_exception"
    BUS_ERROR = "bus_error"
    ILLEGAL_INSTRUCTION = "illegal_instruction"
    KILLED = "killed"
    NONZERO_EXIT = "nonzero_exit"


class SpawnFailure(str, Enum):
    """Reason a process could not be started."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    RESOURCES = "resources"


class Severity(str, Enum):
    """Issue severity on the shared scale."""

    ERROR = "error"
    SECURITY = "security"
    WARNING = "warning"
    INFO = "info"
    STYLE = "style"
    PERFORMANCE = "performance"

    @property
    def rank(self) -> int:
        """
        Sort rank, lower is more severe.

        Follows error > warning > info > style > performance. Security findings
        are warnings about exploitable code, so they rank just above plain
        warnings and survive the issue cap ahead of them.
        """
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.ERROR: 0,
    Severity.SECURITY: 1,
    Severity.WARNING: 2,
    Severity.INFO: 3,
    Severity.STYLE: 4,
    Severity.PERFORMANCE: 5,
}


class AnalysisType(str, Enum):
    """Selects which analyzers run for an analysis request."""

    FULL = "full"
    CLANG_TIDY = "clang-tidy"
    CPPCHECK = "cppcheck"
    CUSTOM = "custom"
    SECURITY = "security"
    PERFORMANCE = "performance"


class RuleFamily(str, Enum):
    """Family a built-in check belongs to."""

    CUSTOM = "custom"
    SECURITY = "security"
    PERFORMANCE = "performance"


@dataclass(frozen=True)
class ResourceLimit:
    """
    Resource limits for one bounded process.

    Attributes:
        timeout_seconds: Wall-clock limit in seconds
        max_memory_mb: Address-space and resident memory ceiling in megabytes
        max_processes: Maximum number of processes (None leaves the limit alone)
        max_file_size_mb: Maximum size of any written file in megabytes
        max_output_bytes: Captured bytes kept per output stream
    """

    timeout_seconds: float = 10.0
    max_memory_mb: Optional[int] = 512
    max_processes: Optional[int] = None
    max_file_size_mb: int = 64
    max_output_bytes: int = 1024 * 1024

    def validate(self) -> None:
        """Validate resource limits."""
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.timeout_seconds > 3600:
            raise ValueError("timeout_seconds cannot exceed 3600 (1 hour)")
        if self.max_memory_mb is not None and self.max_memory_mb <= 0:
            raise ValueError("max_memory_mb must be positive")
        if self.max_output_bytes <= 0:
            raise ValueError("max_output_bytes must be positive")


@dataclass(frozen=True)
class CompilerOptions:
    """
    Options controlling how a submission is compiled and instrumented.

    Attributes:
        optimization_level: -O level passed to the compiler
        standard: Language standard, e.g. "c++17" or "c11"; None uses the default
        debug_info: Emit debug information (-g)
        memory_visualization: Produce a memory trace for the run
        performance_profiling: Collect hardware counters and hotspots
        compiler: Compiler name override ("g++", "clang++", "gcc", "clang")
        extra_flags: User supplied flags, filtered through the allow-list
        defines: Preprocessor macros passed as -DNAME[=VALUE]
    """

    optimization_level: OptimizationLevel = OptimizationLevel.O2
    standard: Optional[str] = None
    debug_info: bool = False
    memory_visualization: bool = False
    performance_profiling: bool = False
    compiler: Optional[str] = None
    extra_flags: Tuple[str, ...] = ()
    defines: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ExecutionRequest:
    """
    A request to compile and run one submission.

    Attributes:
        code: Source text, staged verbatim
        language: Source language
        stdin: Optional input fed to the program
        timeout_seconds: Run timeout; None uses the configured default
        max_memory_mb: Run memory ceiling; None uses the configured default
        max_output_bytes: Output ceiling per stream; None uses the configured default
        options: Compiler and instrumentation options
    """

    code: str
    language: Language = Language.CPP
    stdin: Optional[str] = None
    timeout_seconds: Optional[float] = None
    max_memory_mb: Optional[int] = None
    max_output_bytes: Optional[int] = None
    options: CompilerOptions = field(default_factory=CompilerOptions)

    def __post_init__(self):
        """Validate request size and bounds."""
        if not self.code or not self.code.strip():
            raise ValueError("code cannot be empty")
        if len(self.code) > MAX_SOURCE_LENGTH:
            raise ValueError(f"code cannot exceed {MAX_SOURCE_LENGTH} characters")
        if self.stdin is not None and len(self.stdin) > MAX_STDIN_LENGTH:
            raise ValueError(f"stdin cannot exceed {MAX_STDIN_LENGTH} characters")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.max_memory_mb is not None and self.max_memory_mb <= 0:
            raise ValueError("max_memory_mb must be positive")
        if self.max_output_bytes is not None and self.max_output_bytes <= 0:
            raise ValueError("max_output_bytes must be positive")


@dataclass(frozen=True)
class AnalysisRequest:
    """
    A request to statically analyze one submission.

    Attributes:
        code: Source text
        language: Source language
        standard: Language standard handed to the tools; None uses the default
        analysis_type: Which analyzers to run
        min_severity: Severity floor, issues less severe are dropped
        max_issues: Cap on the number of reported issues
    """

    code: str
    language: Language = Language.CPP
    standard: Optional[str] = None
    analysis_type: AnalysisType = AnalysisType.FULL
    min_severity: Optional[Severity] = None
    max_issues: Optional[int] = None

    def __post_init__(self):
        """Validate request size and bounds."""
        if not self.code or not self.code.strip():
            raise ValueError("code cannot be empty")
        if len(self.code) > MAX_SOURCE_LENGTH:
            raise ValueError(f"code cannot exceed {MAX_SOURCE_LENGTH} characters")
        if self.max_issues is not None and self.max_issues < 0:
            raise ValueError("max_issues cannot be negative")


@dataclass(frozen=True)
class Issue:
    """
    One finding reported by an analyzer.

    Line and column are 1-based positions in the analyzed source, or zero
    when the analyzer could not attribute a location.

    Attributes:
        line: 1-based line, 0 when unknown
        column: 1-based column, 0 when unknown
        severity: Severity on the shared scale
        message: Human readable description
        rule_id: Stable identifier of the check
        tool: Name of the originating analyzer
        metadata: Free-form extra data (category, CWE, ...)
    """

    line: int
    column: int
    severity: Severity
    message: str
    rule_id: str
    tool: str
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        """Validate location."""
        if self.line < 0 or self.column < 0:
            raise ValueError("line and column cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "line": self.line,
            "column": self.column,
            "severity": self.severity.value,
            "message": self.message,
            "rule_id": self.rule_id,
            "tool": self.tool,
            "metadata": dict(self.metadata),
        }


@dataclass
class ProcessResult:
    """
    Outcome of one bounded process invocation.

    Not frozen because the runner fills it in while the process is reaped.

    Attributes:
        exit_code: Process exit code, -1 when the runner killed the process
        stdout: Captured standard output (possibly truncated)
        stderr: Captured standard error (possibly truncated)
        duration_ms: Wall-clock time in milliseconds
        timed_out: Killed for exceeding the wall-clock limit
        memory_exceeded: Killed at the memory ceiling or aborted on std::bad_alloc under it
        stdout_truncated: Standard output exceeded the capture ceiling
        stderr_truncated: Standard error exceeded the capture ceiling
        spawn_error: Set when the process could not be started
        error: Human readable spawn error
        peak_memory_kb: Largest sampled resident set of the process tree
        average_memory_kb: Mean sampled resident set of the process tree
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0
    timed_out: bool = False
    memory_exceeded: bool = False
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    spawn_error: Optional[SpawnFailure] = None
    error: Optional[str] = None
    peak_memory_kb: int = 0
    average_memory_kb: int = 0

    @property
    def truncated(self) -> bool:
        return self.stdout_truncated or self.stderr_truncated

    @property
    def killed(self) -> bool:
        return self.timed_out or self.memory_exceeded

    @property
    def spawned(self) -> bool:
        return self.spawn_error is None


@dataclass(frozen=True)
class Hotspot:
    """A function that accounts for a share of sampled execution time."""

    function: str
    percentage: float
    samples: int = 0
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "percentage": self.percentage,
            "samples": self.samples,
            "line": self.line,
        }


@dataclass(frozen=True)
class PerformanceProfile:
    """
    Hardware counters and hotspots for one run.

    Counters are None when the platform could not provide them.
    """

    instructions: Optional[int] = None
    cycles: Optional[int] = None
    cache_references: Optional[int] = None
    cache_misses: Optional[int] = None
    branches: Optional[int] = None
    branch_misses: Optional[int] = None
    task_clock_ms: Optional[float] = None
    hotspots: Tuple[Hotspot, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.hotspots and all(
            value is None
            for value in (
                self.instructions,
                self.cycles,
                self.cache_references,
                self.cache_misses,
                self.branches,
                self.branch_misses,
                self.task_clock_ms,
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "instructions": self.instructions,
            "cycles": self.cycles,
            "cache_references": self.cache_references,
            "cache_misses": self.cache_misses,
            "branches": self.branches,
            "branch_misses": self.branch_misses,
            "task_clock_ms": self.task_clock_ms,
            "hotspots": [h.to_dict() for h in self.hotspots],
        }


@dataclass(frozen=True)
class Variable:
    """A variable living in a stack frame."""

    name: str
    type: str
    size: int
    line: int
    address: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "line": self.line,
            "address": self.address,
        }


@dataclass(frozen=True)
class StackFrame:
    """One function's frame with the variables declared in it."""

    function: str
    line: int
    variables: Tuple[Variable, ...] = ()

    @property
    def size(self) -> int:
        return sum(v.size for v in self.variables)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "line": self.line,
            "size": self.size,
            "variables": [v.to_dict() for v in self.variables],
        }


@dataclass(frozen=True)
class HeapObject:
    """A heap allocation and whether it is released."""

    address: str
    type: str
    size: int
    line: int
    allocated: bool = True
    owner: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "type": self.type,
            "size": self.size,
            "line": self.line,
            "allocated": self.allocated,
            "owner": self.owner,
        }


@dataclass(frozen=True)
class PointerEdge:
    """A pointer variable referring to a heap object."""

    source: str
    target: str
    kind: str = "heap"

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.source, "to": self.target, "type": self.kind}


@dataclass(frozen=True)
class MemoryTrace:
    """Stack frames, heap objects and pointer edges of a program."""

    stack_frames: Tuple[StackFrame, ...] = ()
    heap_objects: Tuple[HeapObject, ...] = ()
    pointers: Tuple[PointerEdge, ...] = ()

    @property
    def stack_size(self) -> int:
        return sum(frame.size for frame in self.stack_frames)

    @property
    def heap_size(self) -> int:
        return sum(obj.size for obj in self.heap_objects if obj.allocated)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "stack_frames": [f.to_dict() for f in self.stack_frames],
            "heap_objects": [h.to_dict() for h in self.heap_objects],
            "pointers": [p.to_dict() for p in self.pointers],
            "stack_size": self.stack_size,
            "heap_size": self.heap_size,
        }


@dataclass
class ExecutionResult:
    """
    Result of the compile-and-run pipeline.

    Attributes:
        success: Program compiled and exited with code 0
        state: Terminal pipeline state
        stdout: Program standard output
        stderr: Program standard error
        exit_code: Program exit code, -1 when killed, None when it never ran
        execution_time_ms: Wall-clock run time in milliseconds
        compilation_time_ms: Wall-clock compile time in milliseconds
        peak_memory_kb: Peak resident memory of the program
        average_memory_kb: Average resident memory of the program
        compilation_error: Compiler diagnostics when compilation failed
        compiler_warnings: Warning lines emitted by a successful compile
        runtime_error: Classification of an abnormal termination
        timed_out: Program exceeded its wall-clock limit
        memory_exceeded: Program exceeded its memory ceiling
        output_truncated: Output exceeded the capture ceiling
        error: Human readable failure summary
        performance_profile: Counters and hotspots when profiling was requested
        memory_trace: Memory layout when visualization was requested
    """

    success: bool
    state: ExecutionState
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    execution_time_ms: float = 0.0
    compilation_time_ms: float = 0.0
    peak_memory_kb: int = 0
    average_memory_kb: int = 0
    compilation_error: Optional[str] = None
    compiler_warnings: List[str] = field(default_factory=list)
    runtime_error: Optional[RuntimeErrorKind] = None
    timed_out: bool = False
    memory_exceeded: bool = False
    output_truncated: bool = False
    error: Optional[str] = None
    performance_profile: Optional[PerformanceProfile] = None
    memory_trace: Optional[MemoryTrace] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "state": self.state.value,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "execution_time_ms": self.execution_time_ms,
            "compilation_time_ms": self.compilation_time_ms,
            "peak_memory_kb": self.peak_memory_kb,
            "average_memory_kb": self.average_memory_kb,
            "compilation_error": self.compilation_error,
            "compiler_warnings": list(self.compiler_warnings),
            "runtime_error": self.runtime_error.value if self.runtime_error else None,
            "timed_out": self.timed_out,
            "memory_exceeded": self.memory_exceeded,
            "output_truncated": self.output_truncated,
            "error": self.error,
            "performance_profile": (
                self.performance_profile.to_dict() if self.performance_profile else None
            ),
            "memory_trace": self.memory_trace.to_dict() if self.memory_trace else None,
        }


@dataclass
class AnalysisResult:
    """
    Merged result of all selected analyzers.

    Attributes:
        success: False only when every selected analyzer failed
        issues: Issues ordered by severity rank, then line
        metrics: Structural metrics keyed by name
        counts: Number of issues per severity
        analysis_time_ms: Wall-clock analysis time in milliseconds
        error: Aggregate failure message
        metadata: Analyzers run, per-analyzer notes, truncation info
    """

    success: bool
    issues: List[Issue] = field(default_factory=list)
    metrics: Dict[str, float] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)
    analysis_time_ms: float = 0.0
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "issues": [issue.to_dict() for issue in self.issues],
            "metrics": dict(self.metrics),
            "counts": dict(self.counts),
            "analysis_time_ms": self.analysis_time_ms,
            "error": self.error,
            "metadata": dict(self.metadata),
        }


@dataclass
class CombinedResult:
    """Execution and analysis results of one combined request."""

    execution: ExecutionResult
    analysis: AnalysisResult

    @property
    def success(self) -> bool:
        return self.execution.success and self.analysis.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "execution": self.execution.to_dict(),
            "analysis": self.analysis.to_dict(),
        }
