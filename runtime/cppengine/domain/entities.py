"""
Engine Entities

Request-scoped entities: the workspace session and the pipeline run that
moves a submission from staged source to a terminal state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from cppengine.domain.value_objects import ExecutionState


_TRANSITIONS = {
    ExecutionState.STAGED: {ExecutionState.COMPILING},
    ExecutionState.COMPILING: {ExecutionState.COMPILE_FAILED, ExecutionState.COMPILED},
    ExecutionState.COMPILED: {ExecutionState.RUNNING},
    ExecutionState.RUNNING: {
        ExecutionState.COMPLETED,
        ExecutionState.RUNTIME_ERROR,
        ExecutionState.TIMED_OUT,
        ExecutionState.MEMORY_EXCEEDED,
    },
}

TERMINAL_STATES = frozenset(
    {
        ExecutionState.COMPILE_FAILED,
        ExecutionState.COMPLETED,
        ExecutionState.RUNTIME_ERROR,
        ExecutionState.TIMED_OUT,
        ExecutionState.MEMORY_EXCEEDED,
        ExecutionState.ERROR,
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """
    An isolated workspace owned by one request.

    The session id is an unguessable token and, like the workspace path,
    never leaves the engine.
    """

    session_id: str
    workspace: Path
    request_id: str
    created_at: datetime = field(default_factory=_utcnow)

    def subdir(self, name: str) -> Path:
        """Return a private directory inside the workspace, creating it."""
        if "/" in name or name.startswith("."):
            raise ValueError(f"invalid workspace subdirectory: {name!r}")
        path = self.workspace / name
        path.mkdir(mode=0o700, exist_ok=True)
        return path

    def __repr__(self) -> str:
        return f"Session(request_id={self.request_id!r})"


@dataclass
class PipelineRun:
    """
    Tracks one submission through the compile-and-run state machine.

    Transitions outside the allowed graph raise ValueError; ERROR is
    reachable from any non-terminal state.
    """

    request_id: str
    state: ExecutionState = ExecutionState.STAGED
    created_at: datetime = field(default_factory=_utcnow)
    compile_started_at: Optional[datetime] = None
    run_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def _transition(self, target: ExecutionState) -> None:
        if target not in _TRANSITIONS.get(self.state, set()):
            raise ValueError(f"invalid transition {self.state.value} -> {target.value}")
        self.state = target
        if target in TERMINAL_STATES:
            self.completed_at = _utcnow()

    def mark_as_compiling(self) -> None:
        """Mark the source as being compiled."""
        self._transition(ExecutionState.COMPILING)
        self.compile_started_at = _utcnow()

    def mark_as_compile_failed(self, diagnostics: str) -> None:
        """Mark the compilation as failed."""
        self._transition(ExecutionState.COMPILE_FAILED)
        self.error_message = diagnostics

    def mark_as_compiled(self) -> None:
        """Mark the binary as produced."""
        self._transition(ExecutionState.COMPILED)

    def mark_as_running(self) -> None:
        """Mark the program as running."""
        self._transition(ExecutionState.RUNNING)
        self.run_started_at = _utcnow()

    def mark_as_finished(self, state: ExecutionState) -> None:
        """Move a running program to its terminal state."""
        self._transition(state)

    def mark_as_error(self, error: str) -> None:
        """Abort the pipeline because of a setup or internal failure."""
        if self.is_terminal:
            raise ValueError(f"pipeline already finished in state {self.state.value}")
        self.state = ExecutionState.ERROR
        self.error_message = error
        self.completed_at = _utcnow()

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES
