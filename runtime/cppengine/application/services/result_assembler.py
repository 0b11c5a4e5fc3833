"""
Result Assembler

Public entry points of the engine. Owns the session of every request and
turns every failure into a result value; nothing raises across this
boundary.
"""

import asyncio
import uuid
from typing import Optional

import structlog

from cppengine.application.commands.analyze_code import AnalyzeCodeCommand
from cppengine.application.commands.execute_code import ExecuteCodeCommand
from cppengine.domain.errors import EngineError
from cppengine.domain.metrics import compute_metrics
from cppengine.domain.ports import IWorkspacePort
from cppengine.domain.source import SourceText
from cppengine.domain.value_objects import (
    AnalysisRequest,
    AnalysisResult,
    CombinedResult,
    ExecutionRequest,
    ExecutionResult,
    ExecutionState,
)


logger = structlog.get_logger(__name__)

INTERNAL_ERROR = "Internal error while processing the request"


def _new_request_id() -> str:
    return uuid.uuid4().hex


def _failed_execution(error: str) -> ExecutionResult:
    return ExecutionResult(success=False, state=ExecutionState.ERROR, error=error)


def _failed_analysis(error: str, code: str) -> AnalysisResult:
    # metrics need no tools or workspace
    return AnalysisResult(success=False, metrics=compute_metrics(SourceText(code)), error=error)


class ResultAssembler:
    """
    Facade over the execution and analysis use cases.

    Every call opens one session, runs the use case(s) inside it and lets
    the session remove its workspace on the way out, including on
    cancellation.
    """

    def __init__(
        self,
        workspace: IWorkspacePort,
        execute_command: ExecuteCodeCommand,
        analyze_command: AnalyzeCodeCommand,
    ):
        self._workspace = workspace
        self._execute_command = execute_command
        self._analyze_command = analyze_command

    async def execute(self, request: ExecutionRequest, request_id: Optional[str] = None) -> ExecutionResult:
        """
        Compile and run a submission.

        Args:
            request: Validated execution request
            request_id: Caller's request id, generated when omitted

        Returns:
            ExecutionResult; state ERROR when the engine itself failed
        """
        request_id = request_id or _new_request_id()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                async with self._workspace.session(request_id) as session:
                    return await self._execute_command.execute(request, session)
            except EngineError as e:
                logger.error("Execution failed", error=e.message, **e.details)
                return _failed_execution(e.message)
            except Exception:
                logger.exception("Unexpected execution failure")
                return _failed_execution(INTERNAL_ERROR)

    async def analyze(self, request: AnalysisRequest, request_id: Optional[str] = None) -> AnalysisResult:
        """
        Statically analyze a submission.

        Args:
            request: Validated analysis request
            request_id: Caller's request id, generated when omitted

        Returns:
            AnalysisResult; success is False when every analyzer failed
        """
        request_id = request_id or _new_request_id()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                async with self._workspace.session(request_id) as session:
                    return await self._analyze_command.execute(request, session)
            except EngineError as e:
                logger.error("Analysis failed", error=e.message, **e.details)
                return _failed_analysis(e.message, request.code)
            except Exception:
                logger.exception("Unexpected analysis failure")
                return _failed_analysis(INTERNAL_ERROR, request.code)

    async def execute_and_analyze(
        self,
        execution: ExecutionRequest,
        analysis: AnalysisRequest,
        request_id: Optional[str] = None,
    ) -> CombinedResult:
        """
        Run a submission and analyze it concurrently in one session.

        The two use cases stage their own copy of the source in separate
        directories of the session, so neither sees the other's artifacts.

        Args:
            execution: Validated execution request
            analysis: Validated analysis request for the same source
            request_id: Caller's request id, generated when omitted

        Returns:
            CombinedResult holding both results
        """
        request_id = request_id or _new_request_id()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                async with self._workspace.session(request_id) as session:
                    executed, analyzed = await asyncio.gather(
                        self._execute_command.execute(execution, session),
                        self._analyze_command.execute(analysis, session),
                        return_exceptions=True,
                    )
            except EngineError as e:
                logger.error("Combined request failed", error=e.message, **e.details)
                return CombinedResult(
                    execution=_failed_execution(e.message),
                    analysis=_failed_analysis(e.message, analysis.code),
                )
            except Exception:
                logger.exception("Unexpected combined request failure")
                return CombinedResult(
                    execution=_failed_execution(INTERNAL_ERROR),
                    analysis=_failed_analysis(INTERNAL_ERROR, analysis.code),
                )

            if isinstance(executed, BaseException):
                executed = self._recover(executed, _failed_execution, "Execution failed")
            if isinstance(analyzed, BaseException):
                analyzed = self._recover(
                    analyzed, lambda error: _failed_analysis(error, analysis.code), "Analysis failed"
                )
            return CombinedResult(execution=executed, analysis=analyzed)

    @staticmethod
    def _recover(error: BaseException, make_result, event: str):
        """Turn a use case's exception into its failed result."""
        if isinstance(error, asyncio.CancelledError):
            raise error
        if isinstance(error, EngineError):
            logger.error(event, error=error.message, **error.details)
            return make_result(error.message)
        logger.error(event, error=str(error), exc_info=error)
        return make_result(INTERNAL_ERROR)
