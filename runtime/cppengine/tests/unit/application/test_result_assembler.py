"""
Unit tests for the public engine entry points.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cppengine.application.services import ResultAssembler
from cppengine.domain.errors import WorkspaceError
from cppengine.domain.value_objects import (
    AnalysisRequest,
    AnalysisResult,
    ExecutionRequest,
    ExecutionResult,
    ExecutionState,
)
from cppengine.infrastructure.persistence import WorkspaceManager

from conftest import HELLO_CPP


pytestmark = pytest.mark.unit


@pytest.fixture
def root(tmp_path):
    return tmp_path / "sessions"


@pytest.fixture
def execute_command():
    command = MagicMock()
    command.execute = AsyncMock(
        return_value=ExecutionResult(success=True, state=ExecutionState.COMPLETED, stdout="Hello\n", exit_code=0)
    )
    return command


@pytest.fixture
def analyze_command():
    command = MagicMock()
    command.execute = AsyncMock(return_value=AnalysisResult(success=True, metrics={"lines_of_code": 4}))
    return command


@pytest.fixture
def assembler(root, execute_command, analyze_command):
    return ResultAssembler(WorkspaceManager(root=root), execute_command, analyze_command)


def sessions_left(root):
    return list(root.iterdir()) if root.exists() else []


class TestExecute:
    """Tests for ResultAssembler.execute."""

    @pytest.mark.asyncio
    async def test_returns_command_result(self, assembler, root):
        result = await assembler.execute(ExecutionRequest(code=HELLO_CPP))
        assert result.state == ExecutionState.COMPLETED
        assert sessions_left(root) == []

    @pytest.mark.asyncio
    async def test_request_id_reaches_session(self, assembler, execute_command):
        await assembler.execute(ExecutionRequest(code=HELLO_CPP), request_id="req-42")
        session = execute_command.execute.call_args.args[1]
        assert session.request_id == "req-42"

    @pytest.mark.asyncio
    async def test_engine_error_becomes_result(self, assembler, execute_command, root):
        execute_command.execute.side_effect = WorkspaceError("Cannot stage source")
        result = await assembler.execute(ExecutionRequest(code=HELLO_CPP))
        assert result.state == ExecutionState.ERROR
        assert result.error == "Cannot stage source"
        assert sessions_left(root) == []

    @pytest.mark.asyncio
    async def test_unexpected_error_hidden(self, assembler, execute_command):
        execute_command.execute.side_effect = KeyError("internal detail")
        result = await assembler.execute(ExecutionRequest(code=HELLO_CPP))
        assert result.state == ExecutionState.ERROR
        assert "internal detail" not in result.error

    @pytest.mark.asyncio
    async def test_cancellation_propagates_and_cleans_up(self, assembler, execute_command, root):
        execute_command.execute.side_effect = asyncio.CancelledError()
        with pytest.raises(asyncio.CancelledError):
            await assembler.execute(ExecutionRequest(code=HELLO_CPP))
        assert sessions_left(root) == []


class TestAnalyze:
    """Tests for ResultAssembler.analyze."""

    @pytest.mark.asyncio
    async def test_failure_still_reports_metrics(self, assembler, analyze_command):
        analyze_command.execute.side_effect = RuntimeError("boom")
        result = await assembler.analyze(AnalysisRequest(code=HELLO_CPP))
        assert not result.success
        assert result.metrics["function_count"] == 1


class TestExecuteAndAnalyze:
    """Tests for ResultAssembler.execute_and_analyze."""

    @pytest.mark.asyncio
    async def test_both_share_one_session(self, assembler, execute_command, analyze_command, root):
        result = await assembler.execute_and_analyze(
            ExecutionRequest(code=HELLO_CPP), AnalysisRequest(code=HELLO_CPP), request_id="req-7"
        )
        assert result.success
        exec_session = execute_command.execute.call_args.args[1]
        analysis_session = analyze_command.execute.call_args.args[1]
        assert exec_session is analysis_session
        assert sessions_left(root) == []

    @pytest.mark.asyncio
    async def test_analysis_failure_keeps_execution(self, assembler, analyze_command):
        analyze_command.execute.side_effect = RuntimeError("boom")
        result = await assembler.execute_and_analyze(ExecutionRequest(code=HELLO_CPP), AnalysisRequest(code=HELLO_CPP))
        assert result.execution.stdout == "Hello\n"
        assert not result.analysis.success
        assert not result.success

    @pytest.mark.asyncio
    async def test_execution_failure_keeps_analysis(self, assembler, execute_command):
        execute_command.execute.side_effect = WorkspaceError("Cannot stage source")
        result = await assembler.execute_and_analyze(ExecutionRequest(code=HELLO_CPP), AnalysisRequest(code=HELLO_CPP))
        assert result.execution.state == ExecutionState.ERROR
        assert result.analysis.success

    @pytest.mark.asyncio
    async def test_workspace_failure(self, tmp_path, execute_command, analyze_command):
        blocker = tmp_path / "file"
        blocker.write_text("")
        assembler = ResultAssembler(WorkspaceManager(root=blocker / "sessions"), execute_command, analyze_command)

        result = await assembler.execute_and_analyze(ExecutionRequest(code=HELLO_CPP), AnalysisRequest(code=HELLO_CPP))

        assert result.execution.state == ExecutionState.ERROR
        assert result.analysis.error == "Cannot create session workspace"
        execute_command.execute.assert_not_awaited()
