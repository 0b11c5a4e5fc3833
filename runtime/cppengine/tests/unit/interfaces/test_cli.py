"""
Unit tests for the command line interface.

The engine is replaced by a mock so no compiler is needed.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from cppengine.domain.value_objects import (
    AnalysisResult,
    CombinedResult,
    ExecutionResult,
    ExecutionState,
    Issue,
    Severity,
)
from cppengine.interfaces.cli import main as cli
from cppengine.interfaces.cli.formatter import ResultFormatter

from conftest import HELLO_CPP


pytestmark = pytest.mark.unit


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "hello.cpp"
    path.write_text(HELLO_CPP)
    return path


@pytest.fixture
def engine(monkeypatch):
    engine = MagicMock()
    engine.execute = AsyncMock(
        return_value=ExecutionResult(success=True, state=ExecutionState.COMPLETED, stdout="Hello\n", exit_code=0)
    )
    engine.analyze = AsyncMock(return_value=AnalysisResult(success=True, metrics={"lines_of_code": 5}))
    engine.execute_and_analyze = AsyncMock()
    monkeypatch.setattr(cli, "build_engine", lambda settings, configure_logs=False: engine)
    return engine


class TestParseArgs:
    """Tests for argument parsing."""

    def test_run_options(self):
        args = cli.parse_args(["run", "prog.c", "-O", "0", "--std", "c99", "-D", "N=3", "--flag=-Wshadow", "-t", "2"])
        assert args.command == "run"
        assert args.optimization == "0"
        assert args.std == "c99"
        assert args.defines == ["N=3"]
        assert args.flag == ["-Wshadow"]
        assert args.timeout == 2.0

    def test_language_from_extension(self):
        assert cli.guess_language("prog.c", None) == "c"
        assert cli.guess_language("prog.cc", None) == "cpp"
        assert cli.guess_language("prog.c", "cpp17") == "cpp17"


class TestPayloads:
    """Tests for request payload construction."""

    def test_execute_payload(self):
        args = cli.parse_args(["run", "prog.cpp", "-i", "3 4", "-D", "DEBUG", "-D", "N=10", "--memory-trace"])
        payload = cli.execute_payload(args, HELLO_CPP)
        assert payload["input"] == "3 4"
        assert payload["compilerOptions"]["optimizationLevel"] == "O2"
        assert payload["compilerOptions"]["defines"] == {"DEBUG": "", "N": "10"}
        assert payload["compilerOptions"]["memoryVisualization"] is True

    def test_analyze_payload(self):
        args = cli.parse_args(["analyze", "prog.c", "-a", "security", "--max-issues", "5"])
        payload = cli.analyze_payload(args, "int main(void){}")
        assert payload == {
            "code": "int main(void){}",
            "language": "c",
            "analysisType": "security",
            "minSeverity": None,
            "maxIssues": 5,
        }


class TestExitCodes:
    """Tests for exit code mapping."""

    @pytest.mark.parametrize("state,exit_code,expected", [
        (ExecutionState.COMPLETED, 0, 0),
        (ExecutionState.COMPILE_FAILED, None, cli.EXIT_COMPILE_FAILED),
        (ExecutionState.TIMED_OUT, -1, cli.EXIT_TIMEOUT),
        (ExecutionState.MEMORY_EXCEEDED, -1, cli.EXIT_MEMORY),
        (ExecutionState.RUNTIME_ERROR, 139, 139),
    ])
    def test_execution(self, state, exit_code, expected):
        result = ExecutionResult(success=state == ExecutionState.COMPLETED, state=state, exit_code=exit_code)
        assert cli.exit_code_for(result) == expected

    def test_failed_analysis(self):
        assert cli.exit_code_for(AnalysisResult(success=False)) == 1

    def test_combined_requires_analysis(self):
        combined = CombinedResult(
            execution=ExecutionResult(success=True, state=ExecutionState.COMPLETED, exit_code=0),
            analysis=AnalysisResult(success=False),
        )
        assert cli.exit_code_for(combined) == 1


class TestMain:
    """Tests for the main entry."""

    @pytest.mark.asyncio
    async def test_run_prints_json(self, engine, source, capsys):
        code = await cli.main(["--format", "json", "run", str(source)])
        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["stdout"] == "Hello\n"
        request = engine.execute.call_args.args[0]
        assert request.code == HELLO_CPP

    @pytest.mark.asyncio
    async def test_check_runs_both(self, engine, source):
        engine.execute_and_analyze.return_value = CombinedResult(
            execution=ExecutionResult(success=True, state=ExecutionState.COMPLETED, exit_code=0),
            analysis=AnalysisResult(success=True),
        )
        assert await cli.main(["--format", "json", "check", str(source)]) == 0
        engine.execute_and_analyze.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_request_file(self, engine, tmp_path, capsys):
        request_file = tmp_path / "request.json"
        request_file.write_text(json.dumps({"code": HELLO_CPP, "language": "cpp17", "analysisType": "custom"}))
        assert await cli.main(["--format", "yaml", "request", "analyze", str(request_file)]) == 0
        output = yaml.safe_load(capsys.readouterr().out)
        assert output["metrics"] == {"lines_of_code": 5}
        assert engine.analyze.call_args.args[0].standard == "c++17"

    @pytest.mark.asyncio
    async def test_invalid_request_is_usage_error(self, engine, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text(json.dumps({"code": HELLO_CPP, "language": "fortran"}))
        assert await cli.main(["request", "execute", str(request_file)]) == cli.EXIT_USAGE
        engine.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_json_is_usage_error(self, engine, tmp_path):
        request_file = tmp_path / "request.json"
        request_file.write_text("{not json")
        assert await cli.main(["request", "execute", str(request_file)]) == cli.EXIT_USAGE

    @pytest.mark.asyncio
    async def test_invalid_environment_is_usage_error(self, engine, source, monkeypatch):
        monkeypatch.setenv("CPPENGINE_DEFAULT_TIMEOUT", "60")
        monkeypatch.setenv("CPPENGINE_MAX_TIMEOUT", "5")
        assert await cli.main(["run", str(source)]) == cli.EXIT_USAGE
        engine.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_source_file(self, engine, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            await cli.main(["run", str(tmp_path / "missing.cpp")])
        assert exc_info.value.code == cli.EXIT_USAGE


class TestResultFormatter:
    """Tests for pretty output."""

    def test_pretty_analysis_lists_issues(self):
        issue = Issue(5, 5, Severity.ERROR, "strcpy() overflows 'buf'", "custom/security/buffer-overflow", "custom")
        result = AnalysisResult(success=True, issues=[issue], counts={"error": 1})
        text = ResultFormatter(format="pretty", use_colors=False).format_result(result)
        assert "strcpy() overflows 'buf'" in text
        assert "5:5" in text

    def test_pretty_execution_shows_stdout(self):
        result = ExecutionResult(success=True, state=ExecutionState.COMPLETED, stdout="Hello\n", exit_code=0)
        text = ResultFormatter(format="pretty", use_colors=False).format_result(result)
        assert "Hello" in text
