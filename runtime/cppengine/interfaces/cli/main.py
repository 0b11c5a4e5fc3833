#!/usr/bin/env python3
"""
cppengine CLI - Compile, run and analyze C/C++ submissions locally
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from cppengine.domain.errors import ConfigurationError
from cppengine.domain.value_objects import AnalysisType, ExecutionState, OptimizationLevel, Severity
from cppengine.infrastructure.config import load_settings
from cppengine.infrastructure.dependencies import build_engine
from cppengine.infrastructure.logging import configure_logging
from cppengine.infrastructure.toolchain import detect_toolchain
from cppengine.interfaces.cli.formatter import ResultFormatter
from cppengine.interfaces.schemas.request import AnalyzeRequestSchema, ExecuteRequestSchema


# Exit codes for failures of the submission itself
EXIT_COMPILE_FAILED = 1
EXIT_USAGE = 2
EXIT_TIMEOUT = 4
EXIT_MEMORY = 137


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("source", type=str, help="C or C++ source file ('-' reads stdin)")
    parser.add_argument(
        "--language", "-l",
        type=str,
        help="c, cpp or a dialect such as cpp17 (default: from the file extension)"
    )


def _add_execution_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("execution")
    input_group = group.add_mutually_exclusive_group()
    input_group.add_argument("--input", "-i", type=str, help="Text fed to the program's stdin")
    input_group.add_argument("--input-file", type=str, help="Read the program's stdin from a file")
    group.add_argument("--timeout", "-t", type=float, help="Run timeout in seconds")
    group.add_argument("--memory", "-m", type=int, help="Memory ceiling in MB")

    compile_group = parser.add_argument_group("compilation")
    compile_group.add_argument(
        "-O",
        dest="optimization",
        choices=[level.value[1:] for level in OptimizationLevel],
        default="2",
        help="Optimization level (default: 2)"
    )
    compile_group.add_argument("--std", type=str, help="Language standard, e.g. c++20")
    compile_group.add_argument("--compiler", choices=["g++", "clang++", "gcc", "clang"], help="Compiler to use")
    compile_group.add_argument("--flag", action="append", default=[], help="Extra compiler flag as --flag=-Wshadow (repeatable)")
    compile_group.add_argument("-D", dest="defines", action="append", default=[], help="Macro NAME[=VALUE]")
    compile_group.add_argument("-g", dest="debug_info", action="store_true", help="Emit debug information")
    compile_group.add_argument("--profile", "-p", action="store_true", help="Collect perf counters and hotspots")
    compile_group.add_argument("--memory-trace", action="store_true", help="Report stack frames and heap objects")


def _add_analysis_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("analysis")
    group.add_argument(
        "--analysis-type", "-a",
        choices=[t.value for t in AnalysisType],
        default=AnalysisType.FULL.value,
        help="Analyzers to run (default: full)"
    )
    group.add_argument("--min-severity", choices=[s.value for s in Severity], help="Drop less severe issues")
    group.add_argument("--max-issues", type=int, help="Cap on the number of reported issues")


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="cppengine",
        description="cppengine CLI - Compile, run and analyze C/C++ submissions in a sandbox"
    )
    parser.add_argument(
        "--format",
        choices=["pretty", "json", "yaml"],
        default="pretty",
        help="Output format (default: pretty)"
    )
    parser.add_argument("--output", "-o", type=str, help="Save the result to a file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show memory traces and details")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)"
    )
    parser.add_argument("--version", action="version", version="%(prog)s 1.0.0")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Compile and run a submission")
    _add_source_arguments(run_parser)
    _add_execution_arguments(run_parser)

    analyze_parser = subparsers.add_parser("analyze", help="Statically analyze a submission")
    _add_source_arguments(analyze_parser)
    _add_analysis_arguments(analyze_parser)

    check_parser = subparsers.add_parser("check", help="Run and analyze a submission concurrently")
    _add_source_arguments(check_parser)
    _add_execution_arguments(check_parser)
    _add_analysis_arguments(check_parser)

    request_parser = subparsers.add_parser("request", help="Process a camelCase JSON request file")
    request_parser.add_argument("kind", choices=["execute", "analyze"], help="Request type")
    request_parser.add_argument("request_file", type=str, help="JSON request file ('-' reads stdin)")

    subparsers.add_parser("tools", help="Show which compilers and analyzers are available")

    return parser.parse_args(argv)


def read_text(path: str) -> str:
    """Read a file or stdin, exiting with a usage error when unreadable"""
    if path == "-":
        return sys.stdin.read()
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(EXIT_USAGE)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading file {path}: {e}", file=sys.stderr)
        sys.exit(EXIT_USAGE)


def guess_language(source: str, explicit: Optional[str]) -> str:
    if explicit:
        return explicit
    return "c" if source.endswith(".c") else "cpp"


def execute_payload(args, code: str) -> Dict[str, Any]:
    """camelCase execute request built from command line arguments"""
    stdin = read_text(args.input_file) if args.input_file else args.input
    defines = {}
    for define in args.defines:
        name, _, value = define.partition("=")
        defines[name] = value
    return {
        "code": code,
        "language": guess_language(args.source, args.language),
        "input": stdin,
        "timeout": args.timeout,
        "memoryLimit": args.memory,
        "compilerOptions": {
            "optimizationLevel": f"O{args.optimization}",
            "standard": args.std,
            "debugInfo": args.debug_info,
            "memoryVisualization": args.memory_trace,
            "performanceProfiling": args.profile,
            "compiler": args.compiler,
            "extraFlags": args.flag,
            "defines": defines,
        },
    }


def analyze_payload(args, code: str) -> Dict[str, Any]:
    """camelCase analyze request built from command line arguments"""
    return {
        "code": code,
        "language": guess_language(args.source, args.language),
        "analysisType": args.analysis_type,
        "minSeverity": args.min_severity,
        "maxIssues": args.max_issues,
    }


def exit_code_for(result) -> int:
    """Process exit code mirroring the outcome of a run"""
    execution = getattr(result, "execution", result)
    state = getattr(execution, "state", None)
    if state is None:
        return 0 if result.success else 1
    if state == ExecutionState.COMPLETED:
        analysis = getattr(result, "analysis", None)
        return 0 if analysis is None or analysis.success else 1
    if state == ExecutionState.TIMED_OUT:
        return EXIT_TIMEOUT
    if state == ExecutionState.MEMORY_EXCEEDED:
        return EXIT_MEMORY
    if state == ExecutionState.RUNTIME_ERROR and execution.exit_code:
        return execution.exit_code
    return EXIT_COMPILE_FAILED


async def main(argv=None) -> int:
    """Main CLI function"""
    args = parse_args(argv)
    try:
        settings = load_settings(log_level=args.log_level)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE
    configure_logging(settings.log_level, settings.log_format)
    formatter = ResultFormatter(format=args.format, verbose=args.verbose)

    if args.command == "tools":
        print(formatter.format_data(detect_toolchain(settings).to_dict()))
        return 0

    try:
        if args.command == "request":
            payload = json.loads(read_text(args.request_file))
            if args.kind == "execute":
                execution, analysis = ExecuteRequestSchema.model_validate(payload).to_domain(), None
            else:
                execution, analysis = None, AnalyzeRequestSchema.model_validate(payload).to_domain()
        else:
            code = read_text(args.source)
            execution = analysis = None
            if args.command in ("run", "check"):
                execution = ExecuteRequestSchema.model_validate(execute_payload(args, code)).to_domain()
            if args.command in ("analyze", "check"):
                analysis = AnalyzeRequestSchema.model_validate(analyze_payload(args, code)).to_domain()
    except json.JSONDecodeError as e:
        print(f"Error: Invalid request JSON: {e}", file=sys.stderr)
        return EXIT_USAGE
    except (ValidationError, ValueError) as e:
        print(f"Error: Invalid request: {e}", file=sys.stderr)
        return EXIT_USAGE

    engine = build_engine(settings, configure_logs=False)
    if execution is not None and analysis is not None:
        result = await engine.execute_and_analyze(execution, analysis)
    elif execution is not None:
        result = await engine.execute(execution)
    else:
        result = await engine.analyze(analysis)

    output = formatter.format_result(result)
    print(output)
    if args.output:
        try:
            Path(args.output).write_text(output, encoding="utf-8")
        except OSError as e:
            print(f"Error saving result to file: {e}", file=sys.stderr)
            return 1
    return exit_code_for(result)


def entry_point():
    """CLI entry point"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    entry_point()
