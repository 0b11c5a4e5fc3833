"""
Dependency wiring.

Builds the engine from settings: detects the toolchain once, then
constructs the runner, workspace, analyzers, profiler and use cases that
share it.
"""

from pathlib import Path
from typing import Dict, Optional

from cppengine.application.commands.analyze_code import AnalyzeCodeCommand
from cppengine.application.commands.execute_code import ExecuteCodeCommand, ExecutionPolicy
from cppengine.application.services.result_assembler import ResultAssembler
from cppengine.domain.ports import IAnalyzerPort
from cppengine.domain.rules import RuleConfig
from cppengine.domain.value_objects import Language, ResourceLimit, RuleFamily
from cppengine.infrastructure.analyzers import ClangTidyAnalyzer, CppcheckAnalyzer, CustomRulesAnalyzer
from cppengine.infrastructure.compiler import GccCompiler
from cppengine.infrastructure.config import Settings, load_settings
from cppengine.infrastructure.isolation import BoundedProcessRunner
from cppengine.infrastructure.logging import configure_logging, get_logger
from cppengine.infrastructure.persistence import WorkspaceManager
from cppengine.infrastructure.profiling import PerfProfiler
from cppengine.infrastructure.toolchain import ToolAvailability, detect_toolchain


logger = get_logger(__name__)


def build_analyzers(settings: Settings, toolchain: ToolAvailability, runner: BoundedProcessRunner) -> Dict[str, IAnalyzerPort]:
    """Analyzer adapters keyed by the names used for analysis type selection."""
    limits = ResourceLimit(
        timeout_seconds=settings.analysis_timeout,
        max_memory_mb=settings.analysis_memory_mb,
        max_file_size_mb=settings.max_file_size_mb,
        max_output_bytes=settings.max_output_bytes,
    )
    rule_config = RuleConfig(
        max_cyclomatic_complexity=settings.max_cyclomatic_complexity,
        max_cognitive_complexity=settings.max_cognitive_complexity,
        max_function_lines=settings.max_function_lines,
        max_line_length=settings.max_line_length,
        large_array_elements=settings.large_array_elements,
    )
    return {
        "clang-tidy": ClangTidyAnalyzer(toolchain.clang_tidy, runner, limits, checks=settings.clang_tidy_checks),
        "cppcheck": CppcheckAnalyzer(toolchain.cppcheck, runner, limits, enable=settings.cppcheck_enable),
        "custom": CustomRulesAnalyzer("custom", [RuleFamily.CUSTOM], rule_config, limits.timeout_seconds),
        "security": CustomRulesAnalyzer("security", [RuleFamily.SECURITY], rule_config, limits.timeout_seconds),
        "performance": CustomRulesAnalyzer("performance", [RuleFamily.PERFORMANCE], rule_config, limits.timeout_seconds),
    }


def build_engine(
    settings: Optional[Settings] = None,
    toolchain: Optional[ToolAvailability] = None,
    configure_logs: bool = True,
) -> ResultAssembler:
    """
    Construct a ready-to-use engine.

    Args:
        settings: Engine settings, loaded from the environment when None
        toolchain: Pre-detected tool availability, detected when None
        configure_logs: Configure structlog from the settings

    Returns:
        ResultAssembler exposing execute, analyze and execute_and_analyze
    """
    settings = settings or load_settings()
    if configure_logs:
        configure_logging(settings.log_level, settings.log_format)
    toolchain = toolchain or detect_toolchain(settings)

    runner = BoundedProcessRunner(bwrap_path=toolchain.bwrap, poll_interval=settings.memory_poll_interval)
    workspace = WorkspaceManager(Path(settings.workspace_root) if settings.workspace_root else None)
    compiler = GccCompiler(
        toolchain,
        default_cpp_standard=settings.default_cpp_standard,
        default_c_standard=settings.default_c_standard,
    )
    profiler = PerfProfiler(
        toolchain.perf,
        runner,
        hotspots=settings.profile_hotspots,
        max_hotspots=settings.max_hotspots,
    )
    policy = ExecutionPolicy(
        compile_timeout=settings.compile_timeout,
        compile_memory_mb=settings.compile_memory_mb,
        default_timeout=settings.default_timeout,
        max_timeout=settings.max_timeout,
        default_memory_mb=settings.default_memory_mb,
        max_memory_mb=settings.max_memory_mb,
        max_output_bytes=settings.max_output_bytes,
        max_processes=settings.max_processes,
        max_file_size_mb=settings.max_file_size_mb,
    )

    execute_command = ExecuteCodeCommand(runner, workspace, compiler, profiler, policy)
    analyze_command = AnalyzeCodeCommand(
        build_analyzers(settings, toolchain, runner),
        workspace,
        standards={Language.CPP: settings.default_cpp_standard, Language.C: settings.default_c_standard},
    )
    logger.info("Engine ready", isolated=runner.isolated, profiling=profiler.available)
    return ResultAssembler(workspace, execute_command, analyze_command)
