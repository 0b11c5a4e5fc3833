"""
External analyzer base.

Shared behaviour of the adapters that run an external static analysis tool
through the bounded process runner and parse its text output line by line.
"""

import os
import re
from abc import abstractmethod
from typing import List, Optional

from cppengine.domain.errors import ToolOutputParseError, ToolUnavailableError
from cppengine.domain.ports import AnalyzerContext, IAnalyzerPort, IProcessRunnerPort
from cppengine.domain.value_objects import Issue, ProcessResult, ResourceLimit
from cppengine.infrastructure.logging.logging_config import get_logger


logger = get_logger(__name__)

# file:line:column: prefix shared by gcc-style diagnostics
LOCATION_PREFIX_RE = re.compile(r"^[^\s:][^:\n]*:\d+:\d+:")


class ExternalToolAnalyzer(IAnalyzerPort):
    """
    Runs one external tool and converts its diagnostics into issues.

    Subclasses provide the command line and the per-line parser. Only
    diagnostics about the staged file are kept; findings in headers are
    dropped.
    """

    name = "external"
    accepted_exit_codes = frozenset({0})

    def __init__(self, executable: Optional[str], runner: IProcessRunnerPort, limits: ResourceLimit):
        """
        Initialize the adapter.

        Args:
            executable: Resolved tool path, None when the tool is missing
            runner: Bounded process runner
            limits: Timeout and memory ceiling for one tool run
        """
        self.executable = executable
        self.runner = runner
        self.limits = limits

    @property
    def available(self) -> bool:
        return self.executable is not None

    @abstractmethod
    def build_command(self, context: AnalyzerContext) -> List[str]:
        """Argument vector that analyzes context.filename."""
        pass

    @abstractmethod
    def parse_line(self, line: str, context: AnalyzerContext) -> Optional[Issue]:
        """
        Parse one output line.

        Returns:
            Issue, or None for lines that carry no diagnostic

        Raises:
            ToolOutputParseError: If a diagnostic line is malformed
        """
        pass

    def output_of(self, result: ProcessResult) -> str:
        return result.stdout

    def is_analyzed_file(self, path: str, context: AnalyzerContext) -> bool:
        return os.path.basename(path.strip()) == context.filename

    def parse(self, output: str, context: AnalyzerContext) -> List[Issue]:
        """Parse tool output, skipping lines that cannot be interpreted."""
        issues = []
        skipped = 0
        for line in output.splitlines():
            try:
                issue = self.parse_line(line, context)
            except ToolOutputParseError:
                skipped += 1
                continue
            if issue is not None:
                issues.append(issue)
        if skipped:
            logger.debug("Skipped unparseable tool output", tool=self.name, lines=skipped)
        return issues

    async def analyze(self, context: AnalyzerContext) -> List[Issue]:
        """
        Run the tool on the staged file.

        Raises:
            ToolUnavailableError: If the tool is missing, cannot start, times
                out, runs out of memory or fails without producing diagnostics
        """
        if not self.available:
            raise ToolUnavailableError(self.name, "not installed")

        result = await self.runner.run(self.build_command(context), context.directory, self.limits)
        if not result.spawned:
            raise ToolUnavailableError(self.name, result.error or "could not be started")
        if result.timed_out:
            raise ToolUnavailableError(self.name, f"timed out after {self.limits.timeout_seconds:g}s")
        if result.memory_exceeded:
            raise ToolUnavailableError(self.name, "exceeded its memory ceiling")

        issues = self.parse(self.output_of(result), context)
        if result.exit_code not in self.accepted_exit_codes and not issues:
            detail = next((line for line in result.stderr.splitlines() if line.strip()), "")
            raise ToolUnavailableError(self.name, f"exited with code {result.exit_code} {detail}".strip())

        logger.debug("Analyzer finished", tool=self.name, issues=len(issues), duration_ms=result.duration_ms)
        return issues
