"""
clang-tidy adapter.

Runs clang-tidy for modernization and best-practice diagnostics and maps
its warning/error vocabulary onto the shared severity scale.
"""

import re
from typing import List, Optional

from cppengine.domain.errors import ToolOutputParseError
from cppengine.domain.ports import AnalyzerContext
from cppengine.domain.value_objects import Issue, Language, Severity
from cppengine.infrastructure.analyzers.base import LOCATION_PREFIX_RE, ExternalToolAnalyzer


DIAGNOSTIC_RE = re.compile(
    r"^(?P<file>[^:\n]+?):(?P<line>\d+):(?P<column>\d+):\s+"
    r"(?P<severity>fatal error|error|warning|note|remark):\s+"
    r"(?P<message>.*?)(?:\s+\[(?P<rule>[\w.,+-]+)\])?\s*$"
)

SEVERITY_MAP = {
    "fatal error": Severity.ERROR,
    "error": Severity.ERROR,
    "warning": Severity.WARNING,
    "remark": Severity.INFO,
}


class ClangTidyAnalyzer(ExternalToolAnalyzer):
    """clang-tidy behind the analyzer port."""

    name = "clang-tidy"
    # 1 means clang-tidy reported compiler errors alongside its findings
    accepted_exit_codes = frozenset({0, 1})

    def __init__(self, executable, runner, limits, checks: str = "*"):
        super().__init__(executable, runner, limits)
        self.checks = checks

    def build_command(self, context: AnalyzerContext) -> List[str]:
        command = [
            self.executable,
            context.filename,
            f"--checks={self.checks}",
            "--quiet",
            "--",
            f"-std={context.standard}",
        ]
        if context.language == Language.C:
            command += ["-x", "c"]
        return command

    def parse_line(self, line: str, context: AnalyzerContext) -> Optional[Issue]:
        if not LOCATION_PREFIX_RE.match(line):
            return None
        match = DIAGNOSTIC_RE.match(line)
        if match is None:
            raise ToolOutputParseError(self.name, line)
        severity = match.group("severity")
        if severity == "note" or not self.is_analyzed_file(match.group("file"), context):
            return None

        rule = match.group("rule")
        rule_id = rule.split(",")[0] if rule else "clang-diagnostic-error"
        return Issue(
            line=int(match.group("line")),
            column=int(match.group("column")),
            severity=SEVERITY_MAP[severity],
            message=match.group("message"),
            rule_id=rule_id,
            tool=self.name,
            metadata={"category": rule_id.split("-")[0]},
        )
