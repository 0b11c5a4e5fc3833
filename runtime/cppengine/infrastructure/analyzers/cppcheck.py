"""
cppcheck adapter.

Runs cppcheck for defect patterns with a fixed output template and maps
its severity vocabulary onto the shared scale.
"""

import re
from typing import List, Optional

from cppengine.domain.errors import ToolOutputParseError
from cppengine.domain.ports import AnalyzerContext
from cppengine.domain.value_objects import Issue, Language, ProcessResult, Severity
from cppengine.infrastructure.analyzers.base import LOCATION_PREFIX_RE, ExternalToolAnalyzer


TEMPLATE = "{file}:{line}:{column}: {severity}: {message} [{id}]"

DIAGNOSTIC_RE = re.compile(
    r"^(?P<file>[^:\n]+?):(?P<line>\d+):(?P<column>\d+):\s+"
    r"(?P<severity>\w+):\s+(?P<message>.*?)\s+\[(?P<rule>[\w.-]+)\]\s*$"
)

SEVERITY_MAP = {
    "error": Severity.ERROR,
    "warning": Severity.WARNING,
    "style": Severity.STYLE,
    "performance": Severity.PERFORMANCE,
    "portability": Severity.WARNING,
    "information": Severity.INFO,
}

# cppcheck only knows the ISO dialect names
_STANDARDS = {
    Language.CPP: ("c++03", "c++11", "c++14", "c++17", "c++20"),
    Language.C: ("c89", "c99", "c11"),
}


def cppcheck_standard(standard: str, language: Language) -> str:
    """Closest dialect name cppcheck accepts."""
    iso = standard.replace("gnu", "c")
    supported = _STANDARDS[language]
    if iso in supported:
        return iso
    if iso in ("c++2a", "c++23", "c++2b", "c++26", "c++2c"):
        return "c++20"
    if iso in ("c17", "c18", "c23", "c2x"):
        return "c11"
    return supported[-1]


class CppcheckAnalyzer(ExternalToolAnalyzer):
    """cppcheck behind the analyzer port."""

    name = "cppcheck"

    def __init__(self, executable, runner, limits, enable: str = "warning,style,performance,portability"):
        super().__init__(executable, runner, limits)
        self.enable = enable

    def build_command(self, context: AnalyzerContext) -> List[str]:
        return [
            self.executable,
            f"--enable={self.enable}",
            f"--std={cppcheck_standard(context.standard, context.language)}",
            f"--language={'c++' if context.language == Language.CPP else 'c'}",
            "--inline-suppr",
            "--quiet",
            "--suppress=missingIncludeSystem",
            "--suppress=missingInclude",
            "--suppress=unmatchedSuppression",
            "--suppress=checkersReport",
            f"--template={TEMPLATE}",
            context.filename,
        ]

    def output_of(self, result: ProcessResult) -> str:
        # diagnostics go to stderr
        return result.stderr

    def parse_line(self, line: str, context: AnalyzerContext) -> Optional[Issue]:
        if not LOCATION_PREFIX_RE.match(line):
            return None
        match = DIAGNOSTIC_RE.match(line)
        if match is None:
            raise ToolOutputParseError(self.name, line)
        severity = SEVERITY_MAP.get(match.group("severity"))
        if severity is None:
            raise ToolOutputParseError(self.name, line, f"unknown severity {match.group('severity')!r}")
        if not self.is_analyzed_file(match.group("file"), context):
            return None
        return Issue(
            line=int(match.group("line")),
            column=int(match.group("column")),
            severity=severity,
            message=match.group("message"),
            rule_id=match.group("rule"),
            tool=self.name,
            metadata={"category": match.group("severity")},
        )
