"""
Domain Services

Stateless services for combining analyzer output: location clamping,
merging, ordering, severity filtering and counting.
"""

import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from cppengine.domain.value_objects import Issue, Severity


def clamp_issue(issue: Issue, line_count: int) -> Issue:
    """
    Zero out a location that does not fall inside the analyzed source.

    Args:
        issue: Issue as reported by an analyzer
        line_count: Number of lines in the analyzed source

    Returns:
        The same issue, or a copy with line and column set to 0
    """
    if 1 <= issue.line <= line_count:
        return issue
    return replace(issue, line=0, column=0)


def issue_sort_key(issue: Issue) -> Tuple:
    """Severity rank, then line, with column, tool and rule as tie-breakers."""
    return (issue.severity.rank, issue.line, issue.column, issue.tool, issue.rule_id, issue.message)


class IssueMerger:
    """
    Merges issue lists from several analyzers into one ranked list.

    Duplicates reported by different tools are kept so every tool's view
    of a problem stays visible.
    """

    def __init__(self, min_severity: Optional[Severity] = None, max_issues: Optional[int] = None):
        self.min_severity = min_severity
        self.max_issues = max_issues

    def passes_floor(self, issue: Issue) -> bool:
        if self.min_severity is None:
            return True
        return issue.severity.rank <= self.min_severity.rank

    def merge(self, groups: Iterable[Iterable[Issue]], line_count: int) -> Tuple[List[Issue], int]:
        """
        Merge issue groups.

        Args:
            groups: Issue lists, one per analyzer
            line_count: Number of lines in the analyzed source

        Returns:
            Tuple of (ordered and capped issues, number of issues before the cap)
        """
        merged = [
            clamp_issue(issue, line_count)
            for group in groups
            for issue in group
            if self.passes_floor(issue)
        ]
        merged.sort(key=issue_sort_key)
        total = len(merged)
        if self.max_issues is not None:
            merged = merged[: self.max_issues]
        return merged, total


def count_by_severity(issues: Iterable[Issue]) -> Dict[str, int]:
    """Number of issues per severity, with every severity present."""
    counts = {severity.value: 0 for severity in Severity}
    for issue in issues:
        counts[issue.severity.value] += 1
    return counts


def scrub_path(text: str, *paths: str) -> str:
    """Remove workspace paths from tool output."""
    for path in sorted(filter(None, paths), key=len, reverse=True):
        text = text.replace(path.rstrip("/") + "/", "").replace(path.rstrip("/"), ".")
    return text


_RESTRICTED_PATTERNS = (
    ("system", re.compile(r"\bsystem\s*\(")),
    ("fork", re.compile(r"\b(?:v?fork|clone)\s*\(")),
    ("exec", re.compile(r"\bexec(?:l|lp|le|v|vp|vpe|ve)\s*\(")),
    ("popen", re.compile(r"\bpopen\s*\(")),
    ("inline-asm", re.compile(r"\b(?:__asm__|asm)\s*(?:volatile\s*)?\(")),
    ("sockets", re.compile(r"#\s*include\s*<(?:sys/socket|netinet/in|arpa/inet)\.h>")),
    ("ptrace", re.compile(r"\bptrace\s*\(")),
)


def find_restricted_constructs(code: str) -> List[str]:
    """Names of process, network and assembly constructs used by code."""
    return [name for name, pattern in _RESTRICTED_PATTERNS if pattern.search(code)]
