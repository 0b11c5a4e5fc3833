"""
Unit tests for issue merging, filtering and output scrubbing.
"""

import pytest

from cppengine.domain.services import (
    IssueMerger,
    clamp_issue,
    count_by_severity,
    find_restricted_constructs,
    scrub_path,
)
from cppengine.domain.value_objects import Issue, Severity


pytestmark = pytest.mark.unit


def make_issue(line=1, severity=Severity.WARNING, tool="cppcheck", rule_id="rule", column=1):
    return Issue(line=line, column=column, severity=severity, message="m", rule_id=rule_id, tool=tool)


class TestClampIssue:
    """Tests for location clamping."""

    def test_inside_source_unchanged(self):
        issue = make_issue(line=3)
        assert clamp_issue(issue, 10) is issue

    def test_outside_source_zeroed(self):
        clamped = clamp_issue(make_issue(line=40, column=7), 10)
        assert (clamped.line, clamped.column) == (0, 0)


class TestIssueMerger:
    """Tests for IssueMerger."""

    def test_orders_by_severity_then_line(self):
        groups = [
            [make_issue(line=2, severity=Severity.STYLE), make_issue(line=9, severity=Severity.ERROR)],
            [make_issue(line=1, severity=Severity.WARNING, tool="clang-tidy")],
            [make_issue(line=5, severity=Severity.ERROR, tool="custom")],
        ]
        merged, total = IssueMerger().merge(groups, line_count=20)
        assert total == 4
        assert [(i.severity, i.line) for i in merged] == [
            (Severity.ERROR, 5),
            (Severity.ERROR, 9),
            (Severity.WARNING, 1),
            (Severity.STYLE, 2),
        ]

    def test_duplicates_from_different_tools_kept(self):
        groups = [[make_issue(tool="clang-tidy")], [make_issue(tool="cppcheck")]]
        merged, _ = IssueMerger().merge(groups, line_count=5)
        assert len(merged) == 2

    def test_severity_floor(self):
        groups = [[
            make_issue(severity=Severity.ERROR),
            make_issue(severity=Severity.WARNING),
            make_issue(severity=Severity.STYLE),
        ]]
        merged, total = IssueMerger(min_severity=Severity.WARNING).merge(groups, line_count=5)
        assert total == 2
        assert {i.severity for i in merged} == {Severity.ERROR, Severity.WARNING}

    def test_cap_keeps_most_severe(self):
        groups = [[make_issue(line=n, severity=Severity.INFO) for n in range(1, 6)] +
                  [make_issue(line=6, severity=Severity.ERROR)]]
        merged, total = IssueMerger(max_issues=2).merge(groups, line_count=10)
        assert total == 6
        assert len(merged) == 2
        assert merged[0].severity == Severity.ERROR

    def test_zero_cap(self):
        merged, total = IssueMerger(max_issues=0).merge([[make_issue()]], line_count=5)
        assert merged == []
        assert total == 1


class TestCountBySeverity:
    """Tests for count_by_severity."""

    def test_every_severity_present(self):
        counts = count_by_severity([make_issue(severity=Severity.ERROR)])
        assert set(counts) == {s.value for s in Severity}
        assert counts["error"] == 1
        assert sum(counts.values()) == 1


class TestScrubPath:
    """Tests for workspace path removal."""

    def test_workspace_prefix_removed(self):
        text = "/tmp/cppengine-abc/build/main.cpp:3:5: error: expected ';'"
        assert scrub_path(text, "/tmp/cppengine-abc/build") == "main.cpp:3:5: error: expected ';'"

    def test_longest_path_first(self):
        text = "/w/a/b/x.c and /w/y.c"
        assert scrub_path(text, "/w", "/w/a/b") == "x.c and y.c"

    def test_empty_paths_ignored(self):
        assert scrub_path("unchanged", "", None) == "unchanged"


class TestRestrictedConstructs:
    """Tests for find_restricted_constructs."""

    def test_detects_process_and_network_use(self):
        code = '#include <sys/socket.h>\nint main() { system("ls"); fork(); }\n'
        assert find_restricted_constructs(code) == ["system", "fork", "sockets"]

    def test_plain_program_clean(self):
        assert find_restricted_constructs("int main() { return 0; }") == []
