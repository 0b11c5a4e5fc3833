"""
Unit tests for the source scanner and structural metrics.
"""

import pytest

from cppengine.domain.metrics import (
    cognitive_complexity,
    compute_metrics,
    cyclomatic_complexity,
    maintainability_index,
    max_nesting_depth,
)
from cppengine.domain.source import SourceText, strip_comments_and_literals


pytestmark = pytest.mark.unit


SAMPLE = """#include <iostream>
#include <vector>

// Sums the even numbers
namespace util {
class Counter {
public:
    int count(const std::vector<int>& values) const {
        int total = 0;
        for (int v : values) {
            if (v % 2 == 0 && v > 0) {
                total += v;
            }
        }
        return total;
    }
};
}

int main() {
    /* entry point */
    std::vector<int> values{1, 2, 3, 4};
    util::Counter c;
    std::cout << c.count(values) << "\\n";
    return 0;
}
"""


class TestStripComments:
    """Tests for comment and literal blanking."""

    def test_offsets_preserved(self):
        code = 'int x = 1; // if (x) { }\nconst char* s = "while(1)";\n'
        stripped, _ = strip_comments_and_literals(code)
        assert len(stripped) == len(code)
        assert stripped.count("\n") == code.count("\n")
        assert "if" not in stripped
        assert "while" not in stripped

    def test_comment_lines_reported(self):
        code = "int a;\n/* one\n two */\nint b; // three\n"
        _, comment_lines = strip_comments_and_literals(code)
        assert comment_lines == {2, 3, 4}

    def test_digit_separator_is_not_a_char_literal(self):
        code = "int big = 1'000'000; if (big) {}\n"
        stripped, _ = strip_comments_and_literals(code)
        assert "if (big)" in stripped


class TestSourceText:
    """Tests for function detection and location lookups."""

    def test_functions_detected(self):
        source = SourceText(SAMPLE)
        names = [f.short_name for f in source.functions]
        assert names == ["count", "main"]

    def test_control_statements_are_not_functions(self):
        source = SourceText("void f() {\n  if (a) { }\n  while (b) { }\n}\n")
        assert [f.name for f in source.functions] == ["f"]

    def test_line_col_is_one_based(self):
        source = SourceText("ab\ncd\n")
        assert source.line_col(0) == (1, 1)
        assert source.line_col(4) == (2, 2)

    def test_enclosing_loops(self):
        code = "void f() {\n  for (;;) {\n    while (x) {\n      y();\n    }\n  }\n}\n"
        source = SourceText(code)
        assert source.enclosing_loops(code.index("y()")) == 2
        assert source.enclosing_loops(code.index("for")) == 0

    def test_single_statement_loop_bodies(self):
        code = "void f() {\n  for (;;)\n    while (x) y();\n  z();\n}\n"
        source = SourceText(code)
        assert source.enclosing_loops(code.index("y()")) == 2
        assert source.enclosing_loops(code.index("z()")) == 0

    def test_enclosing_loops_counts_deep_nesting(self):
        depth = 300
        code = "int main() {\n" + "for (;;) {\n" * depth + "x();\n" + "}\n" * depth + "}\n"
        source = SourceText(code)
        assert len(source.loop_bodies) == depth
        assert source.enclosing_loops(code.index("x()")) == depth
        assert source.enclosing_loops(code.rindex("}")) == 0


class TestComplexity:
    """Tests for the complexity measures."""

    def test_cyclomatic_counts_decisions(self):
        assert cyclomatic_complexity("int f() { return 0; }") == 1
        assert cyclomatic_complexity("if (a && b) {} else if (c) {}") == 4

    def test_cognitive_penalizes_nesting(self):
        flat = "{ if (a) {} if (b) {} }"
        nested = "{ if (a) { if (b) {} } }"
        assert cognitive_complexity(nested) > cognitive_complexity(flat)

    def test_max_nesting_depth(self):
        assert max_nesting_depth("{ { { } } { } }") == 3

    def test_maintainability_index_bounded(self):
        assert 0.0 <= maintainability_index(10_000.0, 80, 2_000) <= 100.0
        assert maintainability_index(0.0, 1, 0) == 100.0


class TestComputeMetrics:
    """Tests for compute_metrics."""

    def test_all_metrics_present(self):
        metrics = compute_metrics(SourceText(SAMPLE))
        for key in (
            "lines_of_code",
            "comment_lines",
            "blank_lines",
            "cyclomatic_complexity",
            "cognitive_complexity",
            "max_nesting_depth",
            "function_count",
            "class_count",
            "namespace_count",
            "template_count",
            "include_count",
            "halstead_volume",
            "maintainability_index",
        ):
            assert key in metrics

    def test_structural_counts(self):
        metrics = compute_metrics(SourceText(SAMPLE))
        assert metrics["function_count"] == 2
        assert metrics["class_count"] == 1
        assert metrics["namespace_count"] == 1
        assert metrics["include_count"] == 2
        assert metrics["comment_lines"] == 2
        assert metrics["blank_lines"] == 2

    def test_metrics_deterministic(self):
        assert compute_metrics(SourceText(SAMPLE)) == compute_metrics(SourceText(SAMPLE))
