"""
Unit tests for the built-in checks.
"""

import time

import pytest

from cppengine.domain.rules import RULES, RuleConfig, run_rules, select_rules
from cppengine.domain.source import SourceText
from cppengine.domain.value_objects import Language, RuleFamily, Severity

from conftest import BUFFER_OVERFLOW_C


pytestmark = pytest.mark.unit


def check(code: str, rule_id: str, language: Language = Language.CPP, config: RuleConfig = None):
    rules = [r for r in select_rules(RuleFamily, language) if r.rule_id == rule_id]
    assert rules, f"rule {rule_id} not selected"
    return run_rules(SourceText(code), rules, config)


class TestRegistry:
    """Tests for rule registration and selection."""

    def test_rule_ids_unique_and_namespaced(self):
        ids = [r.rule_id for r in RULES]
        assert len(ids) == len(set(ids))
        assert all(i.startswith("custom/") for i in ids)

    def test_cpp_only_rules_skipped_for_c(self):
        c_ids = {r.rule_id for r in select_rules([RuleFamily.CUSTOM], Language.C)}
        cpp_ids = {r.rule_id for r in select_rules([RuleFamily.CUSTOM], Language.CPP)}
        assert "custom/best-practice/null-macro" not in c_ids
        assert "custom/best-practice/null-macro" in cpp_ids

    def test_select_by_family(self):
        families = {r.family for r in select_rules([RuleFamily.PERFORMANCE])}
        assert families == {RuleFamily.PERFORMANCE}


class TestBufferOverflow:
    """Tests for the buffer overflow check."""

    def test_strcpy_into_fixed_buffer(self):
        issues = check(BUFFER_OVERFLOW_C, "custom/security/buffer-overflow", Language.C)
        assert len(issues) == 1
        issue = issues[0]
        assert (issue.line, issue.column) == (5, 5)
        assert issue.severity == Severity.ERROR
        assert issue.metadata["cwe"] == "CWE-120"
        assert issue.metadata["category"] == "buffer-overflow"
        assert "buf[10]" in issue.message

    def test_overflow_not_reported_twice_as_unsafe_function(self):
        issues = check(BUFFER_OVERFLOW_C, "custom/security/unsafe-function", Language.C)
        assert issues == []

    def test_gets_always_reported(self):
        code = "int main(void) {\n    char line[64];\n    gets(line);\n    return 0;\n}\n"
        issues = check(code, "custom/security/buffer-overflow", Language.C)
        assert [i.line for i in issues] == [3]

    def test_scanf_with_width_is_fine(self):
        code = 'int main(void) {\n    char s[8];\n    scanf("%7s", s);\n    return 0;\n}\n'
        assert check(code, "custom/security/buffer-overflow", Language.C) == []

    def test_scanf_without_width(self):
        code = 'int main(void) {\n    char s[8];\n    scanf("%s", s);\n    return 0;\n}\n'
        issues = check(code, "custom/security/buffer-overflow", Language.C)
        assert len(issues) == 1
        assert issues[0].metadata["function"] == "scanf"


class TestMemoryLeaks:
    """Tests for the memory leak and deallocation checks."""

    def test_never_released(self):
        code = "void f() {\n    int *p = new int[10];\n    p[0] = 1;\n}\n"
        issues = check(code, "custom/security/memory-leak")
        assert len(issues) == 1
        assert issues[0].line == 2
        assert issues[0].metadata["variable"] == "p"

    def test_released_allocation_is_clean(self):
        code = "void f() {\n    int *p = new int;\n    *p = 1;\n    delete p;\n}\n"
        assert check(code, "custom/security/memory-leak") == []

    def test_early_return_leaks(self):
        code = (
            "#include <stdlib.h>\n"
            "int g(int n) {\n"
            "    int *data = (int*)malloc(n * sizeof(int));\n"
            "    if (n < 0) {\n"
            "        return -1;\n"
            "    }\n"
            "    free(data);\n"
            "    return 0;\n"
            "}\n"
        )
        issues = check(code, "custom/security/memory-leak", Language.C)
        assert len(issues) == 1
        assert issues[0].metadata["return_line"] == 5

    def test_returned_pointer_escapes(self):
        code = "int *make() {\n    int *p = new int(3);\n    return p;\n}\n"
        assert check(code, "custom/security/memory-leak") == []

    def test_array_released_with_scalar_delete(self):
        code = "void f() {\n    int *p = new int[4];\n    delete p;\n}\n"
        issues = check(code, "custom/security/mismatched-deallocation")
        assert len(issues) == 1
        assert issues[0].line == 3
        assert issues[0].severity == Severity.ERROR


class TestInputValidation:
    """Tests for the input validation check."""

    def test_unchecked_read(self):
        code = "#include <iostream>\nint main() {\n    int x;\n    std::cin >> x;\n    return x;\n}\n"
        issues = check(code, "custom/security/input-validation")
        assert [i.line for i in issues] == [4]

    def test_checked_read(self):
        code = (
            "#include <iostream>\n"
            "int main() {\n"
            "    int x;\n"
            "    if (!(std::cin >> x)) return 1;\n"
            "    return x;\n"
            "}\n"
        )
        assert check(code, "custom/security/input-validation") == []


class TestPerformanceChecks:
    """Tests for a sample of the performance checks."""

    def test_push_back_without_reserve(self):
        code = (
            "#include <vector>\n"
            "int main() {\n"
            "    std::vector<int> v;\n"
            "    for (int i = 0; i < 100; ++i) {\n"
            "        v.push_back(i);\n"
            "    }\n"
            "    return 0;\n"
            "}\n"
        )
        issues = check(code, "custom/performance/vector-reserve")
        assert len(issues) == 1
        assert issues[0].severity == Severity.PERFORMANCE

    def test_reserve_silences_check(self):
        code = (
            "#include <vector>\n"
            "int main() {\n"
            "    std::vector<int> v;\n"
            "    v.reserve(100);\n"
            "    for (int i = 0; i < 100; ++i) {\n"
            "        v.push_back(i);\n"
            "    }\n"
            "    return 0;\n"
            "}\n"
        )
        assert check(code, "custom/performance/vector-reserve") == []


class TestStyleChecks:
    """Tests for the style checks."""

    def test_tab_indentation_reported_once(self):
        code = "int main() {\n\tint a = 0;\n\treturn a;\n}\n"
        issues = check(code, "custom/style/tab-indentation")
        assert len(issues) == 1
        assert issues[0].line == 2
        assert issues[0].metadata["lines"] == 2

    def test_line_length_threshold(self):
        code = "int x;\n// " + "x" * 30 + "\n"
        issues = check(code, "custom/style/line-length", config=RuleConfig(max_line_length=20))
        assert [i.line for i in issues] == [2]


class TestRunRules:
    """Tests for run_rules."""

    def test_deterministic(self):
        rules = select_rules(RuleFamily, Language.C)
        first = run_rules(SourceText(BUFFER_OVERFLOW_C), rules)
        second = run_rules(SourceText(BUFFER_OVERFLOW_C), rules)
        assert first == second
        assert all(i.tool == "custom" for i in first)


class TestLargeInputs:
    """The checks stay fast on pathological but valid sources."""

    def test_deeply_nested_loops(self):
        depth = 2000
        code = "int main() {\n" + "for (;;) {\n" * depth + "}\n" * depth + "}\n"
        source = SourceText(code)

        start = time.perf_counter()
        issues = run_rules(source, select_rules(RuleFamily, Language.CPP))
        elapsed = time.perf_counter() - start

        assert elapsed < 5.0
        nested = [i for i in issues if i.rule_id == "custom/performance/nested-loops"]
        assert [i.line for i in nested] == [4]
