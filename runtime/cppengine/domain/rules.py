"""
Built-in Checks

Heuristic checks that complement the external analyzers. Every check is a
pure function of the source text, registered with a stable rule id under
the ``custom/`` namespace and tagged with a family so the security and
performance passes can select a subset.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from cppengine.domain.metrics import cognitive_complexity, cyclomatic_complexity
from cppengine.domain.source import FunctionSpan, SourceText
from cppengine.domain.value_objects import Issue, Language, RuleFamily, Severity


TOOL_NAME = "custom"


@dataclass(frozen=True)
class RuleConfig:
    """Thresholds shared by all checks."""

    max_cyclomatic_complexity: int = 10
    max_cognitive_complexity: int = 15
    max_function_lines: int = 80
    max_line_length: int = 120
    large_array_elements: int = 10_000


@dataclass(frozen=True)
class Rule:
    rule_id: str
    family: RuleFamily
    severity: Severity
    summary: str
    check: Callable[["RuleRun"], Iterable[Issue]] = field(compare=False)
    cpp_only: bool = False


@dataclass
class RuleRun:
    """One rule applied to one source file."""

    rule: Rule
    source: SourceText
    config: RuleConfig

    def issue(self, offset: int, message: str, severity: Optional[Severity] = None, **metadata) -> Issue:
        line, column = self.source.line_col(offset)
        metadata.setdefault("family", self.rule.family.value)
        return Issue(
            line=line,
            column=column,
            severity=severity or self.rule.severity,
            message=message,
            rule_id=self.rule.rule_id,
            tool=TOOL_NAME,
            metadata=metadata,
        )

    def issue_at_line(self, line: int, message: str, **metadata) -> Issue:
        metadata.setdefault("family", self.rule.family.value)
        return Issue(
            line=line,
            column=1 if line else 0,
            severity=self.rule.severity,
            message=message,
            rule_id=self.rule.rule_id,
            tool=TOOL_NAME,
            metadata=metadata,
        )


RULES: List[Rule] = []


def rule(rule_id: str, family: RuleFamily, severity: Severity, summary: str, cpp_only: bool = False):
    """Register a check function under a rule id."""

    def decorator(func: Callable[[RuleRun], Iterable[Issue]]):
        RULES.append(Rule(rule_id, family, severity, summary, func, cpp_only))
        return func

    return decorator


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

_FIXED_ARRAY_RE = re.compile(r"\bchar\s+([A-Za-z_]\w*)\s*\[\s*(\w+)\s*\]")
_UNBOUNDED_COPY_RE = re.compile(r"\b(strcpy|strcat|sprintf|vsprintf)\s*\(\s*([A-Za-z_]\w*)")
_GETS_RE = re.compile(r"\bgets\s*\(\s*([A-Za-z_]\w*)?")
_SCANF_RE = re.compile(r"\b(scanf|sscanf|fscanf)\s*\(")
_CIN_INTO_RE = re.compile(r"\bcin\s*>>\s*([A-Za-z_]\w*)")
_STRLEN_COPY_RE = re.compile(
    r"\b(memcpy|strncpy|memmove)\s*\(\s*([A-Za-z_]\w*)\s*,[^;]*?,\s*(?:[^;]*\bstrlen\s*\()"
)


def _fixed_arrays(source: SourceText) -> Dict[str, str]:
    return {m.group(1): m.group(2) for m in _FIXED_ARRAY_RE.finditer(source.code)}


def _call_args(source: SourceText, open_paren: int) -> str:
    """Original text of a call's argument list starting at its '('."""
    depth = 0
    for i in range(open_paren, len(source.code)):
        ch = source.code[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return source.text[open_paren + 1:i]
    return source.text[open_paren + 1:]


def _unbounded_scanf(source: SourceText, match: re.Match) -> bool:
    args = _call_args(source, match.end() - 1)
    return re.search(r"%s", args) is not None or re.search(r"%\[", args) is not None


def _in_loop(source: SourceText, offset: int) -> bool:
    return source.enclosing_loops(offset) > 0


def _function_body(source: SourceText, span: FunctionSpan) -> str:
    return source.code[span.body_start:span.body_end + 1]


# ---------------------------------------------------------------------------
# Security
# ---------------------------------------------------------------------------

@rule("custom/security/buffer-overflow", RuleFamily.SECURITY, Severity.ERROR,
      "Unbounded write into a fixed-size buffer")
def check_buffer_overflow(run: RuleRun) -> Iterator[Issue]:
    source = run.source
    arrays = _fixed_arrays(source)
    meta = {"category": "buffer-overflow", "cwe": "CWE-120"}

    for match in _UNBOUNDED_COPY_RE.finditer(source.code):
        func, dest = match.groups()
        if dest in arrays:
            yield run.issue(
                match.start(),
                f"{func}() copies into fixed-size buffer '{dest}[{arrays[dest]}]' "
                f"without checking the source length",
                function=func,
                **meta,
            )

    for match in _GETS_RE.finditer(source.code):
        yield run.issue(
            match.start(),
            "gets() cannot limit input length and always risks overflowing its buffer",
            function="gets",
            **meta,
        )

    for match in _SCANF_RE.finditer(source.code):
        if _unbounded_scanf(source, match):
            yield run.issue(
                match.start(),
                f"{match.group(1)}() reads a string without a field width",
                function=match.group(1),
                **meta,
            )

    for match in _CIN_INTO_RE.finditer(source.code):
        if match.group(1) in arrays:
            yield run.issue(
                match.start(),
                f"Reading into fixed-size buffer '{match.group(1)}' with >> has no length limit",
                function="operator>>",
                **meta,
            )

    for match in _STRLEN_COPY_RE.finditer(source.code):
        func, dest = match.groups()
        if dest in arrays:
            yield run.issue(
                match.start(),
                f"{func}() length is taken from the source, not from buffer '{dest}'",
                severity=Severity.WARNING,
                function=func,
                **meta,
            )


_UNSAFE_FUNCTIONS = {
    "strcpy": "strncpy or std::string",
    "strcat": "strncat or std::string",
    "sprintf": "snprintf",
    "vsprintf": "vsnprintf",
    "strtok": "strtok_r or std::string_view",
    "atoi": "std::stoi or strtol",
}
_UNSAFE_RE = re.compile(r"\b(" + "|".join(_UNSAFE_FUNCTIONS) + r")\s*\(")


@rule("custom/security/unsafe-function", RuleFamily.SECURITY, Severity.WARNING,
      "Use of a C library function without bounds or error checking")
def check_unsafe_functions(run: RuleRun) -> Iterator[Issue]:
    arrays = _fixed_arrays(run.source)
    for match in _UNSAFE_RE.finditer(run.source.code):
        func = match.group(1)
        copy = _UNBOUNDED_COPY_RE.match(run.source.code, match.start())
        if copy and copy.group(2) in arrays:
            # reported as buffer overflow
            continue
        yield run.issue(
            match.start(),
            f"{func}() is unsafe, prefer {_UNSAFE_FUNCTIONS[func]}",
            category="unsafe-function",
            cwe="CWE-676",
            function=func,
        )


_COMMAND_RE = re.compile(r"\b(system|popen|execl|execlp|execle|execv|execvp|execve|fork)\s*\(")


@rule("custom/security/command-execution", RuleFamily.SECURITY, Severity.WARNING,
      "Spawning processes or shell commands")
def check_command_execution(run: RuleRun) -> Iterator[Issue]:
    for match in _COMMAND_RE.finditer(run.source.code):
        func = match.group(1)
        yield run.issue(
            match.start(),
            f"{func}() starts another process and may allow command injection",
            category="command-injection",
            cwe="CWE-78",
            function=func,
        )


@rule("custom/security/format-string", RuleFamily.SECURITY, Severity.WARNING,
      "Non-literal format string")
def check_format_string(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\bprintf\s*\(\s*([A-Za-z_]\w*)\s*\)", run.source.code):
        yield run.issue(
            match.start(),
            f"printf() uses '{match.group(1)}' as its format string",
            category="format-string",
            cwe="CWE-134",
        )


@rule("custom/security/weak-random", RuleFamily.SECURITY, Severity.INFO,
      "rand() is predictable")
def check_weak_random(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\b(rand|srand)\s*\(", run.source.code):
        yield run.issue(
            match.start(),
            f"{match.group(1)}() is a weak generator, prefer <random>",
            category="weak-random",
            cwe="CWE-338",
        )


_ALLOC_RE = re.compile(
    r"\b([A-Za-z_]\w*)\s*=\s*(?:\([^;()]*\)\s*)?"
    r"(?:(?P<new>new\b(?:\s*\(\s*std::nothrow\s*\))?\s*[\w:<>]+\s*(?P<array>\[)?)"
    r"|(?P<c>(?:malloc|calloc|realloc)\s*\())"
)


@dataclass(frozen=True)
class _Allocation:
    name: str
    offset: int
    end: int
    is_array: bool
    c_style: bool


def _allocations(source: SourceText, span: FunctionSpan) -> List[_Allocation]:
    body = _function_body(source, span)
    found = []
    for match in _ALLOC_RE.finditer(body):
        found.append(
            _Allocation(
                name=match.group(1),
                offset=span.body_start + match.start(1),
                end=span.body_start + match.end(),
                is_array=match.group("array") is not None,
                c_style=match.group("c") is not None,
            )
        )
    return found


def _releases(body: str, name: str) -> List[re.Match]:
    pattern = (
        rf"\bdelete\s*(?P<array>\[\s*\])?\s*{re.escape(name)}\b"
        rf"|\bfree\s*\(\s*{re.escape(name)}\s*\)"
    )
    return list(re.finditer(pattern, body))


def _escapes(body: str, name: str) -> bool:
    escaped = re.escape(name)
    patterns = (
        rf"\breturn\s+{escaped}\s*;",
        rf"(?:unique_ptr|shared_ptr)\s*<[^>]*>\s*\w*\s*[({{]\s*{escaped}\s*[)}}]",
        rf"\.\s*reset\s*\(\s*{escaped}\s*\)",
        rf"(?:->|\.)\s*\w+\s*=\s*{escaped}\s*;",
        rf"\b\w+\s*=\s*{escaped}\s*;",
        rf"\b(?:push_back|emplace_back|insert|push)\s*\(\s*{escaped}\s*\)",
    )
    return any(re.search(p, body) for p in patterns)


@rule("custom/security/memory-leak", RuleFamily.SECURITY, Severity.WARNING,
      "Heap allocation not released on every path")
def check_memory_leaks(run: RuleRun) -> Iterator[Issue]:
    source = run.source
    meta = {"category": "memory-leak", "cwe": "CWE-401"}
    for span in source.functions:
        body = _function_body(source, span)
        for alloc in _allocations(source, span):
            if _escapes(body, alloc.name):
                continue
            relative_end = alloc.end - span.body_start
            releases = [m for m in _releases(body, alloc.name) if m.start() > relative_end]
            if not releases:
                yield run.issue(
                    alloc.offset,
                    f"Memory allocated for '{alloc.name}' is never released",
                    variable=alloc.name,
                    **meta,
                )
                continue
            first_release = releases[0].start()
            early = re.search(r"\breturn\b", body[relative_end:first_release])
            if early:
                return_line = source.line_of(span.body_start + relative_end + early.start())
                yield run.issue(
                    alloc.offset,
                    f"'{alloc.name}' leaks when the function returns early at line {return_line}",
                    variable=alloc.name,
                    return_line=return_line,
                    **meta,
                )


@rule("custom/security/mismatched-deallocation", RuleFamily.SECURITY, Severity.ERROR,
      "Deallocation does not match the allocation form", cpp_only=True)
def check_mismatched_deallocation(run: RuleRun) -> Iterator[Issue]:
    source = run.source
    for span in source.functions:
        body = _function_body(source, span)
        for alloc in _allocations(source, span):
            for release in _releases(body, alloc.name):
                text = release.group(0)
                offset = span.body_start + release.start()
                if alloc.c_style and text.startswith("delete"):
                    message = f"'{alloc.name}' comes from malloc-style allocation but is released with delete"
                elif not alloc.c_style and text.startswith("free"):
                    message = f"'{alloc.name}' comes from new but is released with free()"
                elif alloc.is_array and release.group("array") is None and text.startswith("delete"):
                    message = f"'{alloc.name}' is an array allocated with new[] but released with delete"
                elif not alloc.is_array and not alloc.c_style and release.group("array") is not None:
                    message = f"'{alloc.name}' is released with delete[] but was not allocated with new[]"
                else:
                    continue
                yield run.issue(offset, message, category="memory-management", cwe="CWE-762",
                                variable=alloc.name)


_INPUT_RE = re.compile(r"\bcin\s*>>|\b(?:scanf|fscanf)\s*\(")
_VALIDATION_PATTERNS = (
    r"\bcin\s*\.\s*(?:fail|good|bad|clear)\s*\(",
    r"!\s*(?:std::)?cin\b",
    r"\b(?:if|while)\s*\(\s*!?\s*\(?\s*(?:std::)?cin\b",
    r"\b(?:if|while)\s*\(\s*!?\s*\(?\s*f?scanf\s*\(",
    r"\bf?scanf\s*\([^;]*\)\s*(?:==|!=|<=|>=|<|>)",
    r"=\s*f?scanf\s*\(",
)


@rule("custom/security/input-validation", RuleFamily.SECURITY, Severity.WARNING,
      "Input read without checking for failure")
def check_input_validation(run: RuleRun) -> Iterator[Issue]:
    source = run.source
    checked: Dict[Tuple[int, int], bool] = {}
    for match in _INPUT_RE.finditer(source.code):
        span = source.function_at(match.start())
        bounds = (span.body_start, span.body_end + 1) if span else (0, len(source.code))
        if bounds not in checked:
            scope = source.code[bounds[0]:bounds[1]]
            checked[bounds] = any(re.search(p, scope) for p in _VALIDATION_PATTERNS)
        if not checked[bounds]:
            yield run.issue(
                match.start(),
                "Input is used without checking whether the read succeeded",
                category="input-validation",
                cwe="CWE-20",
            )


# ---------------------------------------------------------------------------
# Performance
# ---------------------------------------------------------------------------

_VECTOR_DECL_RE = re.compile(r"\b(?:std::)?vector\s*<[^;>]*(?:<[^;>]*>)?[^;>]*>\s*([A-Za-z_]\w*)")
_STRING_DECL_RE = re.compile(r"\b(?:std::)?string\s+([A-Za-z_]\w*)")
_LOOP_RE = re.compile(r"\b(for|while)\s*\(")


@rule("custom/performance/vector-reserve", RuleFamily.PERFORMANCE, Severity.PERFORMANCE,
      "push_back in a loop without reserve()")
def check_vector_reserve(run: RuleRun) -> Iterator[Issue]:
    code = run.source.code
    vectors = set(_VECTOR_DECL_RE.findall(code))
    reserved = set(re.findall(r"\b([A-Za-z_]\w*)\s*\.\s*reserve\s*\(", code))
    reported = set()
    for match in re.finditer(r"\b([A-Za-z_]\w*)\s*\.\s*(push_back|emplace_back)\s*\(", code):
        name = match.group(1)
        if name not in vectors or name in reported or name in reserved:
            continue
        if _in_loop(run.source, match.start()):
            reported.add(name)
            yield run.issue(
                match.start(),
                f"'{name}' grows inside a loop without reserve(), causing repeated reallocation",
                category="allocation",
            )


@rule("custom/performance/string-concat-in-loop", RuleFamily.PERFORMANCE, Severity.PERFORMANCE,
      "String concatenation that copies inside a loop")
def check_string_concat(run: RuleRun) -> Iterator[Issue]:
    code = run.source.code
    strings = set(_STRING_DECL_RE.findall(code))
    for name in sorted(strings):
        escaped = re.escape(name)
        for match in re.finditer(rf"\b{escaped}\s*=\s*{escaped}\s*\+", code):
            if _in_loop(run.source, match.start()):
                yield run.issue(
                    match.start(),
                    f"'{name} = {name} + ...' copies the whole string each iteration, use +=",
                    category="copy",
                )


@rule("custom/performance/size-in-loop-condition", RuleFamily.PERFORMANCE, Severity.PERFORMANCE,
      "size() re-evaluated in a loop condition")
def check_size_in_condition(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\bfor\s*\([^;]*;[^;]*\b\w+\s*(?:\.|->)\s*(?:size|length)\s*\(\s*\)[^;]*;", run.source.code):
        yield run.issue(
            match.start(),
            "Container size is recomputed on every iteration of the loop condition",
            category="loop",
        )


_ARRAY_DECL_RE = re.compile(
    r"\b(?:unsigned\s+|signed\s+)?(?:int|char|float|double|long|short|bool|long\s+long)\s+"
    r"([A-Za-z_]\w*)\s*\[\s*(\d+)\s*\](?:\s*\[\s*(\d+)\s*\])?"
)


@rule("custom/performance/large-stack-array", RuleFamily.PERFORMANCE, Severity.PERFORMANCE,
      "Large array on the stack")
def check_large_arrays(run: RuleRun) -> Iterator[Issue]:
    source = run.source
    for match in _ARRAY_DECL_RE.finditer(source.code):
        elements = int(match.group(2)) * int(match.group(3) or 1)
        if elements <= run.config.large_array_elements:
            continue
        if source.function_at(match.start()) is None:
            continue
        prefix = source.code[max(0, match.start() - 16):match.start()]
        if "static" in prefix:
            continue
        yield run.issue(
            match.start(),
            f"Array '{match.group(1)}' has {elements} elements on the stack, consider std::vector",
            category="memory",
            elements=elements,
        )


@rule("custom/performance/nested-loops", RuleFamily.PERFORMANCE, Severity.PERFORMANCE,
      "Deeply nested loops")
def check_nested_loops(run: RuleRun) -> Iterator[Issue]:
    source = run.source
    for match in _LOOP_RE.finditer(source.code):
        depth = source.enclosing_loops(match.start())
        if depth == 2:
            yield run.issue(
                match.start(),
                "Triple-nested loop, running time grows cubically with input size",
                category="algorithm",
                depth=depth + 1,
            )


_BY_VALUE_RE = re.compile(
    r"(?:^|[(,])\s*(?:const\s+)?(?:std::)?(vector|string|map|set|unordered_map|unordered_set|list|deque)\b"
    r"(?:\s*<[^()]*?>)?\s+([A-Za-z_]\w*)\s*(?=[,)=]|$)"
)


@rule("custom/performance/pass-by-value", RuleFamily.PERFORMANCE, Severity.PERFORMANCE,
      "Container passed by value", cpp_only=True)
def check_pass_by_value(run: RuleRun) -> Iterator[Issue]:
    source = run.source
    for span in source.functions:
        params = span.params
        for match in _BY_VALUE_RE.finditer(params):
            yield run.issue_at_line(
                span.line,
                f"Parameter '{match.group(2)}' of {span.short_name}() copies a {match.group(1)}, "
                f"pass it by const reference",
                category="copy",
                function=span.short_name,
            )


@rule("custom/performance/endl-in-loop", RuleFamily.PERFORMANCE, Severity.PERFORMANCE,
      "std::endl flushes inside a loop", cpp_only=True)
def check_endl_in_loop(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"<<\s*(?:std::)?endl\b", run.source.code):
        if _in_loop(run.source, match.start()):
            yield run.issue(
                match.start(),
                "std::endl flushes the stream on every iteration, use '\\n'",
                category="io",
            )
            return


# ---------------------------------------------------------------------------
# General
# ---------------------------------------------------------------------------

@rule("custom/style/using-namespace-std", RuleFamily.CUSTOM, Severity.STYLE,
      "using namespace std", cpp_only=True)
def check_using_namespace(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\busing\s+namespace\s+std\s*;", run.source.code):
        yield run.issue(match.start(), "Avoid 'using namespace std', it pollutes the global namespace")


@rule("custom/best-practice/malloc", RuleFamily.CUSTOM, Severity.WARNING,
      "C allocation in C++ code", cpp_only=True)
def check_malloc(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\b(malloc|calloc|realloc)\s*\(", run.source.code):
        yield run.issue(
            match.start(),
            f"{match.group(1)}() in C++ code, prefer containers or smart pointers",
        )


@rule("custom/best-practice/catch-all", RuleFamily.CUSTOM, Severity.WARNING,
      "catch(...) hides errors", cpp_only=True)
def check_catch_all(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\bcatch\s*\(\s*\.\.\.\s*\)", run.source.code):
        yield run.issue(match.start(), "catch(...) swallows every exception, catch specific types")


@rule("custom/best-practice/null-macro", RuleFamily.CUSTOM, Severity.STYLE,
      "NULL instead of nullptr", cpp_only=True)
def check_null_macro(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\bNULL\b", run.source.code):
        yield run.issue(match.start(), "Use nullptr instead of NULL")


@rule("custom/best-practice/goto", RuleFamily.CUSTOM, Severity.WARNING, "goto statement")
def check_goto(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\bgoto\s+\w+\s*;", run.source.code):
        yield run.issue(match.start(), "goto makes control flow hard to follow")


@rule("custom/naming/class-name", RuleFamily.CUSTOM, Severity.STYLE,
      "Class names should start with an uppercase letter")
def check_class_names(run: RuleRun) -> Iterator[Issue]:
    for match in re.finditer(r"\b(?:class|struct)\s+([a-z]\w*)\s*(?:final\s*)?[:{]", run.source.code):
        name = match.group(1)
        yield run.issue(
            match.start(1),
            f"Class '{name}' should start with an uppercase letter",
            name=name,
        )


_VARIABLE_RE = re.compile(
    r"\b(?:int|double|float|char|bool|long|short|unsigned|auto|size_t|(?:std::)?string)\s+"
    r"([A-Z]\w*)\s*(?=[=;,\[])"
)


@rule("custom/naming/variable-name", RuleFamily.CUSTOM, Severity.STYLE,
      "Variable names should start with a lowercase letter")
def check_variable_names(run: RuleRun) -> Iterator[Issue]:
    for match in _VARIABLE_RE.finditer(run.source.code):
        name = match.group(1)
        if name.isupper() or re.fullmatch(r"[A-Z][A-Z0-9_]*", name):
            continue
        yield run.issue(
            match.start(1),
            f"Variable '{name}' should start with a lowercase letter",
            name=name,
        )


@rule("custom/complexity/cyclomatic", RuleFamily.CUSTOM, Severity.WARNING,
      "Function cyclomatic complexity above threshold")
def check_cyclomatic(run: RuleRun) -> Iterator[Issue]:
    limit = run.config.max_cyclomatic_complexity
    for span in run.source.functions:
        value = cyclomatic_complexity(_function_body(run.source, span))
        if value > limit:
            yield run.issue_at_line(
                span.line,
                f"{span.short_name}() has cyclomatic complexity {value} (limit {limit})",
                function=span.short_name,
                value=value,
            )


@rule("custom/complexity/cognitive", RuleFamily.CUSTOM, Severity.WARNING,
      "Function cognitive complexity above threshold")
def check_cognitive(run: RuleRun) -> Iterator[Issue]:
    limit = run.config.max_cognitive_complexity
    for span in run.source.functions:
        value = cognitive_complexity(_function_body(run.source, span))
        if value > limit:
            yield run.issue_at_line(
                span.line,
                f"{span.short_name}() has cognitive complexity {value} (limit {limit})",
                function=span.short_name,
                value=value,
            )


@rule("custom/complexity/function-length", RuleFamily.CUSTOM, Severity.INFO,
      "Function longer than the configured limit")
def check_function_length(run: RuleRun) -> Iterator[Issue]:
    limit = run.config.max_function_lines
    for span in run.source.functions:
        length = run.source.line_of(span.body_end) - span.line + 1
        if length > limit:
            yield run.issue_at_line(
                span.line,
                f"{span.short_name}() is {length} lines long (limit {limit})",
                function=span.short_name,
                value=length,
            )


@rule("custom/style/line-length", RuleFamily.CUSTOM, Severity.STYLE, "Line too long")
def check_line_length(run: RuleRun) -> Iterator[Issue]:
    limit = run.config.max_line_length
    for number, line in enumerate(run.source.lines, start=1):
        if len(line) > limit:
            yield run.issue_at_line(number, f"Line is {len(line)} characters long (limit {limit})")


@rule("custom/style/tab-indentation", RuleFamily.CUSTOM, Severity.STYLE, "Tabs used for indentation")
def check_tab_indentation(run: RuleRun) -> Iterator[Issue]:
    tabbed = [n for n, line in enumerate(run.source.lines, start=1) if line.startswith("\t")]
    # one finding per file
    if tabbed:
        yield run.issue_at_line(
            tabbed[0],
            f"{len(tabbed)} line(s) indented with tabs; use spaces",
            lines=len(tabbed),
        )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def select_rules(families: Iterable[RuleFamily], language: Language = Language.CPP) -> List[Rule]:
    """Rules belonging to any of families that apply to language."""
    wanted = set(families)
    return [
        r for r in RULES
        if r.family in wanted and (language == Language.CPP or not r.cpp_only)
    ]


def run_rules(source: SourceText, rules: Iterable[Rule], config: Optional[RuleConfig] = None) -> List[Issue]:
    """
    Apply rules to a source file.

    Args:
        source: Parsed source text
        rules: Rules to apply
        config: Thresholds; defaults apply when omitted

    Returns:
        Issues in rule registration order
    """
    config = config or RuleConfig()
    issues: List[Issue] = []
    for selected in rules:
        issues.extend(selected.check(RuleRun(selected, source, config)))
    return issues
