"""
Source Text

Lightweight structural view of C/C++ source used by the built-in checks,
the metrics scan and the memory layout builder. Comments and literal
contents are blanked out (keeping offsets and line breaks) so pattern
matching never fires inside them.
"""

import bisect
import re
from dataclasses import dataclass
from functools import cached_property
from typing import Dict, List, Optional, Set, Tuple


CONTROL_KEYWORDS = frozenset(
    {
        "if", "for", "while", "switch", "catch", "return", "sizeof", "do",
        "else", "decltype", "alignof", "static_assert", "defined", "new",
        "delete", "throw", "case", "typeid", "noexcept",
    }
)

_HEADER_RE = re.compile(
    r"(?P<name>~?[A-Za-z_]\w*(?:\s*::\s*~?[A-Za-z_]\w*)*)\s*"
    r"\((?P<params>[^()]*(?:\([^()]*\)[^()]*)*)\)\s*"
    r"(?:const\b|noexcept\b|override\b|final\b|mutable\b|\s)*"
    r"(?:->[^{};]*)?"
    r"(?::[^{};]*)?$"
)


def _blank(chars: List[str], start: int, end: int) -> None:
    for i in range(start, end):
        if chars[i] != "\n":
            chars[i] = " "


def strip_comments_and_literals(code: str) -> Tuple[str, Set[int]]:
    """
    Blank out comments and the contents of string and character literals.

    Args:
        code: Original source text

    Returns:
        Tuple of (stripped text with identical offsets, 1-based line numbers
        that carry comment text)
    """
    chars = list(code)
    comment_lines: Set[int] = set()
    n = len(code)
    i = 0
    line = 1
    while i < n:
        c = code[i]
        nxt = code[i + 1] if i + 1 < n else ""
        if c == "\n":
            line += 1
            i += 1
        elif c == "/" and nxt == "/":
            end = code.find("\n", i)
            end = n if end == -1 else end
            _blank(chars, i, end)
            comment_lines.add(line)
            i = end
        elif c == "/" and nxt == "*":
            end = code.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(chars, i, end)
            newlines = code.count("\n", i, end)
            comment_lines.update(range(line, line + newlines + 1))
            line += newlines
            i = end
        elif c == "'" and i > 0 and code[i - 1].isalnum() and nxt.isalnum():
            # digit separator, e.g. 1'000'000
            i += 1
        elif c in "\"'":
            j = i + 1
            while j < n and code[j] != c and code[j] != "\n":
                j += 2 if code[j] == "\\" else 1
            j = min(j, n)
            _blank(chars, i + 1, j)
            i = j + 1
        else:
            i += 1
    return "".join(chars), comment_lines


@dataclass(frozen=True)
class FunctionSpan:
    """A function definition located in the source."""

    name: str
    line: int
    params: str
    body_start: int
    body_end: int

    @property
    def short_name(self) -> str:
        return self.name.split("::")[-1].strip()


class SourceText:
    """Original and comment-free views of a source file with line lookups."""

    def __init__(self, text: str):
        self.text = text
        self.code, self.comment_lines = strip_comments_and_literals(text)
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]

    @cached_property
    def lines(self) -> List[str]:
        return self.text.splitlines()

    @cached_property
    def code_lines(self) -> List[str]:
        return self.code.splitlines()

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_col(self, offset: int) -> Tuple[int, int]:
        """Map a character offset to a 1-based (line, column) pair."""
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1

    def line_of(self, offset: int) -> int:
        return self.line_col(offset)[0]

    @cached_property
    def functions(self) -> Tuple[FunctionSpan, ...]:
        """Function definitions in source order."""
        spans = []
        code = self.code
        closing = self._pairs["{"]
        for match in re.finditer(r"\{", code):
            start = match.start()
            boundary = max(code.rfind(";", 0, start), code.rfind("{", 0, start), code.rfind("}", 0, start))
            header = code[boundary + 1:start]
            header_lines = [h for h in header.split("\n") if not h.lstrip().startswith("#")]
            cleaned = "\n".join(header_lines).rstrip()
            found = _HEADER_RE.search(cleaned)
            if not found:
                continue
            name = re.sub(r"\s+", "", found.group("name"))
            if name.split("::")[-1] in CONTROL_KEYWORDS:
                continue
            name_offset = boundary + 1 + header.rfind(cleaned[found.start():].split("(")[0].strip())
            spans.append(
                FunctionSpan(
                    name=name,
                    line=self.line_of(max(name_offset, boundary + 1)),
                    params=found.group("params").strip(),
                    body_start=start,
                    body_end=closing.get(start, len(code)),
                )
            )
        return tuple(spans)

    def function_at(self, offset: int) -> Optional[FunctionSpan]:
        """Innermost function whose body contains offset."""
        best = None
        for span in self.functions:
            if span.body_start <= offset <= span.body_end:
                if best is None or span.body_start > best.body_start:
                    best = span
        return best

    @cached_property
    def _pairs(self) -> Dict[str, Dict[int, int]]:
        """Matching close offsets for every brace and parenthesis, in one pass."""
        pairs: Dict[str, Dict[int, int]] = {"{": {}, "(": {}}
        stacks: Dict[str, List[int]] = {"{": [], "(": []}
        for i, ch in enumerate(self.code):
            if ch in stacks:
                stacks[ch].append(i)
            elif ch in _OPENING:
                opener = _OPENING[ch]
                if stacks[opener]:
                    pairs[opener][stacks[opener].pop()] = i
        end = len(self.code)
        for kind, stack in stacks.items():
            for i in stack:
                pairs[kind][i] = end
        return pairs

    @cached_property
    def loop_bodies(self) -> Tuple[Tuple[int, int], ...]:
        """(start, end) offsets of every for/while body, braced or single statement."""
        code = self.code
        parens = self._pairs["("]
        braces = self._pairs["{"]
        bodies = []
        for match in _LOOP_HEAD_RE.finditer(code):
            close = parens.get(match.end() - 1, len(code))
            if close >= len(code):
                continue
            body_start = close + 1
            while body_start < len(code) and code[body_start].isspace():
                body_start += 1
            if body_start >= len(code) or code[body_start] == ";":
                continue
            if code[body_start] == "{":
                body_end = braces[body_start]
            else:
                semi = code.find(";", body_start)
                body_end = len(code) if semi == -1 else semi
            bodies.append((body_start, body_end))
        return tuple(bodies)

    @cached_property
    def _loop_bounds(self) -> Tuple[List[int], List[int]]:
        starts = sorted(start for start, _ in self.loop_bodies)
        ends = sorted(end for _, end in self.loop_bodies)
        return starts, ends

    def enclosing_loops(self, offset: int) -> int:
        """Count loop bodies (braced or single statement) that contain offset."""
        # a body ending before offset also starts before it
        starts, ends = self._loop_bounds
        return bisect.bisect_right(starts, offset) - bisect.bisect_left(ends, offset)


_OPENING = {"}": "{", ")": "("}
_LOOP_HEAD_RE = re.compile(r"\b(for|while)\s*\(")
