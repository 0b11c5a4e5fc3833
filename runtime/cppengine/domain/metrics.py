"""
Structural Metrics

Size, complexity and maintainability metrics computed from a single scan of
the source. Metrics are always produced, whatever the analyzers do.
"""

import math
import re
from collections import Counter
from typing import Dict

from cppengine.domain.source import SourceText


_DECISION_RE = re.compile(r"\b(?:if|while|for|case|catch)\b|&&|\|\||\?")
_COGNITIVE_TOKEN_RE = re.compile(r"\b(if|else|for|while|switch|catch|do|goto)\b|(&&|\|\|)|(\?)|([{};])")
_CLASS_RE = re.compile(r"\b(?:class|struct)\s+[A-Za-z_]\w*\s*(?:final\s*)?(?::[^;{()]*)?\{")
_NAMESPACE_RE = re.compile(r"\bnamespace\s+(?:[A-Za-z_][\w:]*\s*)?\{")
_TEMPLATE_RE = re.compile(r"\btemplate\s*<")
_INCLUDE_RE = re.compile(r"^\s*#\s*include\b", re.MULTILINE)
_TOKEN_RE = re.compile(
    r"[A-Za-z_]\w*|\d[\w.']*|::|->\*?|<<=?|>>=?|\+\+|--|&&|\|\||[-+*/%&|^!=<>]=?|[{}()\[\];,.?:~]"
)
_OPERAND_RE = re.compile(r"[A-Za-z_]\w*|\d[\w.']*")
_ELSE_IF_RE = re.compile(r"\s*if\b")


def cyclomatic_complexity(code: str) -> int:
    """McCabe complexity of comment-free code: one plus each decision point."""
    return 1 + len(_DECISION_RE.findall(code))


def cognitive_complexity(body: str) -> int:
    """
    Cognitive complexity of one comment-free function body.

    Structures add one plus their nesting level, else branches add one,
    and each run of like boolean operators adds one.
    """
    score = 0
    depth = 0
    last_logical = None
    previous = None
    for match in _COGNITIVE_TOKEN_RE.finditer(body):
        keyword, logical, ternary, punct = match.groups()
        nesting = max(0, depth - 1)
        if punct:
            if punct == "{":
                depth += 1
            elif punct == "}":
                depth -= 1
            last_logical = None
        elif logical:
            if logical != last_logical:
                score += 1
            last_logical = logical
        elif ternary:
            score += 1 + nesting
        elif keyword == "if":
            score += 1 if previous == "else" else 1 + nesting
        elif keyword == "else":
            if not _ELSE_IF_RE.match(body, match.end()):
                score += 1
        elif keyword == "while" and previous == "}":
            # closing while of a do-while loop
            pass
        elif keyword == "goto":
            score += 1
        elif keyword:
            score += 1 + nesting
        previous = keyword or punct
    return score


def max_nesting_depth(code: str) -> int:
    depth = deepest = 0
    for ch in code:
        if ch == "{":
            depth += 1
            deepest = max(deepest, depth)
        elif ch == "}":
            depth = max(0, depth - 1)
    return deepest


def halstead_volume(code: str) -> float:
    """Halstead volume N * log2(n) over operator and operand tokens."""
    tokens = _TOKEN_RE.findall(code)
    if not tokens:
        return 0.0
    distinct = len(Counter(tokens))
    if distinct < 2:
        return float(len(tokens))
    return len(tokens) * math.log2(distinct)


def maintainability_index(volume: float, complexity: int, loc: int) -> float:
    """Normalized maintainability index in the range 0..100."""
    if loc <= 0:
        return 100.0
    raw = 171 - 5.2 * math.log(max(volume, 1.0)) - 0.23 * complexity - 16.2 * math.log(loc)
    return round(max(0.0, min(100.0, raw * 100 / 171)), 2)


def compute_metrics(source: SourceText) -> Dict[str, float]:
    """
    Compute every structural metric for a source file.

    Args:
        source: Parsed source text

    Returns:
        Metrics keyed by name
    """
    code = source.code
    total_lines = source.line_count
    blank_lines = sum(1 for line in source.lines if not line.strip())
    loc = sum(1 for line in source.code_lines if line.strip())
    comment_lines = len(source.comment_lines)

    complexity = cyclomatic_complexity(code)
    functions = source.functions
    per_function = [cyclomatic_complexity(code[f.body_start:f.body_end + 1]) for f in functions]
    cognitive = sum(cognitive_complexity(code[f.body_start:f.body_end + 1]) for f in functions)
    function_lengths = [source.line_of(f.body_end) - f.line + 1 for f in functions]
    volume = halstead_volume(code)

    return {
        "total_lines": total_lines,
        "lines_of_code": loc,
        "comment_lines": comment_lines,
        "blank_lines": blank_lines,
        "comment_ratio": round(comment_lines / total_lines, 3) if total_lines else 0.0,
        "cyclomatic_complexity": complexity,
        "max_function_complexity": max(per_function, default=0),
        "cognitive_complexity": cognitive,
        "max_nesting_depth": max_nesting_depth(code),
        "function_count": len(functions),
        "average_function_length": (
            round(sum(function_lengths) / len(function_lengths), 2) if function_lengths else 0.0
        ),
        "class_count": len(_CLASS_RE.findall(code)),
        "namespace_count": len(_NAMESPACE_RE.findall(code)),
        "template_count": len(_TEMPLATE_RE.findall(code)),
        "include_count": len(_INCLUDE_RE.findall(code)),
        "halstead_volume": round(volume, 2),
        "maintainability_index": maintainability_index(volume, complexity, loc),
    }
