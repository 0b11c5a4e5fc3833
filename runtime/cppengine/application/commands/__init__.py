"""
Application Commands

Compile-and-run and static analysis use cases.
"""

from .execute_code import ExecuteCodeCommand, ExecutionPolicy, classify_exit
from .analyze_code import AnalyzeCodeCommand, ANALYZER_SELECTION

__all__ = [
    "ExecuteCodeCommand",
    "ExecutionPolicy",
    "classify_exit",
    "AnalyzeCodeCommand",
    "ANALYZER_SELECTION",
]
