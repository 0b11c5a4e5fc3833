"""
Analyzers Module

Adapters for clang-tidy, cppcheck and the built-in checks.
"""

from .base import ExternalToolAnalyzer
from .clang_tidy import ClangTidyAnalyzer
from .cppcheck import CppcheckAnalyzer
from .custom import CustomRulesAnalyzer

__all__ = ["ExternalToolAnalyzer", "ClangTidyAnalyzer", "CppcheckAnalyzer", "CustomRulesAnalyzer"]
