"""
Compiler Module

Compile command construction and diagnostics handling.
"""

from .gcc import (
    BINARY_NAME,
    SOURCE_NAMES,
    GccCompiler,
    build_compile_command,
    extract_warnings,
    filter_flags,
    is_safe_flag,
    is_valid_standard,
)

__all__ = [
    "BINARY_NAME",
    "SOURCE_NAMES",
    "GccCompiler",
    "build_compile_command",
    "extract_warnings",
    "filter_flags",
    "is_safe_flag",
    "is_valid_standard",
]
