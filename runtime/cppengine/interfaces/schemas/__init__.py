"""
Request Schemas
"""

from .request import AnalyzeRequestSchema, CompilerOptionsSchema, ExecuteRequestSchema, parse_language

__all__ = ["AnalyzeRequestSchema", "CompilerOptionsSchema", "ExecuteRequestSchema", "parse_language"]
