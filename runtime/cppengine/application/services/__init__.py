"""
Application Services
"""

from .result_assembler import ResultAssembler

__all__ = ["ResultAssembler"]
