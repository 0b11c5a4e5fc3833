"""
Compiler Port Interface

Defines the contract for turning compiler options into a compiler
invocation and reading its diagnostics.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from cppengine.domain.value_objects import CompilerOptions, Language


class ICompilerPort(ABC):
    """Port interface for compiler command construction."""

    binary_name: str = "main"

    @abstractmethod
    def source_name(self, language: Language) -> str:
        """File name the source is staged under."""
        pass

    @abstractmethod
    def resolve(self, language: Language, name: Optional[str] = None) -> Optional[str]:
        """
        Resolve the compiler executable.

        Args:
            language: Source language
            name: Requested compiler ("g++", "clang++", "gcc", "clang")

        Returns:
            Executable path, None when no usable compiler is installed
        """
        pass

    @abstractmethod
    def build_command(self, compiler: str, language: Language, options: CompilerOptions) -> List[str]:
        """Argument vector compiling the staged source into binary_name."""
        pass

    @abstractmethod
    def extract_warnings(self, diagnostics: str) -> List[str]:
        """Warning lines from compiler diagnostics."""
        pass
