"""
Analyzer Port Interface

Defines the contract shared by the external tool adapters and the
built-in checks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List

from cppengine.domain.source import SourceText
from cppengine.domain.value_objects import Issue, Language


@dataclass(frozen=True)
class AnalyzerContext:
    """
    Everything an analyzer needs to examine one staged source file.

    Attributes:
        source: Parsed source text
        directory: Private directory holding the staged file
        filename: Name of the staged file inside directory
        language: Source language
        standard: Language standard passed to tools, e.g. "c++17"
    """

    source: SourceText
    directory: Path
    filename: str
    language: Language
    standard: str


class IAnalyzerPort(ABC):
    """
    Port interface for one analyzer.

    Implementations raise ToolUnavailableError when they cannot run; the
    aggregator turns that into a note and carries on with the others.
    """

    name: str

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether the analyzer can run on this host."""
        pass

    @abstractmethod
    async def analyze(self, context: AnalyzerContext) -> List[Issue]:
        """
        Analyze a staged source file.

        Args:
            context: Source and workspace location

        Returns:
            Issues found, locations relative to the source

        Raises:
            ToolUnavailableError: If the tool is missing, crashed or timed out
        """
        pass
