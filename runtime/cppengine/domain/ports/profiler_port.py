"""
Profiler Port Interface

Defines the contract for collecting hardware counters and hotspots of a
program run.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence

from cppengine.domain.value_objects import PerformanceProfile, ResourceLimit


class IProfilerPort(ABC):
    """Port interface for run profiling."""

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether profiling is supported on this host."""
        pass

    @abstractmethod
    def wrap(self, argv: Sequence[str], directory: Path) -> List[str]:
        """
        Wrap a program's argv so the run also records counters.

        Args:
            argv: Program and arguments
            directory: Workspace directory for the counter output

        Returns:
            Argument vector to run instead of argv
        """
        pass

    @abstractmethod
    async def collect(
        self, argv: Sequence[str], directory: Path, limits: ResourceLimit, stdin: str = ""
    ) -> PerformanceProfile:
        """
        Read the counters of a wrapped run and gather hotspots.

        Never raises for missing data; an empty profile is returned instead.
        """
        pass
