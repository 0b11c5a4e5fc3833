"""
Process Runner Port Interface

Defines the contract for running one external program under resource
ceilings. This is an output port - implemented by infrastructure layer.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional, Sequence

from cppengine.domain.value_objects import ProcessResult, ResourceLimit


class IProcessRunnerPort(ABC):
    """
    Port interface for bounded process execution.

    Implementations never invoke a shell and never raise for process
    failures; every outcome is described by the returned ProcessResult.
    """

    @abstractmethod
    async def run(
        self,
        argv: Sequence[str],
        cwd: Path,
        limits: ResourceLimit,
        stdin: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ProcessResult:
        """
        Run a program to completion or until a limit is hit.

        Args:
            argv: Program and arguments
            cwd: Working directory, normally a session workspace
            limits: Timeout, memory and output ceilings
            stdin: Text written to the program's standard input
            env: Extra environment variables

        Returns:
            ProcessResult describing the outcome

        Raises:
            asyncio.CancelledError: After the child has been killed and reaped
        """
        pass
