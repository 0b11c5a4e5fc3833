"""
Domain Ports

Port interfaces defining contracts between layers.
All dependencies on external processes and the filesystem are abstracted
through ports.
"""

from .process_runner_port import IProcessRunnerPort
from .workspace_port import IWorkspacePort
from .analyzer_port import IAnalyzerPort, AnalyzerContext
from .profiler_port import IProfilerPort
from .compiler_port import ICompilerPort

__all__ = [
    # Process runner
    "IProcessRunnerPort",
    # Workspace
    "IWorkspacePort",
    # Analyzers
    "IAnalyzerPort",
    "AnalyzerContext",
    # Profiler
    "IProfilerPort",
    # Compiler
    "ICompilerPort",
]
