"""
cppengine

Sandboxed compilation, execution and static analysis of C/C++ submissions.

Example:
    engine = build_engine()
    result = await engine.execute(ExecutionRequest(code=source))
"""

from cppengine.infrastructure.dependencies import build_engine

__version__ = "1.0.0"

__all__ = ["build_engine", "__version__"]
