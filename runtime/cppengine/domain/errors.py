"""
Engine Errors

Error taxonomy shared by the domain, application and infrastructure layers.
"""
from typing import Any, Optional


class EngineError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(EngineError):
    """The engine settings are invalid or a configured path is unusable."""
    pass


class WorkspaceError(EngineError):
    """The session workspace could not be created or populated."""
    pass


class ToolUnavailableError(EngineError):
    """An analyzer's executable is missing or could not be started."""

    def __init__(self, tool: str, reason: str):
        super().__init__(f"{tool} unavailable: {reason}", {"tool": tool})
        self.tool = tool
        self.reason = reason


class ToolOutputParseError(EngineError):
    """A line of analyzer output could not be interpreted."""

    def __init__(self, tool: str, line: str, reason: str = "unrecognized format"):
        super().__init__(f"cannot parse {tool} output: {reason}", {"tool": tool, "line": line})
        self.tool = tool
        self.line = line


class TotalAnalysisFailure(EngineError):
    """Every selected analyzer failed."""
    pass
