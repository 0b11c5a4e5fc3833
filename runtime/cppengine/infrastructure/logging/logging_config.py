"""
Structured logging configuration for the C/C++ engine.

Configures structlog for human-readable text logging (default) or JSON
logging. Request context is carried as a non-secret request id.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor


LEVEL_COLORS = {
    "debug": "\033[36m",
    "info": "\033[32m",
    "warning": "\033[33m",
    "error": "\033[31m",
    "critical": "\033[35m",
}
RESET = "\033[0m"


def add_color(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Wrap the level name in an ANSI color for console output."""
    color = LEVEL_COLORS.get(method_name)
    if color and "level" in event_dict:
        event_dict["level"] = f"{color}{event_dict['level'].upper()}{RESET}"
    return event_dict


def text_renderer(logger: Any, method_name: str, event_dict: EventDict) -> str:
    """
    Render one event as a single text line.

    Format: [timestamp] [level] [logger] message key=value ...
    Example: [2025-01-14 10:30:45] [INFO] [cppengine.application] Execution finished request_id=ab12 state=completed
    """
    timestamp = event_dict.pop("timestamp", "")
    level = event_dict.pop("level", "info").upper()
    logger_name = event_dict.pop("logger", event_dict.pop("logger_name", ""))
    message = event_dict.pop("event", "")
    exception = event_dict.pop("exception", None)
    event_dict.pop("exc_info", None)
    event_dict.pop("stack_info", None)

    parts = [f"[{timestamp}]"] if timestamp else []
    parts.append(f"[{level}]")
    if logger_name and logger_name != "root":
        parts.append(f"[{logger_name}]")
    parts.append(str(message))
    for key, value in sorted(event_dict.items()):
        if isinstance(value, (str, int, float, bool)) or value is None:
            parts.append(f"{key}={value}")
        else:
            parts.append(f"{key}={value!r}")

    line = " ".join(parts)
    if exception:
        line += "\n" + exception
    return line


def configure_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure structlog for the engine.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "text" for human-readable lines, "json" for structured logs
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(add_color)
        processors.append(text_renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None, **context) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance with optional bound context.

    Args:
        name: Logger name (usually __name__)
        **context: Key-value pairs bound to every event

    Returns:
        Configured logger instance

    Example:
        logger = get_logger(__name__, request_id="ab12")
        logger.info("Compilation finished", exit_code=0)
    """
    logger = structlog.get_logger(name) if name else structlog.get_logger()
    return logger.bind(**context) if context else logger
