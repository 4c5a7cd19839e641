"""Structured logger for genie_resilience.

Provides context-aware logging with optional JSON formatting.

Usage:
    from genie_resilience.observability import get_logger, log_context

    logger = get_logger(__name__)

    with log_context(operation="save lead", attempt=2):
        logger.info("Retrying", extra={"delay_ms": 1840})
        # Output: {"timestamp": "...", "operation": "save lead", "attempt": 2, "message": "...", "delay_ms": 1840}
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER_NAME = "genie_resilience"

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
        "asctime",
    }
)


@dataclass(frozen=True)
class LogContext:
    """Fields added to every log message emitted within the context."""

    operation: str | None = None
    attempt: int | None = None
    batch_index: int | None = None
    batch_size: int | None = None
    correlation_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


# Per-task context; asyncio copies it into each task created by gather()
_log_context: contextvars.ContextVar[LogContext] = contextvars.ContextVar(
    "genie_log_context",
    default=LogContext(),
)


class _ContextManager:
    """Context manager for setting log context."""

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.token: contextvars.Token[LogContext] | None = None

    def __enter__(self) -> LogContext:
        # Merge with current context; unset fields keep the outer value
        overrides = {k: v for k, v in self.kwargs.items() if v is not None}
        new_context = replace(_log_context.get(), **overrides)
        self.token = _log_context.set(new_context)
        return new_context

    def __exit__(self, *args: Any) -> None:
        if self.token is not None:
            _log_context.reset(self.token)


def log_context(**kwargs: Any) -> _ContextManager:
    """Create a context manager for setting log context.

    Args:
        **kwargs: LogContext fields (operation, attempt, batch_index, ...)

    Example:
        with log_context(operation="prospeo lookup"):
            logger.info("Calling proxy")
    """
    return _ContextManager(**kwargs)


def current_context() -> LogContext:
    """Return the log context active in the current task."""
    return _log_context.get()


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class StructuredFormatter(logging.Formatter):
    """JSON formatter with context support."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_log_context.get().to_dict())
        entry.update(_record_extras(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        ctx = _log_context.get()
        color = self.COLORS.get(record.levelname, "")

        prefix_parts = []
        if ctx.operation:
            prefix_parts.append(f"[{ctx.operation}]")
        if ctx.attempt is not None:
            prefix_parts.append(f"[#{ctx.attempt}]")
        if ctx.batch_index is not None:
            prefix_parts.append(f"[batch {ctx.batch_index}]")
        prefix = " ".join(prefix_parts)
        if prefix:
            prefix += " "

        timestamp = datetime.now().strftime("%H:%M:%S")
        level = record.levelname[:4]
        extras = [f"{k}={v}" for k, v in _record_extras(record).items()]
        extra_str = " | " + ", ".join(extras) if extras else ""

        formatted = (
            f"{timestamp} {color}{level}{self.RESET} {prefix}{record.getMessage()}{extra_str}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


_logging_configured = False


def setup_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    quiet: bool = False,
    force: bool = False,
) -> None:
    """Attach a stderr handler to the genie_resilience logger.

    Args:
        level: Logging level (default: INFO)
        json_format: Use JSON format (default: False, use pretty format)
        quiet: Suppress all output except errors (default: False)
        force: Reconfigure even if already set up
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.ERROR if quiet else level)
    handler.setFormatter(StructuredFormatter() if json_format else PrettyFormatter())
    root.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the genie_resilience namespace.

    Handlers are not installed here; applications call setup_logging().
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
