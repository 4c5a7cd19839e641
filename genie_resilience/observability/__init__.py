"""Observability infrastructure for genie_resilience.

Provides structured logging and retry metrics.
"""

from .logger import LogContext, current_context, get_logger, log_context, setup_logging
from .metrics import RetryMetrics

__all__ = [
    "LogContext",
    "current_context",
    "get_logger",
    "log_context",
    "setup_logging",
    "RetryMetrics",
]
