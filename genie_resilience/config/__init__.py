"""Configuration module for genie_resilience."""

from .settings import Settings, get_settings
from .constants import (
    # Retry policy
    DEFAULT_MAX_RETRIES,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_JITTER_FRACTION,
    # Batch execution
    DEFAULT_CONCURRENCY,
    DEFAULT_BATCH_DELAY_MS,
    # Monitor
    DEFAULT_MONITOR_INTERVAL,
    DEFAULT_MONITOR_MAX_FAILURES,
)

__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_BASE_DELAY_MS",
    "DEFAULT_MAX_DELAY_MS",
    "DEFAULT_JITTER_FRACTION",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_BATCH_DELAY_MS",
    "DEFAULT_MONITOR_INTERVAL",
    "DEFAULT_MONITOR_MAX_FAILURES",
]
