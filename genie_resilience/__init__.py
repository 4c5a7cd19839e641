"""Retry, backoff and batch execution for flaky async backend calls."""

from .core import (
    AbortedError,
    AttemptOutcome,
    BatchJob,
    BatchResult,
    ConfigurationError,
    DeadlineExceededError,
    ErrorCategory,
    InternalError,
    JobFailure,
    JobSuccess,
    NetworkUnavailableError,
    ResilienceError,
    ResourceExhaustedError,
    RetryPolicy,
    classify_exception,
    is_retryable,
)
from .observability import RetryMetrics
from .resilience import (
    BatchScheduler,
    RetryExecutor,
    StabilityMonitor,
    default_executor,
    execute_batch_with_retry,
    execute_with_retry,
)

__version__ = "1.0.0"

__all__ = [
    "AbortedError",
    "AttemptOutcome",
    "BatchJob",
    "BatchResult",
    "BatchScheduler",
    "ConfigurationError",
    "DeadlineExceededError",
    "ErrorCategory",
    "InternalError",
    "JobFailure",
    "JobSuccess",
    "NetworkUnavailableError",
    "ResilienceError",
    "ResourceExhaustedError",
    "RetryExecutor",
    "RetryMetrics",
    "RetryPolicy",
    "StabilityMonitor",
    "classify_exception",
    "default_executor",
    "execute_batch_with_retry",
    "execute_with_retry",
    "is_retryable",
]
