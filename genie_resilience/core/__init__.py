"""Core types and error taxonomy."""

from .errors import (
    AbortedError,
    ConfigurationError,
    DeadlineExceededError,
    ErrorCategory,
    InternalError,
    NetworkUnavailableError,
    ResilienceError,
    ResourceExhaustedError,
    classify_exception,
    classify_text,
    is_retryable,
)
from .types import (
    AttemptOutcome,
    BatchJob,
    BatchResult,
    JobFailure,
    JobSuccess,
    Operation,
    RetryPolicy,
)

__all__ = [
    # Errors
    "AbortedError",
    "ConfigurationError",
    "DeadlineExceededError",
    "ErrorCategory",
    "InternalError",
    "NetworkUnavailableError",
    "ResilienceError",
    "ResourceExhaustedError",
    "classify_exception",
    "classify_text",
    "is_retryable",
    # Types
    "AttemptOutcome",
    "BatchJob",
    "BatchResult",
    "JobFailure",
    "JobSuccess",
    "Operation",
    "RetryPolicy",
]
