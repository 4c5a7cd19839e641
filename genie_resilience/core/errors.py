"""Error taxonomy for resilient operations.

Every failure seen by the executor is reduced to one ErrorCategory.
Only ErrorCategory.OTHER is non-retryable.

Typed errors (ResilienceError subclasses) carry their category directly.
Foreign exceptions are classified by classify_exception(), which falls back
to matching the legacy Firestore/proxy error text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from genie_resilience.config.constants import (
    ABORTED_PATTERNS,
    DEADLINE_PATTERNS,
    INTERNAL_PATTERNS,
    NETWORK_PATTERNS,
    RESOURCE_EXHAUSTED_PATTERNS,
)


class ErrorCategory(str, Enum):
    """Semantic failure categories."""

    NETWORK_UNAVAILABLE = "network-unavailable"
    DEADLINE_EXCEEDED = "deadline-exceeded"
    RESOURCE_EXHAUSTED = "resource-exhausted"
    ABORTED = "aborted"
    INTERNAL = "internal"
    OTHER = "other"

    @property
    def is_retryable(self) -> bool:
        """Whether failures in this category are worth another attempt."""
        return self is not ErrorCategory.OTHER


class ResilienceError(Exception):
    """Base error for genie_resilience.

    Attributes:
        message: Error description
        context: Label of the operation that failed (if applicable)
        code: Provider error code (if applicable)
    """

    category: ErrorCategory = ErrorCategory.OTHER

    def __init__(
        self,
        message: str,
        *,
        context: str | None = None,
        code: str | None = None,
    ) -> None:
        self.context = context
        self.code = code
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error can be retried."""
        return self.category.is_retryable

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "category": self.category.value,
            "context": self.context,
            "code": self.code,
            "is_retryable": self.is_retryable,
        }


class NetworkUnavailableError(ResilienceError):
    """Backend unreachable or transport dropped.

    This is retryable - connectivity usually comes back.
    """

    category = ErrorCategory.NETWORK_UNAVAILABLE

    def __init__(self, message: str = "Network unavailable", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class DeadlineExceededError(ResilienceError):
    """Call did not finish in time."""

    category = ErrorCategory.DEADLINE_EXCEEDED

    def __init__(
        self,
        message: str = "Deadline exceeded",
        *,
        timeout_seconds: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["timeout_seconds"] = self.timeout_seconds
        return d


class ResourceExhaustedError(ResilienceError):
    """Quota or rate limit hit.

    Retryable after waiting; `retry_after` is informational only.
    """

    category = ErrorCategory.RESOURCE_EXHAUSTED

    def __init__(
        self,
        message: str = "Resource exhausted",
        *,
        retry_after: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["retry_after"] = self.retry_after
        return d


class AbortedError(ResilienceError):
    """Operation aborted by a concurrent conflict (e.g. transaction contention)."""

    category = ErrorCategory.ABORTED

    def __init__(self, message: str = "Operation aborted", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class InternalError(ResilienceError):
    """Server-side failure."""

    category = ErrorCategory.INTERNAL

    def __init__(self, message: str = "Internal error", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ConfigurationError(ResilienceError):
    """Invalid policy or scheduler options.

    This is NOT retryable - fix the configuration.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        d["value"] = str(self.value) if self.value is not None else None
        return d


_PATTERN_TABLE: tuple[tuple[tuple[str, ...], ErrorCategory], ...] = (
    (DEADLINE_PATTERNS, ErrorCategory.DEADLINE_EXCEEDED),
    (RESOURCE_EXHAUSTED_PATTERNS, ErrorCategory.RESOURCE_EXHAUSTED),
    (ABORTED_PATTERNS, ErrorCategory.ABORTED),
    (NETWORK_PATTERNS, ErrorCategory.NETWORK_UNAVAILABLE),
    (INTERNAL_PATTERNS, ErrorCategory.INTERNAL),
)


def classify_text(*texts: str) -> ErrorCategory:
    """Classify error text against the legacy pattern table.

    Args:
        *texts: Message, code or other strings describing the failure

    Returns:
        First matching category, or ErrorCategory.OTHER
    """
    haystacks = [t.lower() for t in texts if t]
    for patterns, category in _PATTERN_TABLE:
        for pattern in patterns:
            if any(pattern in text for text in haystacks):
                return category
    return ErrorCategory.OTHER


def classify_exception(error: BaseException) -> ErrorCategory:
    """Classify an exception into an ErrorCategory.

    Args:
        error: The exception to classify

    Returns:
        Category of the failure
    """
    if isinstance(error, ResilienceError):
        return error.category

    # asyncio.TimeoutError is an alias of TimeoutError on current Pythons
    if isinstance(error, TimeoutError):
        return ErrorCategory.DEADLINE_EXCEEDED
    if isinstance(error, ConnectionError):
        return ErrorCategory.NETWORK_UNAVAILABLE

    code = getattr(error, "code", None)
    return classify_text(str(error), str(code) if code is not None else "")


def is_retryable(error: BaseException) -> bool:
    """Check if an exception should be retried."""
    return classify_exception(error).is_retryable
