"""Shared types for the executor, batch scheduler and monitor."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from genie_resilience.config.constants import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_JOB_CONTEXT,
    DEFAULT_JITTER_FRACTION,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
)
from genie_resilience.core.errors import ConfigurationError, ErrorCategory

# A zero-argument callable returning a value or an awaitable of one
Operation = Callable[[], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and backoff shape.

    Delays are in milliseconds. Instances are immutable and can be shared
    by any number of concurrent executions.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    jitter_fraction: float = DEFAULT_JITTER_FRACTION

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ConfigurationError(
                "max_retries must be an integer", field="max_retries", value=self.max_retries
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                "max_retries must be >= 0", field="max_retries", value=self.max_retries
            )
        for name in ("base_delay_ms", "max_delay_ms"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be finite", field=name, value=value)
        if self.base_delay_ms <= 0:
            raise ConfigurationError(
                "base_delay_ms must be > 0", field="base_delay_ms", value=self.base_delay_ms
            )
        if self.max_delay_ms < self.base_delay_ms:
            raise ConfigurationError(
                "max_delay_ms must be >= base_delay_ms",
                field="max_delay_ms",
                value=self.max_delay_ms,
            )
        if not 0.0 <= self.jitter_fraction <= 1.0:
            raise ConfigurationError(
                "jitter_fraction must be within [0, 1]",
                field="jitter_fraction",
                value=self.jitter_fraction,
            )

    @classmethod
    def default(cls) -> RetryPolicy:
        """Policy with the documented defaults (5 retries, 1s base, 30s cap, 10% jitter)."""
        return cls()

    @property
    def total_attempts(self) -> int:
        """Upper bound on invocations of one operation."""
        return self.max_retries + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_retries": self.max_retries,
            "base_delay_ms": self.base_delay_ms,
            "max_delay_ms": self.max_delay_ms,
            "jitter_fraction": self.jitter_fraction,
        }


@dataclass(frozen=True)
class AttemptOutcome:
    """What happened on a single attempt.

    Attributes:
        context: Label of the operation
        attempt: 0-based attempt index
        succeeded: Whether the operation returned
        error: Exception raised by the attempt (if any)
        category: Classification of `error` (if any)
        delay_ms: Wait before the next attempt, None when no retry follows
    """

    context: str
    attempt: int
    succeeded: bool
    error: BaseException | None = None
    category: ErrorCategory | None = None
    delay_ms: int | None = None

    @property
    def will_retry(self) -> bool:
        return self.delay_ms is not None


@dataclass
class BatchJob:
    """An operation submitted to the batch scheduler."""

    operation: Operation
    context: str = DEFAULT_JOB_CONTEXT

    @classmethod
    def coerce(cls, job: BatchJob | tuple[Operation, str] | Operation) -> BatchJob:
        """Accept a BatchJob, an (operation, context) pair or a bare callable."""
        if isinstance(job, BatchJob):
            return job
        if isinstance(job, tuple):
            if len(job) != 2 or not callable(job[0]):
                raise ConfigurationError(
                    "Batch job tuple must be (operation, context)", field="jobs", value=job
                )
            operation, context = job
            return cls(operation=operation, context=context)
        if callable(job):
            return cls(operation=job)
        raise ConfigurationError("Batch job must be callable", field="jobs", value=job)


@dataclass(frozen=True)
class JobSuccess:
    index: int
    result: Any


@dataclass(frozen=True)
class JobFailure:
    index: int
    error: BaseException


@dataclass
class BatchResult:
    """Aggregated outcome of a batch run.

    Both lists are ordered by the job's original index.
    """

    successes: list[JobSuccess] = field(default_factory=list)
    failures: list[JobFailure] = field(default_factory=list)
    total_processed: int = 0

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def success_percentage(self) -> float:
        """Success rate as percentage (0-100)."""
        if self.total_processed == 0:
            return 0.0
        return self.success_count / self.total_processed * 100

    @property
    def success_rate(self) -> str:
        """Success percentage formatted to one decimal place, e.g. "80.0"."""
        return f"{self.success_percentage:.1f}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "successes": [{"index": s.index, "result": s.result} for s in self.successes],
            "failures": [{"index": f.index, "error": str(f.error)} for f in self.failures],
            "total_processed": self.total_processed,
            "success_rate": self.success_rate,
        }
