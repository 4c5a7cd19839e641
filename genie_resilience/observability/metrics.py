"""Retry metrics.

RetryMetrics is an attempt listener: pass it to RetryExecutor(listeners=...)
and it tallies every AttemptOutcome the executor reports.

Usage:
    metrics = RetryMetrics()
    executor = RetryExecutor(listeners=(metrics,))

    await executor.execute(save_lead, "save lead")

    print(metrics.success_rate)  # 100.0
    print(metrics.to_summary())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from genie_resilience.core.types import AttemptOutcome


@dataclass
class RetryMetrics:
    """Counters across every operation run by one or more executors."""

    started_at: datetime = field(default_factory=datetime.now)

    # Counts
    attempts: int = 0
    retries: int = 0
    successes: int = 0
    failures: int = 0  # operations that ended in an error
    exhausted: int = 0  # failures that used the whole retry budget
    recovered: int = 0  # successes that needed at least one retry

    total_delay_ms: int = 0

    errors_by_category: dict[str, int] = field(default_factory=dict)

    def __call__(self, outcome: AttemptOutcome) -> None:
        self.record(outcome)

    def record(self, outcome: AttemptOutcome) -> None:
        """Record a single attempt."""
        self.attempts += 1

        if outcome.succeeded:
            self.successes += 1
            if outcome.attempt > 0:
                self.recovered += 1
            return

        category = outcome.category.value if outcome.category else "unknown"
        self.errors_by_category[category] = self.errors_by_category.get(category, 0) + 1

        if outcome.will_retry:
            self.retries += 1
            self.total_delay_ms += outcome.delay_ms or 0
            return

        self.failures += 1
        if outcome.category is not None and outcome.category.is_retryable:
            self.exhausted += 1

    @property
    def operations(self) -> int:
        """Operations that reached a final outcome."""
        return self.successes + self.failures

    @property
    def success_rate(self) -> float:
        """Success rate as percentage (0-100)."""
        if self.operations == 0:
            return 0.0
        return self.successes / self.operations * 100

    def reset(self) -> None:
        self.started_at = datetime.now()
        self.attempts = self.retries = self.successes = 0
        self.failures = self.exhausted = self.recovered = 0
        self.total_delay_ms = 0
        self.errors_by_category = {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/storage."""
        return {
            "started_at": self.started_at.isoformat(),
            "operations": self.operations,
            "attempts": self.attempts,
            "retries": self.retries,
            "successes": self.successes,
            "failures": self.failures,
            "exhausted": self.exhausted,
            "recovered": self.recovered,
            "success_rate": round(self.success_rate, 2),
            "total_delay_ms": self.total_delay_ms,
            "errors_by_category": dict(self.errors_by_category),
        }

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "Retry Summary",
            "=" * 40,
            f"Operations: {self.operations}",
            f"Success: {self.successes} ({self.success_rate:.1f}%)",
            f"Failed: {self.failures} (exhausted: {self.exhausted})",
            f"Attempts: {self.attempts}",
            f"Retries: {self.retries} ({self.total_delay_ms / 1000:.1f}s waiting)",
        ]

        if self.errors_by_category:
            lines.append("")
            lines.append("Errors by Category:")
            for category, count in sorted(self.errors_by_category.items(), key=lambda x: -x[1]):
                lines.append(f"  {category}: {count}")

        return "\n".join(lines)
