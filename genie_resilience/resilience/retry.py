"""Exponential Backoff Retry Executor.

Provides automatic retry with exponential backoff and jitter:
- Configurable retry budget via RetryPolicy
- Exponential delay increase capped at max_delay_ms
- Random jitter to prevent thundering herd
- Selective retry based on error category
"""

from __future__ import annotations

import asyncio
import inspect
import math
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from genie_resilience.config import get_settings
from genie_resilience.config.constants import BACKOFF_MULTIPLIER
from genie_resilience.core.errors import ErrorCategory, classify_exception
from genie_resilience.core.types import AttemptOutcome, Operation, RetryPolicy
from genie_resilience.observability.logger import get_logger, log_context

logger = get_logger(__name__)

Classifier = Callable[[BaseException], ErrorCategory]
AttemptListener = Callable[[AttemptOutcome], None]
RecoveryHook = Callable[[BaseException], "Awaitable[None] | None"]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryExecutor:
    """Retry executor with exponential backoff.

    Usage:
        executor = RetryExecutor(RetryPolicy(max_retries=3, base_delay_ms=500))

        result = await executor.execute(lambda: save_lead(lead), "save lead")

    The wrapped operation may be invoked several times; it has to be safe
    to repeat. There is no timeout beyond the retry budget, so an operation
    that never returns stalls the executor.
    """

    policy: RetryPolicy = field(default_factory=RetryPolicy)
    classifier: Classifier = classify_exception
    listeners: Sequence[AttemptListener] = ()
    # Awaited before each backoff sleep, e.g. to reset a connection
    recover: RecoveryHook | None = None
    sleep: Sleep = asyncio.sleep
    rng: random.Random = field(default_factory=random.Random)

    async def execute(self, operation: Operation, context: str = "") -> Any:
        """Execute operation with retries.

        Args:
            operation: Zero-argument sync or async callable
            context: Label used in log messages

        Returns:
            Operation result

        Raises:
            The operation's own exception, unchanged, when it is not
            retryable or when all attempts are exhausted
        """
        label = context or "operation"
        total = self.policy.total_attempts

        for attempt in range(total):
            with log_context(operation=label, attempt=attempt + 1):
                logger.debug(f"Attempt {attempt + 1}/{total} for {label}")

                try:
                    result = operation()
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as e:
                    category = self.classifier(e)

                    if attempt >= self.policy.max_retries:
                        self._notify(AttemptOutcome(label, attempt, False, e, category))
                        logger.warning(
                            f"All {total} attempts failed for {label}",
                            extra={"error": str(e), "category": category.value},
                        )
                        raise

                    if not category.is_retryable:
                        self._notify(AttemptOutcome(label, attempt, False, e, category))
                        logger.debug(
                            f"Non-retryable error for {label}, stopping retries",
                            extra={"error": type(e).__name__},
                        )
                        raise

                    delay_ms = self.calculate_delay(attempt)
                    self._notify(AttemptOutcome(label, attempt, False, e, category, delay_ms))
                    logger.info(
                        f"Attempt {attempt + 1}/{total} failed for {label}, "
                        f"retrying in {delay_ms}ms",
                        extra={"error": str(e), "category": category.value},
                    )
                    failure: BaseException = e
                else:
                    self._notify(AttemptOutcome(label, attempt, True))
                    if attempt > 0:
                        logger.info(f"Operation succeeded on attempt {attempt + 1} for {label}")
                    return result

                await self._run_recovery(failure)
                await self.sleep(delay_ms / 1000)

        # range(total) always ends in return or raise
        raise RuntimeError("Retry logic error")

    def is_retryable(self, error: BaseException) -> bool:
        """Check if error is retryable under this executor's classifier."""
        return self.classifier(error).is_retryable

    def base_delay_for(self, attempt: int) -> float:
        """Delay before jitter for a 0-based attempt index, in milliseconds."""
        growth = BACKOFF_MULTIPLIER**attempt
        # Compare as int first; base * growth overflows a float for large attempts
        if growth >= self.policy.max_delay_ms / self.policy.base_delay_ms:
            return self.policy.max_delay_ms
        return min(self.policy.base_delay_ms * growth, self.policy.max_delay_ms)

    def calculate_delay(self, attempt: int) -> int:
        """Calculate jittered delay for a retry, in whole milliseconds.

        Args:
            attempt: Attempt that just failed (0-based)

        Returns:
            floor(delay + U(-jitter, +jitter)), never negative
        """
        delay = self.base_delay_for(attempt)
        jitter_range = delay * self.policy.jitter_fraction
        offset = self.rng.uniform(-jitter_range, jitter_range) if jitter_range else 0.0
        return max(0, math.floor(delay + offset))

    def _notify(self, outcome: AttemptOutcome) -> None:
        for listener in self.listeners:
            listener(outcome)

    async def _run_recovery(self, error: BaseException) -> None:
        if self.recover is None:
            return
        result = self.recover(error)
        if inspect.isawaitable(result):
            await result


def default_executor(**overrides: Any) -> RetryExecutor:
    """Build an executor from GENIE_RETRY_* settings.

    Each call returns a new executor; nothing is shared between callers.
    """
    overrides.setdefault("policy", get_settings().retry_policy())
    return RetryExecutor(**overrides)


async def execute_with_retry(
    operation: Operation,
    context: str = "",
    policy: RetryPolicy | None = None,
) -> Any:
    """Run operation under `policy` (documented defaults when omitted)."""
    executor = RetryExecutor(policy=policy if policy is not None else RetryPolicy())
    return await executor.execute(operation, context)
