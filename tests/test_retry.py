"""Tests for genie_resilience/resilience/retry.py.

Delays are recorded by a fake sleep; nothing here actually waits.
"""

import random
from unittest.mock import AsyncMock

import pytest

from genie_resilience.core.errors import (
    ConfigurationError,
    ErrorCategory,
    NetworkUnavailableError,
)
from genie_resilience.core.types import AttemptOutcome, RetryPolicy
from genie_resilience.observability.metrics import RetryMetrics
from genie_resilience.resilience.retry import (
    RetryExecutor,
    default_executor,
    execute_with_retry,
)


# =============================================================================
# Retry loop
# =============================================================================


class TestExecute:
    """Tests for RetryExecutor.execute()."""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self, executor, fake_sleep, flaky):
        """Success on the first call returns immediately without sleeping."""
        operation = flaky([], result={"id": "lead-1"})

        result = await executor.execute(operation, "save lead")

        assert result == {"id": "lead-1"}
        assert operation.calls == 1
        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_fails_twice_then_succeeds(self, fake_sleep, flaky):
        """Two 'unavailable' failures then "ok" takes exactly 3 calls."""
        policy = RetryPolicy(max_retries=2, base_delay_ms=100, max_delay_ms=1000, jitter_fraction=0)
        executor = RetryExecutor(policy=policy, sleep=fake_sleep)
        operation = flaky([Exception("unavailable"), Exception("unavailable")])

        result = await executor.execute(operation, "firestore write")

        assert result == "ok"
        assert operation.calls == 3
        assert fake_sleep.calls_ms == [100, 200]

    @pytest.mark.asyncio
    async def test_one_failure_then_success(self, executor, flaky):
        operation = flaky([Exception("Network error while saving")])

        assert await executor.execute(operation) == "ok"
        assert operation.calls == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_retries", [0, 1, 3, 5])
    async def test_always_retryable_exhausts_budget(self, fake_sleep, failing, max_retries):
        """A persistently retryable failure is attempted max_retries + 1 times."""
        error = Exception("WebChannelConnection RPC 'Write' stream transport errored")
        operation = failing(error)
        executor = RetryExecutor(
            policy=RetryPolicy(max_retries=max_retries, base_delay_ms=10, jitter_fraction=0),
            sleep=fake_sleep,
        )

        with pytest.raises(Exception) as exc_info:
            await executor.execute(operation, "save")

        assert exc_info.value is error
        assert operation.calls == max_retries + 1
        assert len(fake_sleep.calls) == max_retries

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_retries", [0, 2, 5])
    async def test_non_retryable_attempted_once(self, fake_sleep, failing, max_retries):
        """Permission errors propagate on the first occurrence."""
        error = PermissionError("Missing or insufficient permissions.")
        operation = failing(error)
        executor = RetryExecutor(policy=RetryPolicy(max_retries=max_retries), sleep=fake_sleep)

        with pytest.raises(PermissionError) as exc_info:
            await executor.execute(operation, "save")

        assert exc_info.value is error
        assert operation.calls == 1
        assert fake_sleep.calls == []

    @pytest.mark.asyncio
    async def test_exhausted_error_is_not_wrapped(self, executor, failing):
        """Callers can still read provider fields off the original error."""

        class FirestoreError(Exception):
            def __init__(self, message, code):
                super().__init__(message)
                self.code = code

        error = FirestoreError("The service is currently unavailable.", code="unavailable")

        with pytest.raises(FirestoreError) as exc_info:
            await executor.execute(failing(error), "write")

        assert exc_info.value.code == "unavailable"

    @pytest.mark.asyncio
    async def test_retry_stops_on_later_non_retryable(self, executor, flaky):
        """A non-retryable error after a retryable one stops the loop."""
        operation = flaky([Exception("deadline-exceeded"), ValueError("bad email")])

        with pytest.raises(ValueError):
            await executor.execute(operation)

        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_sync_operation_supported(self, executor):
        calls = []

        def operation():
            calls.append(1)
            if len(calls) == 1:
                raise ConnectionError("reset by peer")
            return 42

        assert await executor.execute(operation) == 42
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_async_mock_operation(self, executor):
        operation = AsyncMock(side_effect=[NetworkUnavailableError(), "done"])

        assert await executor.execute(operation, "mock") == "done"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_default_policy_when_omitted(self, fake_sleep, flaky, monkeypatch):
        """execute_with_retry falls back to 5 retries, 1000ms base, 30000ms cap, 10% jitter."""
        built: list[RetryExecutor] = []

        class RecordingExecutor(RetryExecutor):
            def __init__(self, **kwargs):
                super().__init__(sleep=fake_sleep, **kwargs)
                built.append(self)

        monkeypatch.setattr("genie_resilience.resilience.retry.RetryExecutor", RecordingExecutor)
        operation = flaky([Exception("aborted")] * 5)

        assert await execute_with_retry(operation, "defaults") == "ok"
        assert built[0].policy == RetryPolicy(
            max_retries=5, base_delay_ms=1000, max_delay_ms=30000, jitter_fraction=0.1
        )
        assert operation.calls == 6
        assert len(fake_sleep.calls) == 5


# =============================================================================
# Backoff math
# =============================================================================


class TestBackoff:
    """Tests for base_delay_for() and calculate_delay()."""

    @pytest.mark.parametrize("attempt", range(8))
    def test_base_delay_is_capped_exponential(self, attempt):
        executor = RetryExecutor(policy=RetryPolicy())

        expected = min(1000 * 2**attempt, 30000)
        assert executor.base_delay_for(attempt) == expected

    def test_cap_reached_at_large_attempts(self):
        executor = RetryExecutor(policy=RetryPolicy(base_delay_ms=500, max_delay_ms=4000))
        assert executor.base_delay_for(30) == 4000

    @pytest.mark.parametrize("base_delay_ms", [1000, 1000.0, 0.5])
    def test_cap_holds_for_huge_attempt_indices(self, base_delay_ms):
        executor = RetryExecutor(policy=RetryPolicy(max_retries=2000, base_delay_ms=base_delay_ms))

        assert executor.base_delay_for(1100) == 30000
        assert 27000 <= executor.calculate_delay(1100) <= 33000

    @pytest.mark.parametrize("attempt", range(8))
    def test_jittered_delay_within_bounds(self, attempt):
        policy = RetryPolicy(jitter_fraction=0.25)
        executor = RetryExecutor(policy=policy, rng=random.Random(attempt))
        base = executor.base_delay_for(attempt)

        for _ in range(200):
            delay = executor.calculate_delay(attempt)
            assert 0 <= delay <= base * (1 + policy.jitter_fraction)
            assert delay >= int(base * (1 - policy.jitter_fraction)) - 1
            assert isinstance(delay, int)

    def test_zero_jitter_is_exact(self):
        executor = RetryExecutor(
            policy=RetryPolicy(base_delay_ms=100, max_delay_ms=1000, jitter_fraction=0)
        )
        assert [executor.calculate_delay(a) for a in range(5)] == [100, 200, 400, 800, 1000]

    def test_full_jitter_never_negative(self):
        executor = RetryExecutor(
            policy=RetryPolicy(base_delay_ms=1, max_delay_ms=1, jitter_fraction=1.0),
            rng=random.Random(7),
        )
        assert all(executor.calculate_delay(0) >= 0 for _ in range(500))

    def test_delay_is_floored(self):
        rng = random.Random()
        rng.uniform = lambda a, b: 0.9  # type: ignore[method-assign]
        executor = RetryExecutor(
            policy=RetryPolicy(base_delay_ms=100, max_delay_ms=1000, jitter_fraction=0.1),
            rng=rng,
        )
        assert executor.calculate_delay(0) == 100


# =============================================================================
# Hooks
# =============================================================================


class TestListenersAndRecovery:
    """Tests for attempt listeners and the recovery hook."""

    @pytest.mark.asyncio
    async def test_listener_receives_every_attempt(self, no_jitter_policy, fake_sleep, flaky):
        outcomes: list[AttemptOutcome] = []
        executor = RetryExecutor(
            policy=no_jitter_policy, sleep=fake_sleep, listeners=(outcomes.append,)
        )

        await executor.execute(flaky([Exception("internal")]), "lookup")

        assert [(o.attempt, o.succeeded) for o in outcomes] == [(0, False), (1, True)]
        assert outcomes[0].category is ErrorCategory.INTERNAL
        assert outcomes[0].delay_ms == 100
        assert outcomes[0].will_retry is True
        assert outcomes[1].will_retry is False
        assert outcomes[1].context == "lookup"

    @pytest.mark.asyncio
    async def test_final_failure_has_no_delay(self, no_jitter_policy, fake_sleep, failing):
        outcomes: list[AttemptOutcome] = []
        executor = RetryExecutor(
            policy=no_jitter_policy, sleep=fake_sleep, listeners=(outcomes.append,)
        )

        with pytest.raises(Exception):
            await executor.execute(failing(Exception("unavailable")))

        assert len(outcomes) == 3
        assert outcomes[-1].delay_ms is None
        assert outcomes[-1].succeeded is False

    @pytest.mark.asyncio
    async def test_metrics_listener(self, no_jitter_policy, fake_sleep, flaky, failing):
        metrics = RetryMetrics()
        executor = RetryExecutor(policy=no_jitter_policy, sleep=fake_sleep, listeners=(metrics,))

        await executor.execute(flaky([Exception("aborted")]))
        with pytest.raises(ValueError):
            await executor.execute(failing(ValueError("invalid")))

        assert metrics.attempts == 3
        assert metrics.retries == 1
        assert metrics.successes == 1
        assert metrics.recovered == 1
        assert metrics.failures == 1
        assert metrics.exhausted == 0
        assert metrics.errors_by_category == {"aborted": 1, "other": 1}

    @pytest.mark.asyncio
    async def test_recover_runs_before_each_retry(self, no_jitter_policy, fake_sleep, flaky):
        recover = AsyncMock()
        executor = RetryExecutor(policy=no_jitter_policy, sleep=fake_sleep, recover=recover)
        first = Exception("failed to fetch")

        await executor.execute(flaky([first, Exception("failed to fetch")]))

        assert recover.await_count == 2
        assert recover.await_args_list[0].args == (first,)

    @pytest.mark.asyncio
    async def test_recover_not_called_for_non_retryable(self, executor, failing):
        recover = AsyncMock()
        executor.recover = recover

        with pytest.raises(KeyError):
            await executor.execute(failing(KeyError("tenant")))

        recover.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_custom_classifier(self, no_jitter_policy, fake_sleep, failing):
        """Injected classifier overrides text matching."""
        executor = RetryExecutor(
            policy=no_jitter_policy,
            sleep=fake_sleep,
            classifier=lambda e: ErrorCategory.OTHER,
        )
        operation = failing(Exception("unavailable"))

        with pytest.raises(Exception):
            await executor.execute(operation)

        assert operation.calls == 1
        assert executor.is_retryable(Exception("unavailable")) is False


# =============================================================================
# Construction helpers
# =============================================================================


class TestDefaultExecutor:
    def test_uses_environment_settings(self, monkeypatch):
        monkeypatch.setenv("GENIE_RETRY_MAX_RETRIES", "2")
        monkeypatch.setenv("GENIE_RETRY_BASE_DELAY_MS", "250")

        executor = default_executor()

        assert executor.policy.max_retries == 2
        assert executor.policy.base_delay_ms == 250

    def test_each_call_is_independent(self):
        assert default_executor() is not default_executor()

    def test_explicit_policy_wins(self):
        policy = RetryPolicy(max_retries=1)
        assert default_executor(policy=policy).policy is policy

    def test_invalid_policy_rejected(self):
        with pytest.raises(ConfigurationError):
            RetryExecutor(policy=RetryPolicy(max_retries=-1))
