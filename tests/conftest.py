"""Pytest configuration and shared fixtures."""

import random

import pytest

from genie_resilience.config import get_settings
from genie_resilience.core.types import RetryPolicy
from genie_resilience.resilience.retry import RetryExecutor


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays (seconds)."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def calls_ms(self) -> list[int]:
        return [round(s * 1000) for s in self.calls]


class FlakyOperation:
    """Fails with the queued errors, then returns `result`."""

    def __init__(self, errors: list[BaseException], result: object = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class AlwaysFails:
    def __init__(self, error: BaseException) -> None:
        self.error = error
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        raise self.error


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Keep GENIE_RETRY_* variables and any local .env out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("GENIE_RETRY_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def no_jitter_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=2, base_delay_ms=100, max_delay_ms=1000, jitter_fraction=0)


@pytest.fixture
def executor(no_jitter_policy, fake_sleep) -> RetryExecutor:
    return RetryExecutor(policy=no_jitter_policy, sleep=fake_sleep, rng=random.Random(42))


@pytest.fixture
def flaky():
    """Factory: flaky(errors, result="ok") -> FlakyOperation."""
    return FlakyOperation


@pytest.fixture
def failing():
    """Factory: failing(error) -> AlwaysFails."""
    return AlwaysFails
