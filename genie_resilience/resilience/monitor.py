"""Connection stability monitor.

Runs a cheap probe (e.g. a small document write) through the retry executor.
Consecutive probe failures are counted; after `max_failures` in a row the
recovery hook runs (e.g. disable and re-enable the database network).

State transitions:
HEALTHY -> [probe fails] -> DEGRADED (failure_count < max_failures)
DEGRADED -> [failure_count reaches max_failures] -> recovery -> probe passes -> counter reset
recovery -> probe still fails -> DEGRADED (next failed check retries recovery)
any -> [probe succeeds] -> HEALTHY
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from genie_resilience.config import get_settings
from genie_resilience.config.constants import (
    DEFAULT_MONITOR_INTERVAL,
    DEFAULT_MONITOR_MAX_FAILURES,
)
from genie_resilience.core.errors import ConfigurationError
from genie_resilience.core.types import Operation
from genie_resilience.observability.logger import get_logger

from .retry import RetryExecutor, Sleep, default_executor

logger = get_logger(__name__)

Recovery = Callable[[], "Awaitable[Any] | Any"]


@dataclass
class StabilityMonitor:
    """Health checks with recovery after repeated failures.

    Usage:
        monitor = StabilityMonitor(probe=write_health_doc, recover=reset_network)

        stop = asyncio.Event()
        task = asyncio.create_task(monitor.run(stop))
        ...
        stop.set()
        await task
    """

    probe: Operation
    executor: RetryExecutor = field(default_factory=RetryExecutor)
    recover: Recovery | None = None
    max_failures: int = DEFAULT_MONITOR_MAX_FAILURES
    interval: float = DEFAULT_MONITOR_INTERVAL  # seconds
    sleep: Sleep = asyncio.sleep

    # State
    _failure_count: int = field(default=0, init=False)
    _last_success: datetime | None = field(default=None, init=False)
    _last_error: BaseException | None = field(default=None, init=False)
    _recoveries: int = field(default=0, init=False)
    _failed_recoveries: int = field(default=0, init=False)
    _monitoring: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.max_failures < 1:
            raise ConfigurationError(
                "max_failures must be >= 1", field="max_failures", value=self.max_failures
            )
        if self.interval <= 0:
            raise ConfigurationError("interval must be > 0", field="interval", value=self.interval)

    @classmethod
    def from_settings(cls, probe: Operation, **overrides: Any) -> StabilityMonitor:
        """Monitor configured from GENIE_RETRY_* settings."""
        settings = get_settings()
        overrides.setdefault("executor", default_executor())
        overrides.setdefault("max_failures", settings.monitor_max_failures)
        overrides.setdefault("interval", settings.monitor_interval)
        return cls(probe=probe, **overrides)

    @property
    def failure_count(self) -> int:
        """Consecutive failed checks since the last success or recovery."""
        return self._failure_count

    @property
    def last_success(self) -> datetime | None:
        return self._last_success

    @property
    def is_healthy(self) -> bool:
        return self._failure_count == 0

    @property
    def is_monitoring(self) -> bool:
        """True while run() is looping."""
        return self._monitoring

    @property
    def connection_age(self) -> int | None:
        """Milliseconds since the last successful probe."""
        if self._last_success is None:
            return None
        return int((datetime.now() - self._last_success).total_seconds() * 1000)

    async def check(self) -> bool:
        """Run one health check.

        Returns:
            True if the probe succeeded
        """
        try:
            await self.executor.execute(self.probe, "health check")
        except Exception as e:
            await self._handle_failure(e)
            return False

        self._last_success = datetime.now()
        self._last_error = None
        if self._failure_count:
            logger.info("Connection healthy again", extra={"failures": self._failure_count})
        self._failure_count = 0
        return True

    async def run(self, stop: asyncio.Event) -> None:
        """Check every `interval` seconds until `stop` is set."""
        if self._monitoring:
            logger.warning("Stability monitoring already running")
            return

        self._monitoring = True
        logger.info("Starting stability monitoring", extra={"interval": self.interval})
        try:
            while not stop.is_set():
                await self.check()
                if stop.is_set():
                    break
                await self.sleep(self.interval)
        finally:
            self._monitoring = False
            logger.info("Stability monitoring stopped")

    async def force_refresh(self) -> bool:
        """Run recovery now, whatever the failure count.

        Returns:
            True if the probe passed after recovery
        """
        logger.info("Forcing connection refresh")
        return await self._recover()

    def status(self) -> dict[str, Any]:
        """Snapshot for dashboards and logs."""
        return {
            "healthy": self.is_healthy,
            "monitoring": self._monitoring,
            "failure_count": self._failure_count,
            "max_failures": self.max_failures,
            "last_success": self._last_success.isoformat() if self._last_success else None,
            "connection_age": self.connection_age,
            "last_error": str(self._last_error) if self._last_error else None,
            "recoveries": self._recoveries,
            "failed_recoveries": self._failed_recoveries,
        }

    def reset(self) -> None:
        """Reset monitor to initial state."""
        self._failure_count = 0
        self._last_error = None
        logger.info("Stability monitor reset")

    async def _handle_failure(self, error: BaseException) -> None:
        self._failure_count += 1
        self._last_error = error
        logger.warning(
            f"Connection issue detected ({self._failure_count}/{self.max_failures})",
            extra={"error": str(error)},
        )

        if self._failure_count < self.max_failures or self.recover is None:
            return

        await self._recover()

    async def _recover(self) -> bool:
        """Run the recovery hook, then verify with a single probe call.

        The failure counter only resets once the probe passes again.
        """
        logger.info("Attempting connection recovery")
        try:
            if self.recover is not None:
                result = self.recover()
                if inspect.isawaitable(result):
                    await result

            result = self.probe()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # Counter stays put so the next failed check tries again
            self._failed_recoveries += 1
            self._last_error = e
            logger.error("Connection recovery failed", extra={"error": str(e)})
            return False

        self._recoveries += 1
        self._failure_count = 0
        self._last_success = datetime.now()
        self._last_error = None
        logger.info("Connection recovery completed")
        return True
