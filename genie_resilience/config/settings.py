"""Runtime settings using Pydantic. No side effects at import time."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_BATCH_DELAY_MS,
    DEFAULT_CONCURRENCY,
    DEFAULT_JITTER_FRACTION,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MONITOR_INTERVAL,
    DEFAULT_MONITOR_MAX_FAILURES,
)

if TYPE_CHECKING:
    from genie_resilience.core.types import RetryPolicy


class Settings(BaseSettings):
    """Settings loaded from GENIE_RETRY_* environment variables and .env.

    No side effects at class definition time - .env is loaded only when
    Settings() is instantiated.
    """

    model_config = SettingsConfigDict(
        env_prefix="GENIE_RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Retry Policy ===
    max_retries: Annotated[int, Field(ge=0)] = DEFAULT_MAX_RETRIES
    base_delay_ms: Annotated[float, Field(gt=0)] = DEFAULT_BASE_DELAY_MS
    max_delay_ms: Annotated[float, Field(gt=0)] = DEFAULT_MAX_DELAY_MS
    jitter_fraction: Annotated[float, Field(ge=0, le=1)] = DEFAULT_JITTER_FRACTION

    # === Batch Execution ===
    batch_concurrency: Annotated[int, Field(gt=0)] = DEFAULT_CONCURRENCY
    batch_delay_ms: Annotated[float, Field(ge=0)] = DEFAULT_BATCH_DELAY_MS

    # === Stability Monitor ===
    monitor_interval: Annotated[float, Field(gt=0)] = DEFAULT_MONITOR_INTERVAL
    monitor_max_failures: Annotated[int, Field(gt=0)] = DEFAULT_MONITOR_MAX_FAILURES

    # === Logging ===
    log_level: str = "INFO"
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> Settings:
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")
        return self

    def retry_policy(self) -> RetryPolicy:
        """Build the RetryPolicy described by these settings."""
        from genie_resilience.core.types import RetryPolicy

        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
            jitter_fraction=self.jitter_fraction,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This is the recommended way to access settings to avoid
    repeated .env file parsing.
    """
    return Settings()
