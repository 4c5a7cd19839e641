"""Batch execution with bounded concurrency.

Jobs run in consecutive groups of `concurrency`. Every job in a group goes
through the retry executor concurrently; the next group starts only after
the whole group has settled and `batch_delay_ms` has passed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence, Union

from genie_resilience.config import get_settings
from genie_resilience.config.constants import DEFAULT_BATCH_DELAY_MS, DEFAULT_CONCURRENCY
from genie_resilience.core.errors import ConfigurationError
from genie_resilience.core.types import BatchJob, BatchResult, JobFailure, JobSuccess, Operation
from genie_resilience.observability.logger import get_logger, log_context

from .retry import RetryExecutor, Sleep, default_executor

logger = get_logger(__name__)

JobLike = Union[BatchJob, "tuple[Operation, str]", Operation]


@dataclass
class BatchScheduler:
    """Run many operations through one RetryExecutor.

    Usage:
        scheduler = BatchScheduler(concurrency=3, batch_delay_ms=500)

        result = await scheduler.run([
            BatchJob(lambda: save_lead(lead), "save lead") for lead in leads
        ])
        print(result.success_rate)  # "100.0"
    """

    executor: RetryExecutor = field(default_factory=RetryExecutor)
    concurrency: int = DEFAULT_CONCURRENCY
    batch_delay_ms: float = DEFAULT_BATCH_DELAY_MS
    sleep: Sleep = asyncio.sleep

    def __post_init__(self) -> None:
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise ConfigurationError(
                "concurrency must be an integer", field="concurrency", value=self.concurrency
            )
        if self.concurrency < 1:
            raise ConfigurationError(
                "concurrency must be >= 1", field="concurrency", value=self.concurrency
            )
        if self.batch_delay_ms < 0:
            raise ConfigurationError(
                "batch_delay_ms must be >= 0", field="batch_delay_ms", value=self.batch_delay_ms
            )

    @classmethod
    def from_settings(cls, **overrides: Any) -> BatchScheduler:
        """Scheduler configured from GENIE_RETRY_* settings."""
        settings = get_settings()
        overrides.setdefault("executor", default_executor())
        overrides.setdefault("concurrency", settings.batch_concurrency)
        overrides.setdefault("batch_delay_ms", settings.batch_delay_ms)
        return cls(**overrides)

    def groups(self, jobs: Sequence[BatchJob]) -> list[Sequence[BatchJob]]:
        """Split jobs into consecutive groups of at most `concurrency`."""
        return [jobs[i : i + self.concurrency] for i in range(0, len(jobs), self.concurrency)]

    async def run(self, jobs: Iterable[JobLike]) -> BatchResult:
        """Execute all jobs; never raises for individual job failures.

        Args:
            jobs: BatchJob instances, (operation, context) pairs or callables

        Returns:
            BatchResult with successes and failures ordered by job index
        """
        batch = [BatchJob.coerce(job) for job in jobs]
        total = len(batch)
        result = BatchResult(total_processed=total)
        groups = self.groups(batch)

        logger.info(
            f"Starting batch execution with {total} operations, concurrency: {self.concurrency}"
        )

        for group_index, group in enumerate(groups):
            start = group_index * self.concurrency
            logger.info(f"Processing batch {group_index + 1} ({len(group)} operations)")

            with log_context(batch_index=group_index + 1, batch_size=len(group)):
                outcomes = await asyncio.gather(
                    *(self._run_job(job, start + offset, total) for offset, job in enumerate(group))
                )

            for outcome in outcomes:
                if isinstance(outcome, JobSuccess):
                    result.successes.append(outcome)
                else:
                    result.failures.append(outcome)

            if group_index < len(groups) - 1:
                logger.debug(f"Batch delay {self.batch_delay_ms}ms before next batch")
                await self.sleep(self.batch_delay_ms / 1000)

        result.successes.sort(key=lambda s: s.index)
        result.failures.sort(key=lambda f: f.index)

        logger.info(
            f"Batch execution complete: {result.success_count} succeeded, "
            f"{result.failure_count} failed",
            extra={"success_rate": result.success_rate},
        )
        return result

    async def _run_job(self, job: BatchJob, index: int, total: int) -> JobSuccess | JobFailure:
        context = f"{job.context} {index + 1}/{total}"
        try:
            value = await self.executor.execute(job.operation, context)
        except Exception as e:
            logger.error(
                f"Final failure for operation {index + 1}: {e}",
                extra={"error_type": type(e).__name__},
            )
            return JobFailure(index=index, error=e)
        return JobSuccess(index=index, result=value)


async def execute_batch_with_retry(
    jobs: Iterable[JobLike],
    concurrency: int = DEFAULT_CONCURRENCY,
    batch_delay_ms: float = DEFAULT_BATCH_DELAY_MS,
    executor: RetryExecutor | None = None,
) -> BatchResult:
    """Run jobs in concurrency-bounded groups with per-job retries."""
    scheduler = BatchScheduler(
        executor=executor if executor is not None else RetryExecutor(),
        concurrency=concurrency,
        batch_delay_ms=batch_delay_ms,
    )
    return await scheduler.run(jobs)
