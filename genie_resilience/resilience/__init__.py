"""Resilience components.

Fault tolerance for flaky backend calls:
- RetryExecutor: Exponential backoff with jitter
- BatchScheduler: Concurrency-bounded batches of retried operations
- StabilityMonitor: Health checks with recovery after repeated failures
"""

from .batch import BatchScheduler, execute_batch_with_retry
from .monitor import StabilityMonitor
from .retry import RetryExecutor, default_executor, execute_with_retry

__all__ = [
    "BatchScheduler",
    "RetryExecutor",
    "StabilityMonitor",
    "default_executor",
    "execute_batch_with_retry",
    "execute_with_retry",
]
