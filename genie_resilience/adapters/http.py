"""httpx adapter: map HTTP failures onto ErrorCategory.

Used for calls to the email-finder proxy and other JSON HTTP services.
"""

from __future__ import annotations

from typing import Any

import httpx

from genie_resilience.config.constants import (
    HTTP_ABORTED_STATUSES,
    HTTP_DEADLINE_STATUSES,
    HTTP_RESOURCE_EXHAUSTED_STATUSES,
    HTTP_UNAVAILABLE_STATUSES,
)
from genie_resilience.core.errors import ErrorCategory, classify_exception
from genie_resilience.resilience.retry import RetryExecutor


def classify_status(status_code: int) -> ErrorCategory:
    """Classify an HTTP error status."""
    if status_code in HTTP_RESOURCE_EXHAUSTED_STATUSES:
        return ErrorCategory.RESOURCE_EXHAUSTED
    if status_code in HTTP_UNAVAILABLE_STATUSES:
        return ErrorCategory.NETWORK_UNAVAILABLE
    if status_code in HTTP_DEADLINE_STATUSES:
        return ErrorCategory.DEADLINE_EXCEEDED
    if status_code in HTTP_ABORTED_STATUSES:
        return ErrorCategory.ABORTED
    if status_code >= 500:
        return ErrorCategory.INTERNAL
    return ErrorCategory.OTHER


def classify_http_error(error: BaseException) -> ErrorCategory:
    """Classify httpx exceptions; anything else goes to classify_exception."""
    if isinstance(error, httpx.HTTPStatusError):
        return classify_status(error.response.status_code)
    if isinstance(error, httpx.TimeoutException):
        return ErrorCategory.DEADLINE_EXCEEDED
    if isinstance(error, httpx.TransportError):
        return ErrorCategory.NETWORK_UNAVAILABLE
    return classify_exception(error)


def http_executor(**kwargs: Any) -> RetryExecutor:
    """RetryExecutor that understands httpx errors."""
    kwargs.setdefault("classifier", classify_http_error)
    return RetryExecutor(**kwargs)


async def send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    executor: RetryExecutor | None = None,
    context: str | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request with retries; non-2xx responses count as failures."""
    executor = executor if executor is not None else http_executor()

    async def _request() -> httpx.Response:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    return await executor.execute(_request, context or f"{method.upper()} {url}")


async def fetch_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    executor: RetryExecutor | None = None,
    context: str | None = None,
    **kwargs: Any,
) -> Any:
    """Send a request with retries and decode the JSON body.

    Args:
        client: Open httpx.AsyncClient
        method: HTTP method
        url: Request URL
        executor: Executor to use (http_executor() when omitted)
        context: Log label (defaults to "METHOD url")
        **kwargs: Passed through to client.request()

    Returns:
        Decoded JSON body

    Raises:
        httpx.HTTPStatusError: Final non-2xx response
        httpx.HTTPError: Final transport failure
    """
    response = await send_with_retry(
        client, method, url, executor=executor, context=context, **kwargs
    )
    return response.json()
