"""Adapters mapping third-party client errors onto ErrorCategory."""

from .http import (
    classify_http_error,
    classify_status,
    fetch_json,
    http_executor,
    send_with_retry,
)

__all__ = [
    "classify_http_error",
    "classify_status",
    "fetch_json",
    "http_executor",
    "send_with_retry",
]
