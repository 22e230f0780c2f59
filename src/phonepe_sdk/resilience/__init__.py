"""
Resilience patterns for gateway calls.

Provides:
- RetryConfig: Backoff policy driven by ClassifiedError.retryable
- with_retry_async / retry_async: Async retry decorator and helper
"""

from phonepe_sdk.resilience.retry import (
    DEFAULT_RETRY,
    RetryConfig,
    retry_async,
    with_retry_async,
)

__all__ = [
    "DEFAULT_RETRY",
    "RetryConfig",
    "retry_async",
    "with_retry_async",
]
