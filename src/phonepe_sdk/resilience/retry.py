"""
Caller-side retry with classification-aware handling.

Uses the classified error to make retry decisions:
- Retryable kinds (network, timeout, rate limit, 5xx): exponential backoff
- Rate limits with Retry-After: wait the server-provided delay
- Auth errors: invoke the auth callback (e.g. clear the token cache)
- Everything else: fail immediately

The credential broker never retries; this module is where retries live.
"""

import asyncio
import inspect
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from phonepe_sdk.constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS
from phonepe_sdk.errors.classifier import classify
from phonepe_sdk.errors.exceptions import ClassifiedError, GatewayError
from phonepe_sdk.types import ErrorKind

logger = logging.getLogger(__name__)

OnRetry = Callable[[GatewayError, int, float], None]
OnAuthError = Callable[[], None] | Callable[[], Awaitable[None]]


def _as_gateway_error(e: Exception) -> GatewayError:
    if isinstance(e, GatewayError):
        return e
    return GatewayError(classify(e), cause=e)


def _log_retry_failure(func_name: str, wrapped: GatewayError, config: "RetryConfig") -> None:
    """Log non-retryable error or max-retries-exhausted."""
    extra = {
        "operation": func_name,
        "error_type": type(wrapped).__name__,
        "error_kind": wrapped.kind.value,
        "http_status": wrapped.http_status,
        "error_message": str(wrapped)[:200],
    }
    if not wrapped.retryable:
        logger.warning(
            "Non-retryable error for %s, not retrying: %s",
            func_name,
            str(wrapped)[:200],
            extra=extra,
        )
        return

    logger.error(
        "Max retries exhausted for %s: %s",
        func_name,
        str(wrapped)[:200],
        extra={**extra, "max_attempts": config.max_attempts},
    )


def _log_retry_attempt(
    func_name: str,
    attempt: int,
    config: "RetryConfig",
    delay: float,
    wrapped: GatewayError,
) -> None:
    log_extras: dict[str, object] = {
        "operation": func_name,
        "attempt": attempt + 1,
        "max_attempts": config.max_attempts,
        "error_kind": wrapped.kind.value,
        "delay_seconds": round(delay, 2),
        "error_message": str(wrapped)[:200],
    }

    if config.uses_server_delay(wrapped.error):
        log_extras["retry_after"] = wrapped.retry_after
        log_extras["delay_source"] = "server"
        log_message = "Retryable error for %s, will retry (using server-provided delay)"
    else:
        log_extras["delay_source"] = "exponential_backoff"
        log_message = "Retryable error for %s, will retry"

    logger.warning(log_message, func_name, extra=log_extras)


def _safe_invoke_on_retry(
    on_retry: OnRetry,
    wrapped: GatewayError,
    attempt: int,
    delay: float,
    func_name: str,
) -> None:
    """Call the on_retry callback, logging (not raising) any errors."""
    try:
        on_retry(wrapped, attempt, delay)
    except Exception as cb_err:
        logger.warning(
            "Error in on_retry callback for %s: %s",
            func_name,
            str(cb_err)[:100],
            extra={
                "operation": func_name,
                "callback_error": str(cb_err)[:100],
            },
        )


async def _invoke_on_auth_error(on_auth_error: OnAuthError) -> None:
    result = on_auth_error()
    if inspect.isawaitable(result):
        await result


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = DEFAULT_RETRY_ATTEMPTS
    base_delay: float = DEFAULT_RETRY_DELAY_SECONDS
    max_delay: float = 30.0
    exponential_base: float = 2.0

    # If True, use retry_after from rate-limit errors when available
    respect_retry_after: bool = True

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        self.max_attempts = int(self.max_attempts)
        self.base_delay = float(self.base_delay)
        self.max_delay = float(self.max_delay)
        self.exponential_base = float(self.exponential_base)
        # bool('false') would be True
        self.respect_retry_after = (
            self.respect_retry_after
            if isinstance(self.respect_retry_after, bool)
            else str(self.respect_retry_after).strip().lower() in ("1", "true", "yes", "on")
        )

    def uses_server_delay(self, error: ClassifiedError) -> bool:
        return (
            self.respect_retry_after
            and error.kind == ErrorKind.RATE_LIMIT
            and error.retry_after is not None
        )

    def get_delay(self, attempt: int, error: Exception | ClassifiedError | None = None) -> float:
        """
        Calculate delay with equal jitter to prevent thundering herd.

        Args:
            attempt: 0-indexed attempt number
            error: Optional failure to check for retry_after

        Returns:
            Delay in seconds
        """
        if error is not None:
            classified = classify(error)
            if self.uses_server_delay(classified):
                return min(classified.retry_after, self.max_delay)

        base_delay = self.base_delay * (self.exponential_base**attempt)

        # Equal jitter: half fixed, half random
        jitter = random.uniform(0, base_delay / 2)
        delay = (base_delay / 2) + jitter

        return min(delay, self.max_delay)

    def should_retry(self, error: Exception | ClassifiedError, attempt: int) -> bool:
        """
        Determine if error should be retried.

        Args:
            error: The failure that occurred
            attempt: 0-indexed current attempt

        Returns:
            True if attempts remain and the classified error is retryable
        """
        if attempt >= self.max_attempts - 1:
            return False
        return classify(error).retryable


DEFAULT_RETRY = RetryConfig()


def with_retry_async(
    config: RetryConfig | None = None,
    on_auth_error: OnAuthError | None = None,
    on_retry: OnRetry | None = None,
):
    """
    Decorator for retrying async functions with classification-aware backoff.

    Failures are re-raised as GatewayError (AuthFailure and other
    GatewayError subclasses pass through unchanged).

    Args:
        config: Retry configuration (defaults to DEFAULT_RETRY)
        on_auth_error: Callback when an AUTH_ERROR is seen (sync or async),
            e.g. ``broker.clear_cache``
        on_retry: Callback before each retry (error, attempt, delay)

    Usage:
        @with_retry_async(on_auth_error=broker.clear_cache)
        async def fetch_status(order_id):
            ...
    """
    if config is None:
        config = DEFAULT_RETRY

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(config.max_attempts):
                try:
                    result = await func(*args, **kwargs)

                    if attempt > 0:
                        logger.info(
                            "Retry succeeded for %s after %d attempts",
                            func.__name__,
                            attempt + 1,
                            extra={
                                "operation": func.__name__,
                                "attempt": attempt + 1,
                                "max_attempts": config.max_attempts,
                            },
                        )

                    return result

                except Exception as e:
                    wrapped = _as_gateway_error(e)

                    if wrapped.kind == ErrorKind.AUTH and on_auth_error:
                        logger.info(
                            "Auth error detected for %s, refreshing credentials",
                            func.__name__,
                            extra={
                                "operation": func.__name__,
                                "error_kind": wrapped.kind.value,
                            },
                        )
                        await _invoke_on_auth_error(on_auth_error)

                    if not config.should_retry(wrapped, attempt):
                        _log_retry_failure(func.__name__, wrapped, config)
                        if wrapped is e:
                            raise
                        raise wrapped from e

                    delay = config.get_delay(attempt, wrapped)
                    _log_retry_attempt(func.__name__, attempt, config, delay, wrapped)

                    if on_retry:
                        _safe_invoke_on_retry(on_retry, wrapped, attempt, delay, func.__name__)

                    await asyncio.sleep(delay)

        return wrapper

    return decorator


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: RetryConfig | None = None,
    on_auth_error: OnAuthError | None = None,
    on_retry: OnRetry | None = None,
    **kwargs: Any,
) -> Any:
    """
    Call ``func(*args, **kwargs)`` with retries.

    Functional form of with_retry_async for one-off calls.
    """
    decorated = with_retry_async(config=config, on_auth_error=on_auth_error, on_retry=on_retry)(
        func
    )
    return await decorated(*args, **kwargs)


__all__ = [
    "RetryConfig",
    "with_retry_async",
    "retry_async",
    "DEFAULT_RETRY",
]
