"""
Failure classification for gateway calls.

Maps any raw failure (transport failure, provider response, timeout,
connection error, or an already classified error) to exactly one
ClassifiedError. Classification is total and deterministic: it never raises
and has no side effects, so it is safe to call from any thread or task.

Decision order (first match wins):
    1. Already classified          -> returned unchanged
    2. Response status available:
         429                       -> RATE_LIMIT (retryable, retry_after)
         401 / 403                 -> AUTH
         400                       -> VALIDATION (field detail if supplied)
         500-599                   -> API (retryable)
         other status with a body  -> API (provider_code from body)
    3. Timeout with no response    -> TIMEOUT (retryable)
    4. No response at all          -> NETWORK (retryable)
    5. Anything else               -> UNKNOWN

Status checks come before the timeout check: a 401 that also carries a
timeout flag is an authentication failure, not a timing artifact.
"""

import logging
import math
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import aiohttp

from phonepe_sdk.errors.exceptions import ClassifiedError, GatewayError
from phonepe_sdk.transport.models import HttpResponse, TransportFailure
from phonepe_sdk.types import ErrorKind

logger = logging.getLogger(__name__)

RETRY_AFTER_HEADER = "Retry-After"

# Body keys the provider uses for its error code, in lookup order
PROVIDER_CODE_KEYS = ("code", "errorCode", "error_code")
PROVIDER_MESSAGE_KEYS = ("message", "errorMessage", "error_description")


def parse_retry_after(value: Any, now: datetime | None = None) -> float | None:
    """
    Parse a Retry-After header value into seconds.

    Accepts delta-seconds ("5", "2.5") and HTTP-dates. A missing, negative or
    malformed value yields None: "unset" is never conflated with zero.

    Args:
        value: Raw header value
        now: Reference time for HTTP-date values (default: current UTC time)

    Returns:
        Seconds to wait, or None if the header is absent or unusable
    """
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    try:
        seconds = float(text)
    except ValueError:
        seconds = None

    if seconds is not None:
        if seconds < 0 or not math.isfinite(seconds):
            return None
        return seconds

    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)

    reference = now or datetime.now(UTC)
    return max(0.0, (when - reference).total_seconds())


def _first_str(body: Any, keys: tuple[str, ...]) -> str | None:
    if not isinstance(body, dict):
        return None
    for key in keys:
        value = body.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _response_message(response: HttpResponse, fallback: str) -> str:
    return _first_str(response.body, PROVIDER_MESSAGE_KEYS) or fallback


def _classify_response(response: HttpResponse) -> ClassifiedError | None:
    """Classify by HTTP status. Returns None when the status says nothing."""
    status = response.status
    provider_code = _first_str(response.body, PROVIDER_CODE_KEYS)

    if status == 429:
        return ClassifiedError(
            kind=ErrorKind.RATE_LIMIT,
            message=_response_message(response, "Rate limit exceeded (429)"),
            retryable=True,
            http_status=status,
            provider_code=provider_code,
            details=response.body,
            retry_after=parse_retry_after(response.header(RETRY_AFTER_HEADER)),
        )

    if status in (401, 403):
        label = "Unauthorized" if status == 401 else "Forbidden"
        return ClassifiedError(
            kind=ErrorKind.AUTH,
            message=_response_message(response, f"{label} ({status})"),
            retryable=False,
            http_status=status,
            provider_code=provider_code,
            details=response.body,
        )

    if status == 400:
        body = response.body if isinstance(response.body, dict) else {}
        constraints = body.get("constraints")
        field_name = body.get("field")
        return ClassifiedError(
            kind=ErrorKind.VALIDATION,
            message=_response_message(response, "Bad request (400)"),
            retryable=False,
            http_status=status,
            provider_code=provider_code,
            details=response.body,
            field_name=str(field_name) if field_name else None,
            constraints=dict(constraints) if isinstance(constraints, dict) else None,
        )

    if 500 <= status <= 599:
        return ClassifiedError(
            kind=ErrorKind.API,
            message=_response_message(response, f"Server error ({status})"),
            retryable=True,
            http_status=status,
            provider_code=provider_code,
            details=response.body,
        )

    if response.has_body:
        return ClassifiedError(
            kind=ErrorKind.API,
            message=_response_message(response, f"API error ({status})"),
            retryable=False,
            http_status=status,
            provider_code=provider_code,
            details=response.body,
        )

    return None


def _response_from_client_error(error: aiohttp.ClientResponseError) -> HttpResponse:
    headers = dict(error.headers) if error.headers else {}
    return HttpResponse(status=error.status, headers=headers, body=error.message or None)


def _timeout_error(message: str, timeout_seconds: float | None) -> ClassifiedError:
    return ClassifiedError(
        kind=ErrorKind.TIMEOUT,
        message=message,
        retryable=True,
        timeout_seconds=timeout_seconds,
    )


def _network_error(message: str, cause: BaseException | None) -> ClassifiedError:
    details = {"error_type": type(cause).__name__} if cause is not None else None
    return ClassifiedError(
        kind=ErrorKind.NETWORK,
        message=message,
        retryable=True,
        details=details,
    )


def _unknown_error(raw: Any, http_status: int | None = None) -> ClassifiedError:
    if isinstance(raw, BaseException):
        message = str(raw) or type(raw).__name__
        details = {"error_type": type(raw).__name__}
    else:
        message = f"Unclassifiable failure: {raw!r}"[:500]
        details = None
    return ClassifiedError(
        kind=ErrorKind.UNKNOWN,
        message=message,
        retryable=False,
        http_status=http_status,
        details=details,
    )


def _classify_transport_failure(failure: TransportFailure) -> ClassifiedError:
    if failure.response is not None:
        classified = _classify_response(failure.response)
        if classified is not None:
            return classified

    if failure.timeout:
        return _timeout_error(failure.message, failure.timeout_seconds)

    if failure.response is None:
        return _network_error(failure.message, failure.cause)

    return _unknown_error(failure, http_status=failure.response.status)


def _classify_unsafe(raw: Any) -> ClassifiedError:
    if isinstance(raw, ClassifiedError):
        return raw

    if isinstance(raw, GatewayError):
        return raw.error

    if isinstance(raw, TransportFailure):
        return _classify_transport_failure(raw)

    if isinstance(raw, HttpResponse):
        classified = _classify_response(raw)
        if classified is not None:
            return classified
        return _unknown_error(raw, http_status=raw.status)

    if isinstance(raw, aiohttp.ClientResponseError):
        response = _response_from_client_error(raw)
        classified = _classify_response(response)
        if classified is not None:
            return classified
        return _unknown_error(raw, http_status=raw.status)

    # aiohttp.ServerTimeoutError is both a ClientError and a TimeoutError
    if isinstance(raw, TimeoutError):
        return _timeout_error(str(raw) or "Request timed out", None)

    if isinstance(raw, (aiohttp.ClientConnectionError, ConnectionError)):
        return _network_error(f"Connection error: {raw}", raw)

    return _unknown_error(raw)


def classify(raw: Any) -> ClassifiedError:
    """
    Classify a raw failure into exactly one ClassifiedError.

    Never raises. Classifying an already classified error returns it
    unchanged, so classify(classify(x)) == classify(x).

    Args:
        raw: Transport failure, provider response, exception, or a
            ClassifiedError / GatewayError

    Returns:
        ClassifiedError describing the failure
    """
    try:
        return _classify_unsafe(raw)
    except Exception as e:
        # Malformed inputs (broken headers, exotic bodies) still get a value
        logger.debug("Classification fell back to UNKNOWN: %s", e)
        return _unknown_error(raw)


class FailureClassifier:
    """
    Stateless classifier object for dependency injection.

    Usage:
        classifier = FailureClassifier()
        error = classifier.classify(failure)
        if error.retryable:
            ...
    """

    def classify(self, raw: Any) -> ClassifiedError:
        return classify(raw)

    def is_retryable(self, raw: Any) -> bool:
        return classify(raw).retryable


__all__ = [
    "FailureClassifier",
    "classify",
    "parse_retry_after",
    "RETRY_AFTER_HEADER",
]
