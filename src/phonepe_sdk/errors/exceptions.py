"""
Classified error value and the exceptions that carry it.

Every failure surfaced by the SDK is normalized into one ClassifiedError with
a stable kind and a retryability flag. Exceptions wrap that value instead of
encoding the taxonomy in a class hierarchy, so callers branch on
``error.kind`` rather than on exception types.
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from phonepe_sdk.types import ErrorKind

# End-user safe messages per kind. ``kind`` values are for code, not people.
USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "Invalid input provided. Please check your details and try again.",
    ErrorKind.NETWORK: "Network error. Please check your connection and try again.",
    ErrorKind.AUTH: "Authentication failed. Please contact support.",
    ErrorKind.TIMEOUT: "Request timed out. Please try again.",
    ErrorKind.RATE_LIMIT: "Too many requests. Please wait a moment and try again.",
    ErrorKind.API: "The payment service could not complete the request. Please try again later.",
}
DEFAULT_USER_MESSAGE = "An error occurred. Please try again later."


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ClassifiedError:
    """
    Normalized, taxonomy-tagged representation of one raw failure.

    Attributes:
        kind: Error classification for retry and handling decisions
        message: Human-readable error description
        retryable: Whether the call may succeed if repeated
        http_status: HTTP status of the provider response, if any
        provider_code: Provider error code taken from the response body
        details: Opaque diagnostic payload (usually the response body)
        occurred_at: UTC timestamp of classification
        retry_after: Seconds the provider asked us to wait (rate limits only)
        timeout_seconds: Timeout in force for the failed call (timeouts only)
        field_name: Rejected request field (validation only)
        constraints: Failed validation constraints (validation only)
    """

    kind: ErrorKind
    message: str
    retryable: bool
    http_status: int | None = None
    provider_code: str | None = None
    details: Any = None
    occurred_at: datetime = field(default_factory=_utcnow)
    retry_after: float | None = None
    timeout_seconds: float | None = None
    field_name: str | None = None
    constraints: dict[str, str] | None = None

    def user_message(self) -> str:
        """Return a sanitized message that is safe to show to end users."""
        return USER_MESSAGES.get(self.kind, DEFAULT_USER_MESSAGE)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation for logging and diagnostics."""
        data = asdict(self)
        data["kind"] = self.kind.value
        data["occurred_at"] = self.occurred_at.isoformat()
        return {key: value for key, value in data.items() if value is not None}


class GatewayError(Exception):
    """
    Base exception for all SDK errors.

    Carries exactly one ClassifiedError describing the failure.

    Attributes:
        error: The classified error
        cause: Original exception if wrapping
    """

    def __init__(self, error: ClassifiedError, cause: BaseException | None = None):
        self.error = error
        self.cause = cause
        super().__init__(error.message)

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def retryable(self) -> bool:
        return self.error.retryable

    @property
    def http_status(self) -> int | None:
        return self.error.http_status

    @property
    def retry_after(self) -> float | None:
        return self.error.retry_after

    def __str__(self) -> str:
        parts = [f"[{self.error.kind.value}] {self.error.message}"]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class AuthFailure(GatewayError):
    """Token renewal failed. The carried error keeps the underlying kind."""


class ConfigurationError(GatewayError):
    """Client configuration is invalid."""

    def __init__(self, message: str, field_name: str | None = None):
        super().__init__(
            ClassifiedError(
                kind=ErrorKind.VALIDATION,
                message=message,
                retryable=False,
                field_name=field_name,
            )
        )


__all__ = [
    "ClassifiedError",
    "GatewayError",
    "AuthFailure",
    "ConfigurationError",
    "USER_MESSAGES",
    "DEFAULT_USER_MESSAGE",
]
