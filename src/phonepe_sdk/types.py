"""
Core types and protocols used across modules.

This module provides the error taxonomy and the transport protocol shared by
the credential broker, the failure classifier and the gateway client.
"""

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from phonepe_sdk.transport.models import HttpRequest, HttpResponse


class ErrorKind(Enum):
    """
    Classification of gateway failures for handling decisions.

    Values are stable codes intended for programmatic branching. Use
    ClassifiedError.user_message() for text that is safe to show end users.

    Kinds:
        VALIDATION: Malformed or rejected request content (HTTP 400)
        NETWORK: No response reached the caller (connection failure)
        AUTH: Credential exchange or authorization rejected (HTTP 401/403)
        TIMEOUT: Call exceeded the configured timeout
        RATE_LIMIT: Provider signaled throttling (HTTP 429)
        API: Provider returned an application-level failure
        UNKNOWN: Unclassifiable failure
    """

    VALIDATION = "VALIDATION_ERROR"
    NETWORK = "NETWORK_ERROR"
    AUTH = "AUTH_ERROR"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT_EXCEEDED"
    API = "API_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


class HttpTransport(Protocol):
    """
    Protocol for the HTTP transport consumed by the SDK.

    Implementations return an HttpResponse for 2xx statuses and raise
    TransportFailure otherwise. A failure carries the response when the
    provider answered with a non-success status, a timeout flag when the call
    timed out, and neither when the connection itself failed.
    """

    async def send(self, request: "HttpRequest") -> "HttpResponse":
        """
        Send a request and return the provider's response.

        Args:
            request: Request to send

        Returns:
            Successful (2xx) response

        Raises:
            TransportFailure: On timeout, connection failure or non-2xx status
        """
        ...


__all__ = [
    "ErrorKind",
    "HttpTransport",
]
