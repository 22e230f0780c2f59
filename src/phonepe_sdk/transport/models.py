"""Request, response and failure values exchanged with the HTTP transport."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class HttpRequest:
    """
    Outbound HTTP request.

    Attributes:
        method: HTTP method (GET, POST, ...)
        url: Absolute request URL
        headers: Request headers
        data: Form fields, sent as application/x-www-form-urlencoded
        json: JSON body
        params: Query string parameters
        timeout: Total timeout in seconds (None uses the transport default)
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    data: dict[str, str] | None = None
    json: dict[str, Any] | None = None
    params: dict[str, str] | None = None
    timeout: float | None = None


@dataclass
class HttpResponse:
    """Response from the provider with status, headers and parsed body."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def has_body(self) -> bool:
        return self.body not in (None, "", {}, [])


class TransportFailure(Exception):
    """
    Raw failure raised by an HttpTransport.

    Attributes:
        message: Human-readable error description
        timeout: True when the call exceeded its timeout
        response: Provider response for non-2xx statuses, None when no
            response was received
        timeout_seconds: Timeout that was in force for the failed call
        cause: Original exception if wrapping
    """

    def __init__(
        self,
        message: str,
        timeout: bool = False,
        response: HttpResponse | None = None,
        timeout_seconds: float | None = None,
        cause: BaseException | None = None,
    ):
        self.message = message
        self.timeout = timeout
        self.response = response
        self.timeout_seconds = timeout_seconds
        self.cause = cause
        super().__init__(message)

    @property
    def status(self) -> int | None:
        return self.response.status if self.response is not None else None

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


__all__ = ["HttpRequest", "HttpResponse", "TransportFailure"]
