"""
HTTP transport layer.

The SDK consumes an abstract HttpTransport (see phonepe_sdk.types). This
package provides the request/response/failure values and an aiohttp-based
default implementation.
"""

from phonepe_sdk.transport.http_client import AiohttpTransport, create_session
from phonepe_sdk.transport.models import HttpRequest, HttpResponse, TransportFailure

__all__ = [
    "AiohttpTransport",
    "create_session",
    "HttpRequest",
    "HttpResponse",
    "TransportFailure",
]
