"""
Default HTTP transport using aiohttp.

Provides a thin adapter from HttpRequest/HttpResponse values to an
aiohttp.ClientSession. It performs no retries and no classification: every
failure is raised as a TransportFailure describing what happened (timeout,
connection failure, or a non-2xx response) and is classified by the caller.
"""

import json
import logging
from typing import Any

import aiohttp

from phonepe_sdk.constants import DEFAULT_TIMEOUT_SECONDS, HEADER_USER_AGENT, USER_AGENT
from phonepe_sdk.transport.models import HttpRequest, HttpResponse, TransportFailure

logger = logging.getLogger(__name__)


def create_session(
    max_connections: int = 100,
    max_connections_per_host: int = 10,
    enable_ssl: bool = True,
    timeout_total: float = DEFAULT_TIMEOUT_SECONDS,
    timeout_connect: float = 10,
) -> aiohttp.ClientSession:
    """
    Create aiohttp ClientSession with connection pooling and timeouts.

    Args:
        max_connections: Total connection pool size (default: 100)
        max_connections_per_host: Per-host connection limit (default: 10)
        enable_ssl: Enable SSL verification (default: True)
        timeout_total: Total timeout in seconds (default: 30)
        timeout_connect: Connection timeout in seconds (default: 10)

    Returns:
        Configured aiohttp.ClientSession

    Note:
        Caller is responsible for session lifecycle management.
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        limit_per_host=max_connections_per_host,
        ssl=enable_ssl,
        ttl_dns_cache=300,
    )

    timeout = aiohttp.ClientTimeout(total=timeout_total, connect=timeout_connect)

    return aiohttp.ClientSession(
        connector=connector,
        timeout=timeout,
        headers={HEADER_USER_AGENT: USER_AGENT},
    )


async def _read_body(response: aiohttp.ClientResponse) -> Any:
    """Parse body as JSON when possible, otherwise return text (None if empty)."""
    text = await response.text()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class AiohttpTransport:
    """
    HttpTransport implementation over aiohttp.

    Owns its session unless one is passed in. Usable as an async context
    manager:

        async with AiohttpTransport() as transport:
            response = await transport.send(HttpRequest("GET", url))
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout_seconds = timeout_seconds

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP client session."""
        if self._session is None or self._session.closed:
            self._session = create_session(timeout_total=self.timeout_seconds)
            self._owns_session = True
        return self._session

    async def send(self, request: HttpRequest) -> HttpResponse:
        """
        Send a request.

        Returns:
            HttpResponse for 2xx statuses

        Raises:
            TransportFailure: timeout (timeout=True), connection failure
                (response=None) or non-2xx status (response set)
        """
        session = await self._ensure_session()
        timeout = request.timeout if request.timeout is not None else self.timeout_seconds

        logger.debug(
            "HTTP %s %s",
            request.method,
            request.url,
            extra={"http_method": request.method, "http_url": request.url},
        )

        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.data,
                json=request.json,
                params=request.params,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as raw:
                response = HttpResponse(
                    status=raw.status,
                    headers=dict(raw.headers),
                    body=await _read_body(raw),
                )
        except TimeoutError as e:
            # Includes aiohttp.ServerTimeoutError
            raise TransportFailure(
                f"Request timed out after {timeout}s: {request.method} {request.url}",
                timeout=True,
                timeout_seconds=timeout,
                cause=e,
            ) from e
        except aiohttp.ClientError as e:
            raise TransportFailure(
                f"Connection error: {e}",
                timeout_seconds=timeout,
                cause=e,
            ) from e

        logger.debug(
            "HTTP %s %s - %s",
            request.method,
            request.url,
            response.status,
            extra={
                "http_method": request.method,
                "http_url": request.url,
                "http_status": response.status,
            },
        )

        if not response.is_success:
            raise TransportFailure(
                f"HTTP {response.status}: {request.method} {request.url}",
                response=response,
                timeout_seconds=timeout,
            )

        return response

    async def close(self) -> None:
        """Close the HTTP session if this transport created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "AiohttpTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["AiohttpTransport", "create_session"]
