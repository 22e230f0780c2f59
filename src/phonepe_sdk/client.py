"""
Gateway client for authenticated PhonePe API calls.

Wires the credential broker, the HTTP transport and caller-side retries
together. Business payload builders (orders, refunds, mandates) sit on top of
GatewayClient.request() and are not part of this module.
"""

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from phonepe_sdk.auth.broker import CredentialBroker
from phonepe_sdk.config import GatewayConfig
from phonepe_sdk.constants import (
    CONTENT_TYPE_JSON,
    HEADER_ACCEPT,
    HEADER_CONTENT_TYPE,
    HEADER_MERCHANT_ID,
    HEADER_REQUEST_ID,
)
from phonepe_sdk.errors.classifier import classify
from phonepe_sdk.errors.exceptions import GatewayError
from phonepe_sdk.logging.utilities import LogContext
from phonepe_sdk.resilience.retry import RetryConfig, retry_async
from phonepe_sdk.transport.http_client import AiohttpTransport
from phonepe_sdk.transport.models import HttpRequest
from phonepe_sdk.types import HttpTransport

logger = logging.getLogger(__name__)


class GatewayClient:
    """
    Authenticated client for the PhonePe gateway.

    Every request obtains a token from the shared CredentialBroker, so
    concurrent requests share one renewal. Failures are classified and raised
    as GatewayError; an AUTH_ERROR response clears the cached token so the
    next call renews it. Retryable failures are retried according to
    ``config.retry_attempts`` and ``config.retry_delay_seconds``.

    Usage:
        config = load_config("config.yaml")
        async with GatewayClient(config) as client:
            status = await client.request("GET", "order_status", params={"id": order_id})
    """

    def __init__(
        self,
        config: GatewayConfig,
        transport: HttpTransport | None = None,
        broker: CredentialBroker | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize client.

        Args:
            config: Gateway configuration
            transport: HTTP transport (default: AiohttpTransport owned by the client)
            broker: Credential broker (default: built from config over the transport)
            clock: UTC clock passed to the default broker
        """
        self.config = config
        self._owns_transport = transport is None
        self._transport = transport or AiohttpTransport(timeout_seconds=config.timeout_seconds)
        self.broker = broker or CredentialBroker(
            identity=config.identity(),
            token_url=config.token_url,
            transport=self._transport,
            refresh_skew_seconds=config.token_refresh_buffer_seconds,
            timeout_seconds=config.timeout_seconds,
            auth_header_scheme=config.auth_header_scheme,
            clock=clock,
        )
        self.retry_config = RetryConfig(
            max_attempts=config.retry_attempts,
            base_delay=config.retry_delay_seconds,
        )

        if config.debug:
            logging.getLogger("phonepe_sdk").setLevel(logging.DEBUG)

        logger.debug(
            "Initialized GatewayClient",
            extra={"environment": config.environment, "merchant_id": config.merchant_id},
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Drop cached credentials and close the transport if the client created it."""
        self.broker.clear_cache()
        if self._owns_transport and hasattr(self._transport, "close"):
            await self._transport.close()

    def _headers(self, request_id: str) -> dict[str, str]:
        headers = dict(self.config.custom_headers)
        headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_JSON
        headers[HEADER_ACCEPT] = CONTENT_TYPE_JSON
        headers[HEADER_REQUEST_ID] = request_id
        if self.config.merchant_id:
            headers[HEADER_MERCHANT_ID] = self.config.merchant_id
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        """
        Send an authenticated request.

        Args:
            method: HTTP method
            endpoint: Endpoint name from the environment table (e.g. "refund"),
                a path, or an absolute URL
            json_body: JSON request body
            params: Query string parameters

        Returns:
            Parsed response body

        Raises:
            GatewayError: Classified failure after retries are exhausted
            AuthFailure: If the token could not be obtained
        """
        request_id = uuid.uuid4().hex
        with LogContext(
            request_id=request_id,
            merchant_id=self.config.merchant_id or None,
            operation=endpoint,
        ):
            return await retry_async(
                self._send_once,
                method,
                endpoint,
                json_body,
                params,
                request_id,
                config=self.retry_config,
                on_auth_error=self.broker.clear_cache,
            )

    async def _send_once(
        self,
        method: str,
        endpoint: str,
        json_body: dict[str, Any] | None,
        params: dict[str, str] | None,
        request_id: str,
    ) -> Any:
        url = self.config.endpoint(endpoint)
        headers = self._headers(request_id)
        # AuthFailure propagates unchanged
        headers.update(await self.broker.authorization_header())

        request = HttpRequest(
            method=method.upper(),
            url=url,
            headers=headers,
            json=json_body,
            params=params,
            timeout=self.config.timeout_seconds,
        )

        logger.debug(
            "API request starting",
            extra={"api_endpoint": endpoint, "http_method": request.method, "http_url": url},
        )

        start = time.perf_counter()
        try:
            response = await self._transport.send(request)
        except Exception as e:
            error = classify(e)
            logger.warning(
                "API request failed: %s",
                error.message,
                extra={
                    "api_endpoint": endpoint,
                    "http_method": request.method,
                    "http_url": url,
                    "http_status": error.http_status,
                    "error_kind": error.kind.value,
                    "retryable": error.retryable,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            raise GatewayError(error, cause=e) from e

        logger.debug(
            "API request succeeded",
            extra={
                "api_endpoint": endpoint,
                "http_method": request.method,
                "http_status": response.status,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return response.body


__all__ = ["GatewayClient"]
