"""Credential broker with cached, proactively renewed bearer tokens."""

import asyncio
import concurrent.futures
import dataclasses
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from phonepe_sdk.auth.models import ClientIdentity, Credential
from phonepe_sdk.constants import (
    CONTENT_TYPE_FORM,
    CONTENT_TYPE_JSON,
    DEFAULT_AUTH_HEADER_SCHEME,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS,
    HEADER_ACCEPT,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_TYPE,
)
from phonepe_sdk.errors.classifier import classify
from phonepe_sdk.errors.exceptions import AuthFailure, ClassifiedError, ConfigurationError
from phonepe_sdk.transport.models import HttpRequest, HttpResponse, TransportFailure
from phonepe_sdk.types import ErrorKind, HttpTransport

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class _Renewal:
    """One in-flight renewal. Late callers attach to ``future``."""

    future: concurrent.futures.Future
    generation: int
    started_at: datetime


class CredentialBroker:
    """
    Provides a valid bearer token to any number of concurrent callers.

    Tokens are cached and renewed when they reach ``expires_at``, which is the
    provider-declared lifetime minus ``refresh_skew_seconds``. Concurrent
    callers that find the cache stale collapse into a single renewal
    (single-flight): one caller performs the token request, the others await
    its outcome.

    Thread-safe and event-loop agnostic. Cached state is guarded by a
    threading.Lock and replaced wholesale; the in-flight renewal is a
    concurrent.futures.Future so callers on other threads or loops can await
    it too.

    The broker never retries. Any renewal failure is classified and raised as
    AuthFailure; retry policy belongs to the caller.

    Usage:
        broker = CredentialBroker(
            identity=ClientIdentity("client", "1", "secret"),
            token_url="https://api-preprod.phonepe.com/apis/hermes/v1/oauth/token",
            transport=AiohttpTransport(),
        )

        credential = await broker.get_token()
        headers = {"Authorization": f"O-Bearer {credential.token}"}
    """

    def __init__(
        self,
        identity: ClientIdentity,
        token_url: str,
        transport: HttpTransport,
        refresh_skew_seconds: float = DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        auth_header_scheme: str = DEFAULT_AUTH_HEADER_SCHEME,
        clock: Callable[[], datetime] | None = None,
        owns_transport: bool = False,
    ):
        """
        Initialize broker.

        Args:
            identity: Client identity for the credential exchange
            token_url: Token endpoint URL
            transport: HTTP transport used for the token request
            refresh_skew_seconds: Seconds subtracted from the provider lifetime
                to force early renewal (default: 60s)
            timeout_seconds: Upper bound for one renewal call (default: 30s)
            auth_header_scheme: Scheme used by authorization_header()
            clock: Returns the current UTC time (injectable for tests)
            owns_transport: Close the transport in close()

        Raises:
            ConfigurationError: If token_url is empty, or skew/timeout invalid
        """
        if not token_url:
            raise ConfigurationError("token_url is required", field_name="token_url")
        if refresh_skew_seconds < 0:
            raise ConfigurationError(
                f"refresh_skew_seconds must be >= 0, got {refresh_skew_seconds}",
                field_name="refresh_skew_seconds",
            )
        if timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout_seconds must be > 0, got {timeout_seconds}",
                field_name="timeout_seconds",
            )

        self.identity = identity
        self.token_url = token_url
        self.refresh_skew = timedelta(seconds=refresh_skew_seconds)
        self.timeout_seconds = timeout_seconds
        self.auth_header_scheme = auth_header_scheme
        self._transport = transport
        self._owns_transport = owns_transport
        self._clock = clock or _utcnow

        self._lock = threading.Lock()
        self._credential = Credential.empty()
        self._renewal: _Renewal | None = None
        self._generation = 0

        logger.debug(
            "Initialized CredentialBroker with %ss refresh skew",
            refresh_skew_seconds,
            extra={"http_url": token_url},
        )

    # ------------------------------------------------------------------
    # Reads (never suspend, never renew)
    # ------------------------------------------------------------------

    def has_valid_token(self) -> bool:
        """True if a cached token is valid right now."""
        with self._lock:
            return self._credential.is_valid(self._clock())

    def time_until_expiry(self) -> timedelta:
        """Remaining validity of the cached token; zero if none is valid."""
        with self._lock:
            return self._credential.remaining(self._clock())

    def cached_token_info(self) -> dict[str, Any] | None:
        """
        Information about the cached token for diagnostics.

        Returns:
            Dict with expiry details (never the token), or None if empty
        """
        with self._lock:
            credential = self._credential
            renewing = self._renewal is not None
        if credential.is_empty:
            return None

        now = self._clock()
        return {
            "expires_at": credential.expires_at.isoformat(),
            "issued_at": credential.issued_at.isoformat() if credential.issued_at else None,
            "remaining_seconds": credential.remaining(now).total_seconds(),
            "is_valid": credential.is_valid(now),
            "refresh_skew_seconds": credential.refresh_skew.total_seconds(),
            "renewal_in_progress": renewing,
        }

    # ------------------------------------------------------------------
    # Cache control
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        """
        Reset to the empty state. The next get_token() always renews.

        A renewal already in flight still resolves for its own waiters, but
        its result is not cached and later callers start a fresh renewal.
        """
        with self._lock:
            self._credential = Credential.empty()
            self._renewal = None
            self._generation += 1
        logger.debug("Cleared cached credential")

    async def get_token(self) -> Credential:
        """
        Return a valid credential, renewing it if needed.

        Returns:
            Cached credential if still valid, otherwise the outcome of the
            (shared) renewal

        Raises:
            AuthFailure: If the renewal fails or the response has no token
        """
        with self._lock:
            credential = self._credential
            if credential.is_valid(self._clock()):
                return credential

        return await self._renew(force=False)

    async def force_refresh(self) -> Credential:
        """
        Discard the cached credential and renew.

        Concurrent callers still collapse into one renewal. If a renewal is
        already in flight it is joined, since its result is newer than the
        discarded credential.

        Raises:
            AuthFailure: If the renewal fails
        """
        with self._lock:
            self._credential = Credential.empty()
        logger.debug("Forcing credential refresh")
        return await self._renew(force=True)

    async def authorization_header(self) -> dict[str, str]:
        """Authorization header for outbound business calls."""
        credential = await self.get_token()
        return {HEADER_AUTHORIZATION: f"{self.auth_header_scheme} {credential.token}"}

    async def close(self) -> None:
        """Drop the cached credential and close the transport if owned."""
        self.clear_cache()
        if self._owns_transport and hasattr(self._transport, "close"):
            await self._transport.close()

    # ------------------------------------------------------------------
    # Renewal
    # ------------------------------------------------------------------

    async def _renew(self, force: bool) -> Credential:
        with self._lock:
            # Double-check after acquiring lock (another caller may have renewed)
            if not force and self._credential.is_valid(self._clock()):
                return self._credential

            renewal = self._renewal
            leader = renewal is None
            if leader:
                future: concurrent.futures.Future = concurrent.futures.Future()
                # Running futures cannot be cancelled by a waiter
                future.set_running_or_notify_cancel()
                renewal = _Renewal(
                    future=future,
                    generation=self._generation,
                    started_at=self._clock(),
                )
                self._renewal = renewal

        if not leader:
            logger.debug("Joining in-flight credential renewal")
            return await asyncio.shield(asyncio.wrap_future(renewal.future))

        try:
            credential = await self._fetch_credential()
        except AuthFailure as e:
            self._settle(renewal, error=e)
            raise
        except asyncio.CancelledError:
            self._settle(
                renewal,
                error=AuthFailure(
                    ClassifiedError(
                        kind=ErrorKind.UNKNOWN,
                        message="Token renewal was cancelled",
                        retryable=False,
                    )
                ),
            )
            raise
        except Exception as e:
            failure = AuthFailure(self._renewal_error(classify(e)), cause=e)
            self._settle(renewal, error=failure)
            raise failure from e

        self._settle(renewal, credential=credential)
        return credential

    def _settle(
        self,
        renewal: _Renewal,
        credential: Credential | None = None,
        error: AuthFailure | None = None,
    ) -> None:
        """Publish a renewal outcome and clear the in-flight marker."""
        with self._lock:
            if self._renewal is renewal:
                self._renewal = None
            if credential is not None and renewal.generation == self._generation:
                self._credential = credential

        if error is not None:
            renewal.future.set_exception(error)
        else:
            renewal.future.set_result(credential)

    def _renewal_error(self, error: ClassifiedError) -> ClassifiedError:
        return dataclasses.replace(error, message=f"Token renewal failed: {error.message}")

    async def _fetch_credential(self) -> Credential:
        """Perform one token request and build the new credential."""
        request = HttpRequest(
            method="POST",
            url=self.token_url,
            headers={
                HEADER_CONTENT_TYPE: CONTENT_TYPE_FORM,
                HEADER_ACCEPT: CONTENT_TYPE_JSON,
            },
            data=self.identity.form_data(),
            timeout=self.timeout_seconds,
        )

        logger.debug("Requesting new access token", extra={"http_url": self.token_url})

        try:
            response = await asyncio.wait_for(
                self._transport.send(request), timeout=self.timeout_seconds
            )
        except TimeoutError as e:
            failure = TransportFailure(
                f"Token request timed out after {self.timeout_seconds}s",
                timeout=True,
                timeout_seconds=self.timeout_seconds,
                cause=e,
            )
            raise self._failure_from(failure) from e
        except TransportFailure as e:
            raise self._failure_from(e) from e

        return self._credential_from_response(response)

    def _failure_from(self, failure: TransportFailure) -> AuthFailure:
        error = self._renewal_error(classify(failure))
        logger.error(
            "Token renewal failed: %s",
            error.message,
            extra={
                "http_url": self.token_url,
                "http_status": error.http_status,
                "error_kind": error.kind.value,
                "retryable": error.retryable,
            },
        )
        return AuthFailure(error, cause=failure)

    def _credential_from_response(self, response: HttpResponse) -> Credential:
        body = response.body if isinstance(response.body, dict) else {}

        token = body.get("access_token")
        if not isinstance(token, str) or not token:
            logger.error(
                "Token response did not contain an access token",
                extra={"http_url": self.token_url, "http_status": response.status},
            )
            raise AuthFailure(
                ClassifiedError(
                    kind=ErrorKind.AUTH,
                    message="missing token",
                    retryable=False,
                    http_status=response.status,
                    details={"fields": sorted(body)},
                )
            )

        lifetime = self._lifetime_from(body, response.status)
        now = self._clock()

        if self.refresh_skew >= lifetime:
            # Token is stale on arrival: hand it to this renewal's callers
            # and renew again on the next get_token()
            logger.warning(
                "Refresh skew (%ss) is not smaller than token lifetime (%ss); "
                "token will be renewed on every request",
                self.refresh_skew.total_seconds(),
                lifetime.total_seconds(),
            )
            expires_at = now
        else:
            expires_at = now + lifetime - self.refresh_skew

        logger.info(
            "Access token renewed, valid until %s",
            expires_at.isoformat(),
            extra={"http_url": self.token_url},
        )

        return Credential(
            token=token,
            expires_at=expires_at,
            refresh_skew=self.refresh_skew,
            issued_at=now,
        )

    @staticmethod
    def _lifetime_from(body: dict[str, Any], status: int) -> timedelta:
        raw = body.get("expires_in")
        if raw is None:
            return timedelta(seconds=DEFAULT_TOKEN_LIFETIME_SECONDS)

        seconds: int | None = None
        if not isinstance(raw, bool):
            try:
                seconds = int(raw)
            except (TypeError, ValueError):
                seconds = None

        if seconds is None or seconds < 0:
            raise AuthFailure(
                ClassifiedError(
                    kind=ErrorKind.AUTH,
                    message=f"invalid expires_in in token response: {raw!r}",
                    retryable=False,
                    http_status=status,
                )
            )
        return timedelta(seconds=seconds)


__all__ = ["CredentialBroker"]
