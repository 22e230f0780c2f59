"""Tests for CredentialBroker - caching, single-flight renewal, failures."""

import asyncio
import threading
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from phonepe_sdk.auth.broker import CredentialBroker
from phonepe_sdk.auth.models import ClientIdentity, Credential
from phonepe_sdk.errors.exceptions import AuthFailure, ConfigurationError
from phonepe_sdk.transport.models import HttpResponse, TransportFailure
from phonepe_sdk.types import ErrorKind

TOKEN_URL = "https://auth.example.com/v1/oauth/token"
T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeTokenTransport:
    """Token endpoint double that counts renewals."""

    def __init__(self, expires_in=300, delay: float = 0.0):
        self.calls = 0
        self.requests = []
        self.expires_in = expires_in
        self.delay = delay
        self.failure: Exception | None = None
        self.body: dict | None = None

    async def send(self, request):
        self.calls += 1
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failure is not None:
            raise self.failure
        if self.body is not None:
            return HttpResponse(status=200, body=self.body)
        body = {"access_token": f"token-{self.calls}"}
        if self.expires_in is not None:
            body["expires_in"] = self.expires_in
        return HttpResponse(status=200, body=body)


def _identity():
    return ClientIdentity(client_id="client", client_version="1", client_secret="s3cret")


def _make_broker(transport, **kwargs):
    return CredentialBroker(
        identity=_identity(),
        token_url=TOKEN_URL,
        transport=transport,
        **kwargs,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTokenTransport()


@pytest.fixture
def broker(transport, clock):
    return _make_broker(transport, refresh_skew_seconds=60, clock=clock)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestBrokerInit:
    def test_starts_empty(self, broker):
        assert broker.has_valid_token() is False
        assert broker.time_until_expiry() == timedelta(0)
        assert broker.cached_token_info() is None

    def test_rejects_negative_skew(self, transport):
        with pytest.raises(ConfigurationError, match="refresh_skew_seconds") as exc_info:
            _make_broker(transport, refresh_skew_seconds=-1)
        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_rejects_empty_token_url(self, transport):
        with pytest.raises(ConfigurationError, match="token_url"):
            CredentialBroker(identity=_identity(), token_url="", transport=transport)

    def test_rejects_non_positive_timeout(self, transport):
        with pytest.raises(ConfigurationError, match="timeout_seconds"):
            _make_broker(transport, timeout_seconds=0)


# ---------------------------------------------------------------------------
# Caching and expiry arithmetic
# ---------------------------------------------------------------------------


class TestBrokerCaching:
    async def test_first_call_renews(self, broker, transport):
        credential = await broker.get_token()

        assert credential.token == "token-1"
        assert transport.calls == 1
        assert broker.has_valid_token() is True

    async def test_expires_at_is_lifetime_minus_skew(self, broker, clock):
        credential = await broker.get_token()

        assert credential.expires_at == T0 + timedelta(seconds=240)
        assert credential.refresh_skew == timedelta(seconds=60)
        assert credential.issued_at == T0
        assert broker.time_until_expiry() == timedelta(seconds=240)

    async def test_cached_token_reused_before_expiry(self, broker, transport, clock):
        first = await broker.get_token()
        clock.advance(239)

        second = await broker.get_token()

        assert second is first
        assert transport.calls == 1

    async def test_renews_once_past_expiry(self, broker, transport, clock):
        await broker.get_token()
        clock.advance(241)

        assert broker.has_valid_token() is False
        credential = await broker.get_token()

        assert credential.token == "token-2"
        assert transport.calls == 2

    async def test_stale_exactly_at_expires_at(self, broker, clock):
        await broker.get_token()
        clock.advance(240)

        assert broker.has_valid_token() is False

    async def test_missing_expires_in_defaults_to_one_hour(self, clock):
        transport = FakeTokenTransport(expires_in=None)
        broker = _make_broker(transport, refresh_skew_seconds=60, clock=clock)

        await broker.get_token()

        assert broker.time_until_expiry() == timedelta(seconds=3540)

    async def test_string_expires_in_is_accepted(self, clock):
        transport = FakeTokenTransport(expires_in="600")
        broker = _make_broker(transport, refresh_skew_seconds=0, clock=clock)

        await broker.get_token()

        assert broker.time_until_expiry() == timedelta(seconds=600)

    async def test_skew_not_smaller_than_lifetime_returns_stale_token(self, clock):
        transport = FakeTokenTransport(expires_in=30)
        broker = _make_broker(transport, refresh_skew_seconds=60, clock=clock)

        credential = await broker.get_token()

        assert credential.token == "token-1"
        assert credential.expires_at == T0
        assert broker.has_valid_token() is False

        again = await broker.get_token()
        assert again.token == "token-2"
        assert transport.calls == 2

    async def test_cached_token_info_never_contains_token(self, broker):
        await broker.get_token()

        info = broker.cached_token_info()

        assert info["is_valid"] is True
        assert info["remaining_seconds"] == 240
        assert info["renewal_in_progress"] is False
        assert "token-1" not in str(info)

    async def test_authorization_header_uses_scheme(self, broker):
        header = await broker.authorization_header()

        assert header == {"Authorization": "O-Bearer token-1"}

    async def test_token_request_is_form_encoded(self, broker, transport):
        await broker.get_token()

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url == TOKEN_URL
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.data == {
            "client_id": "client",
            "client_version": "1",
            "client_secret": "s3cret",
            "grant_type": "client_credentials",
        }


# ---------------------------------------------------------------------------
# Single-flight renewal
# ---------------------------------------------------------------------------


class TestBrokerSingleFlight:
    async def test_concurrent_callers_share_one_renewal(self):
        transport = FakeTokenTransport(delay=0.05)
        broker = _make_broker(transport)

        results = await asyncio.gather(*(broker.get_token() for _ in range(20)))

        assert transport.calls == 1
        assert all(result is results[0] for result in results)

    async def test_no_valid_token_while_forced_renewal_in_flight(self):
        transport = FakeTokenTransport(delay=0.05)
        broker = _make_broker(transport)
        await broker.get_token()

        task = asyncio.create_task(broker.force_refresh())
        await asyncio.sleep(0.01)

        assert broker.has_valid_token() is False
        credential = await task
        assert credential.token == "token-2"
        assert broker.has_valid_token() is True

    def test_callers_on_different_threads_share_one_renewal(self):
        transport = FakeTokenTransport(delay=0.1)
        broker = _make_broker(transport)
        barrier = threading.Barrier(5)
        results: list[Credential] = []
        errors: list[BaseException] = []

        def worker():
            barrier.wait()
            try:
                results.append(asyncio.run(broker.get_token()))
            except BaseException as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert errors == []
        assert transport.calls == 1
        assert {credential.token for credential in results} == {"token-1"}

    async def test_failure_reaches_every_waiter(self):
        transport = FakeTokenTransport(delay=0.05)
        transport.failure = TransportFailure("connection refused")
        broker = _make_broker(transport)

        results = await asyncio.gather(
            *(broker.get_token() for _ in range(5)), return_exceptions=True
        )

        assert transport.calls == 1
        assert all(isinstance(result, AuthFailure) for result in results)


# ---------------------------------------------------------------------------
# Forced refresh and cache clearing
# ---------------------------------------------------------------------------


class TestBrokerCacheControl:
    async def test_force_refresh_replaces_valid_token(self, broker, transport):
        await broker.get_token()

        credential = await broker.force_refresh()

        assert credential.token == "token-2"
        assert transport.calls == 2
        assert (await broker.get_token()) is credential

    async def test_concurrent_force_refresh_collapses(self):
        transport = FakeTokenTransport(delay=0.05)
        broker = _make_broker(transport)

        results = await asyncio.gather(*(broker.force_refresh() for _ in range(5)))

        assert transport.calls == 1
        assert {credential.token for credential in results} == {"token-1"}

    async def test_clear_cache_forces_next_renewal(self, broker, transport):
        await broker.get_token()

        broker.clear_cache()

        assert broker.has_valid_token() is False
        assert broker.cached_token_info() is None
        await broker.get_token()
        assert transport.calls == 2

    async def test_clear_cache_during_renewal_discards_result(self):
        transport = FakeTokenTransport(delay=0.05)
        broker = _make_broker(transport)

        task = asyncio.create_task(broker.get_token())
        await asyncio.sleep(0.01)
        broker.clear_cache()
        credential = await task

        assert credential.token == "token-1"
        assert broker.has_valid_token() is False

        again = await broker.get_token()
        assert again.token == "token-2"

    async def test_close_closes_owned_transport(self):
        transport = FakeTokenTransport()
        transport.close = AsyncMock()
        broker = _make_broker(transport, owns_transport=True)
        await broker.get_token()

        await broker.close()

        transport.close.assert_awaited_once()
        assert broker.has_valid_token() is False

    async def test_close_leaves_shared_transport_open(self):
        transport = FakeTokenTransport()
        transport.close = AsyncMock()
        broker = _make_broker(transport)

        await broker.close()

        transport.close.assert_not_awaited()


# ---------------------------------------------------------------------------
# Renewal failures
# ---------------------------------------------------------------------------


class TestBrokerFailures:
    async def test_rejected_credentials_raise_auth_failure(self, broker, transport):
        transport.failure = TransportFailure(
            "HTTP 401",
            response=HttpResponse(status=401, body={"message": "invalid client"}),
        )

        with pytest.raises(AuthFailure) as exc_info:
            await broker.get_token()

        error = exc_info.value.error
        assert error.kind == ErrorKind.AUTH
        assert error.retryable is False
        assert error.http_status == 401
        assert error.message.startswith("Token renewal failed")
        assert broker.has_valid_token() is False

    async def test_server_error_is_retryable(self, broker, transport):
        transport.failure = TransportFailure(
            "HTTP 503", response=HttpResponse(status=503, body="unavailable")
        )

        with pytest.raises(AuthFailure) as exc_info:
            await broker.get_token()

        assert exc_info.value.kind == ErrorKind.API
        assert exc_info.value.retryable is True

    async def test_connection_failure_is_network(self, broker, transport):
        transport.failure = TransportFailure("connection refused")

        with pytest.raises(AuthFailure) as exc_info:
            await broker.get_token()

        assert exc_info.value.kind == ErrorKind.NETWORK

    async def test_unexpected_exception_is_classified(self, broker, transport):
        transport.failure = RuntimeError("boom")

        with pytest.raises(AuthFailure) as exc_info:
            await broker.get_token()

        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert isinstance(exc_info.value.cause, RuntimeError)

    async def test_timeout_clears_marker_and_next_call_succeeds(self):
        transport = FakeTokenTransport(delay=0.5)
        broker = _make_broker(transport, timeout_seconds=0.05)

        with pytest.raises(AuthFailure) as exc_info:
            await broker.get_token()

        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert exc_info.value.retryable is True
        assert exc_info.value.error.timeout_seconds == 0.05

        transport.delay = 0
        credential = await broker.get_token()
        assert credential.token == "token-2"

    async def test_missing_access_token(self, broker, transport):
        transport.body = {"token_type": "O-Bearer", "expires_in": 300}

        with pytest.raises(AuthFailure, match="missing token") as exc_info:
            await broker.get_token()

        assert exc_info.value.kind == ErrorKind.AUTH
        assert broker.has_valid_token() is False

    async def test_invalid_expires_in(self, broker, transport):
        transport.body = {"access_token": "abc", "expires_in": "soon"}

        with pytest.raises(AuthFailure, match="expires_in"):
            await broker.get_token()

    async def test_negative_expires_in(self, broker, transport):
        transport.body = {"access_token": "abc", "expires_in": -5}

        with pytest.raises(AuthFailure, match="expires_in"):
            await broker.get_token()

    async def test_failed_renewal_keeps_stale_credential_unusable(self, broker, transport, clock):
        await broker.get_token()
        clock.advance(300)
        transport.failure = TransportFailure("connection refused")

        with pytest.raises(AuthFailure):
            await broker.get_token()

        assert broker.cached_token_info()["is_valid"] is False

    async def test_cancelled_leader_fails_waiters(self):
        transport = FakeTokenTransport(delay=0.5)
        broker = _make_broker(transport)

        leader = asyncio.create_task(broker.get_token())
        await asyncio.sleep(0.01)
        waiter = asyncio.create_task(broker.get_token())
        await asyncio.sleep(0.01)
        leader.cancel()

        with pytest.raises(asyncio.CancelledError):
            await leader
        with pytest.raises(AuthFailure, match="cancelled"):
            await waiter

        transport.delay = 0
        credential = await broker.get_token()
        assert credential.token == "token-2"
