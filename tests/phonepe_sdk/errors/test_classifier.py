"""Tests for failure classification."""

import asyncio
from datetime import UTC, datetime

import aiohttp
import pytest

from phonepe_sdk.errors.classifier import FailureClassifier, classify, parse_retry_after
from phonepe_sdk.errors.exceptions import AuthFailure, ClassifiedError, GatewayError
from phonepe_sdk.transport.models import HttpResponse, TransportFailure
from phonepe_sdk.types import ErrorKind


def _failure(status, body=None, headers=None, timeout=False):
    return TransportFailure(
        f"HTTP {status}",
        timeout=timeout,
        response=HttpResponse(status=status, headers=headers or {}, body=body),
    )


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------


class TestClassifyStatus:
    def test_rate_limit_with_retry_after(self):
        error = classify(_failure(429, headers={"Retry-After": "5"}))

        assert error.kind == ErrorKind.RATE_LIMIT
        assert error.retryable is True
        assert error.retry_after == 5.0
        assert error.http_status == 429

    def test_rate_limit_without_retry_after_is_unset(self):
        error = classify(_failure(429))

        assert error.kind == ErrorKind.RATE_LIMIT
        assert error.retry_after is None

    def test_retry_after_header_is_case_insensitive(self):
        error = classify(_failure(429, headers={"retry-after": "2"}))

        assert error.retry_after == 2.0

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, status):
        error = classify(_failure(status))

        assert error.kind == ErrorKind.AUTH
        assert error.retryable is False

    def test_status_wins_over_timeout_flag(self):
        error = classify(_failure(401, timeout=True))

        assert error.kind == ErrorKind.AUTH

    def test_validation_carries_field_detail(self):
        body = {
            "code": "BAD_REQUEST",
            "message": "amount must be positive",
            "field": "amount",
            "constraints": {"min": "1"},
        }

        error = classify(_failure(400, body=body))

        assert error.kind == ErrorKind.VALIDATION
        assert error.retryable is False
        assert error.message == "amount must be positive"
        assert error.field_name == "amount"
        assert error.constraints == {"min": "1"}
        assert error.provider_code == "BAD_REQUEST"

    @pytest.mark.parametrize("status", [500, 502, 503, 599])
    def test_server_errors_are_retryable_api_errors(self, status):
        error = classify(_failure(status))

        assert error.kind == ErrorKind.API
        assert error.retryable is True
        assert error.http_status == status

    def test_other_status_with_body_takes_provider_code(self):
        body = {"code": "PAYMENT_DECLINED", "message": "Card declined"}

        error = classify(_failure(402, body=body))

        assert error.kind == ErrorKind.API
        assert error.retryable is False
        assert error.provider_code == "PAYMENT_DECLINED"
        assert error.message == "Card declined"
        assert error.details == body

    def test_other_status_without_body_is_unknown(self):
        error = classify(_failure(418))

        assert error.kind == ErrorKind.UNKNOWN
        assert error.http_status == 418

    def test_other_status_without_body_but_timeout_is_timeout(self):
        error = classify(_failure(418, timeout=True))

        assert error.kind == ErrorKind.TIMEOUT

    def test_bare_response_is_classified(self):
        error = classify(HttpResponse(status=503))

        assert error.kind == ErrorKind.API

    def test_aiohttp_response_error(self):
        raw = aiohttp.ClientResponseError(
            request_info=None, history=(), status=429, message="slow down"
        )

        error = classify(raw)

        assert error.kind == ErrorKind.RATE_LIMIT


# ---------------------------------------------------------------------------
# No-response failures
# ---------------------------------------------------------------------------


class TestClassifyNoResponse:
    def test_timeout_failure(self):
        error = classify(TransportFailure("timed out", timeout=True, timeout_seconds=30))

        assert error.kind == ErrorKind.TIMEOUT
        assert error.retryable is True
        assert error.timeout_seconds == 30

    def test_connection_failure_is_network(self):
        error = classify(TransportFailure("connection refused"))

        assert error.kind == ErrorKind.NETWORK
        assert error.retryable is True
        assert error.http_status is None

    def test_builtin_timeout_error(self):
        assert classify(asyncio.TimeoutError()).kind == ErrorKind.TIMEOUT

    def test_connection_error(self):
        assert classify(ConnectionResetError("reset")).kind == ErrorKind.NETWORK

    def test_aiohttp_connection_error(self):
        assert classify(aiohttp.ClientConnectionError("down")).kind == ErrorKind.NETWORK


# ---------------------------------------------------------------------------
# Totality and idempotence
# ---------------------------------------------------------------------------


class TestClassifyTotal:
    def test_already_classified_is_returned_unchanged(self):
        error = classify(_failure(503))

        assert classify(error) is error

    def test_gateway_error_yields_its_error(self):
        error = classify(_failure(401))

        assert classify(AuthFailure(error)) is error
        assert classify(GatewayError(error)) is error

    def test_unknown_exception(self):
        error = classify(ValueError("strange"))

        assert error.kind == ErrorKind.UNKNOWN
        assert error.retryable is False
        assert error.message == "strange"

    @pytest.mark.parametrize("raw", [None, 42, "text", object()])
    def test_never_raises(self, raw):
        error = classify(raw)

        assert isinstance(error, ClassifiedError)
        assert error.kind == ErrorKind.UNKNOWN

    def test_malformed_headers_do_not_raise(self):
        response = HttpResponse(status=429, headers=None)

        error = classify(response)

        assert isinstance(error, ClassifiedError)

    def test_classifier_object(self):
        classifier = FailureClassifier()

        assert classifier.is_retryable(TransportFailure("down")) is True
        assert classifier.is_retryable(_failure(400)) is False


# ---------------------------------------------------------------------------
# Retry-After parsing
# ---------------------------------------------------------------------------


class TestParseRetryAfter:
    @pytest.mark.parametrize(
        "value, expected",
        [("5", 5.0), ("0", 0.0), (" 2.5 ", 2.5), (7, 7.0)],
    )
    def test_delta_seconds(self, value, expected):
        assert parse_retry_after(value) == expected

    @pytest.mark.parametrize("value", [None, "", "soon", "-3", "nan", "inf"])
    def test_unusable_values_are_unset(self, value):
        assert parse_retry_after(value) is None

    def test_http_date(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)

        assert parse_retry_after("Thu, 01 Jan 2026 12:00:30 GMT", now=now) == 30.0

    def test_http_date_in_past_is_zero(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)

        assert parse_retry_after("Thu, 01 Jan 2026 11:00:00 GMT", now=now) == 0.0
