"""Tests for Credential and ClientIdentity."""

from datetime import UTC, datetime, timedelta

import pytest

from phonepe_sdk.auth.models import ClientIdentity, Credential

NOW = datetime(2026, 1, 1, tzinfo=UTC)


class TestCredential:
    def test_empty(self):
        credential = Credential.empty()

        assert credential.is_empty
        assert credential.is_valid(NOW) is False
        assert credential.remaining(NOW) == timedelta(0)

    def test_valid_before_expires_at(self):
        credential = Credential(token="abc", expires_at=NOW + timedelta(seconds=10))

        assert credential.is_valid(NOW) is True
        assert credential.remaining(NOW) == timedelta(seconds=10)

    def test_invalid_at_and_after_expires_at(self):
        credential = Credential(token="abc", expires_at=NOW)

        assert credential.is_valid(NOW) is False
        assert credential.is_valid(NOW + timedelta(seconds=1)) is False
        assert credential.remaining(NOW + timedelta(seconds=1)) == timedelta(0)

    def test_token_requires_expiry(self):
        with pytest.raises(ValueError, match="expires_at"):
            Credential(token="abc")

    def test_is_immutable(self):
        credential = Credential(token="abc", expires_at=NOW)

        with pytest.raises(AttributeError):
            credential.token = "other"

    def test_repr_hides_token(self):
        credential = Credential(token="super-secret-token", expires_at=NOW)

        assert "super-secret-token" not in repr(credential)
        assert "***" in repr(credential)


class TestClientIdentity:
    def test_form_data(self):
        identity = ClientIdentity(client_id="cid", client_version=2, client_secret="cs")

        assert identity.form_data() == {
            "client_id": "cid",
            "client_version": "2",
            "client_secret": "cs",
            "grant_type": "client_credentials",
        }

    def test_repr_hides_secret(self):
        identity = ClientIdentity(client_id="cid", client_version="1", client_secret="cs-value")

        assert "cs-value" not in repr(identity)
