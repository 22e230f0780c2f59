"""Credential and client identity models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from phonepe_sdk.constants import GRANT_TYPE_CLIENT_CREDENTIALS


@dataclass(frozen=True)
class Credential:
    """
    Cached bearer token with expiration tracking.

    Replaced wholesale on every renewal, never edited in place.

    Attributes:
        token: The access token string (None when nothing is cached)
        expires_at: UTC instant after which the token is stale. Already
            reduced by refresh_skew, so renewal happens before the
            provider-declared expiry.
        refresh_skew: Safety buffer subtracted from the provider lifetime
        issued_at: UTC instant the renewal completed
    """

    token: str | None = None
    expires_at: datetime | None = None
    refresh_skew: timedelta = field(default_factory=timedelta)
    issued_at: datetime | None = None

    def __post_init__(self):
        if self.token is not None and self.expires_at is None:
            raise ValueError("Credential with a token must have expires_at")

    @classmethod
    def empty(cls) -> "Credential":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.token is None

    def is_valid(self, now: datetime) -> bool:
        """True while a token is present and now < expires_at."""
        return self.token is not None and self.expires_at is not None and now < self.expires_at

    def remaining(self, now: datetime) -> timedelta:
        """Remaining validity window; zero when no valid token is held."""
        if not self.is_valid(now):
            return timedelta(0)
        return self.expires_at - now

    def __repr__(self) -> str:
        # Never leak the token itself
        shown = "None" if self.token is None else "'***'"
        return (
            f"Credential(token={shown}, expires_at={self.expires_at!r}, "
            f"refresh_skew={self.refresh_skew!r})"
        )


@dataclass(frozen=True)
class ClientIdentity:
    """
    Client identity used for the client-credentials exchange.

    Attributes:
        client_id: Client ID provided by PhonePe
        client_version: Client version provided alongside the ID
        client_secret: Client secret (never logged)
    """

    client_id: str
    client_version: str
    client_secret: str = field(repr=False)

    def form_data(self) -> dict[str, str]:
        """Form-encoded body for the token endpoint."""
        return {
            "client_id": self.client_id,
            "client_version": str(self.client_version),
            "client_secret": self.client_secret,
            "grant_type": GRANT_TYPE_CLIENT_CREDENTIALS,
        }


__all__ = ["Credential", "ClientIdentity"]
