"""
Token lifecycle management.

Provides the CredentialBroker, which obtains, caches and proactively renews
the gateway's short-lived bearer token and shares it safely across
concurrent callers.

Components:
    - Credential: Immutable cached token with expiry (replaced wholesale)
    - ClientIdentity: Client-credentials exchange fields
    - CredentialBroker: Single-flight renewal, cache reads, forced refresh

Review checklist:
    [x] Concurrent stale callers trigger exactly one renewal
    [x] Renewal failures surface as AuthFailure, never swallowed
    [x] No token or client secret is logged
"""

from phonepe_sdk.auth.broker import CredentialBroker
from phonepe_sdk.auth.models import ClientIdentity, Credential

__all__ = [
    "CredentialBroker",
    "Credential",
    "ClientIdentity",
]
