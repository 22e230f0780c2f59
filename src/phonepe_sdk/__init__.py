"""
PhonePe payment gateway SDK: token lifecycle and resilient request layer.

Provides:
- CredentialBroker: cached, proactively renewed bearer tokens with
  single-flight renewal across concurrent callers
- classify / ClassifiedError: one stable error taxonomy for every failure
- GatewayClient: authenticated requests with caller-side retries
- load_config / GatewayConfig: YAML + environment configuration
"""

from phonepe_sdk.auth import ClientIdentity, Credential, CredentialBroker
from phonepe_sdk.client import GatewayClient
from phonepe_sdk.config import GatewayConfig, load_config
from phonepe_sdk.constants import SDK_VERSION
from phonepe_sdk.errors import (
    AuthFailure,
    ClassifiedError,
    ConfigurationError,
    ErrorKind,
    FailureClassifier,
    GatewayError,
    classify,
)
from phonepe_sdk.resilience import RetryConfig, retry_async, with_retry_async
from phonepe_sdk.transport import AiohttpTransport, HttpRequest, HttpResponse, TransportFailure

__version__ = SDK_VERSION

__all__ = [
    "__version__",
    # Auth
    "CredentialBroker",
    "Credential",
    "ClientIdentity",
    # Errors
    "ErrorKind",
    "ClassifiedError",
    "GatewayError",
    "AuthFailure",
    "ConfigurationError",
    "FailureClassifier",
    "classify",
    # Client and config
    "GatewayClient",
    "GatewayConfig",
    "load_config",
    # Resilience
    "RetryConfig",
    "retry_async",
    "with_retry_async",
    # Transport
    "AiohttpTransport",
    "HttpRequest",
    "HttpResponse",
    "TransportFailure",
]
