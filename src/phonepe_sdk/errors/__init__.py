"""
Error classification and the classified error value.

Provides:
- ClassifiedError: one normalized value per failure (kind, retryable, context)
- GatewayError / AuthFailure / ConfigurationError: exceptions carrying it
- classify(): total, side-effect free mapping from raw failures
"""

from phonepe_sdk.errors.classifier import (
    RETRY_AFTER_HEADER,
    FailureClassifier,
    classify,
    parse_retry_after,
)
from phonepe_sdk.errors.exceptions import (
    DEFAULT_USER_MESSAGE,
    USER_MESSAGES,
    AuthFailure,
    ClassifiedError,
    ConfigurationError,
    GatewayError,
)
from phonepe_sdk.types import ErrorKind

__all__ = [
    # Enums
    "ErrorKind",
    # Values
    "ClassifiedError",
    "USER_MESSAGES",
    "DEFAULT_USER_MESSAGE",
    # Exceptions
    "GatewayError",
    "AuthFailure",
    "ConfigurationError",
    # Classification
    "FailureClassifier",
    "classify",
    "parse_retry_after",
    "RETRY_AFTER_HEADER",
]
