"""
Structured logging module.

Provides JSON and console formatters with request context propagation and
secret redaction. The SDK never configures logging on import; call
setup_logging() to attach a handler.
"""

from phonepe_sdk.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from phonepe_sdk.logging.formatters import ConsoleFormatter, JSONFormatter
from phonepe_sdk.logging.setup import get_logger, setup_logging
from phonepe_sdk.logging.utilities import LogContext, log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "LogContext",
    # Utilities
    "log_with_context",
    "log_exception",
]
