"""Logging utility functions."""

import logging
from typing import Any

from phonepe_sdk.logging.context import get_log_context, set_log_context

# Reserved LogRecord attribute names that cannot be used in extra dict
_RESERVED_LOG_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "asctime",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)

_MAX_ERROR_MESSAGE = 500


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (request_id, http_status, etc.)
                  Note: exc_info=True is supported and handled specially.

    Example:
        log_with_context(
            logger, logging.INFO, "Refund created",
            api_endpoint="refund",
            http_status=200,
        )
    """
    exc_info = kwargs.pop("exc_info", None)
    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}
    logger.log(level, msg, exc_info=exc_info, extra=extra)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Extracts error_kind, retryable and http_status from GatewayError
    (anything carrying a classified ``error``).

    Example:
        try:
            await client.request("POST", "refund", json_body=payload)
        except GatewayError as e:
            log_exception(logger, e, "Refund failed", api_endpoint="refund")
    """
    error = getattr(exc, "error", None)
    if error is not None and hasattr(error, "kind"):
        kwargs.setdefault("error_kind", error.kind.value)
        kwargs.setdefault("retryable", error.retryable)
        if error.http_status is not None:
            kwargs.setdefault("http_status", error.http_status)
        if error.provider_code is not None:
            kwargs.setdefault("error_code", error.provider_code)

    error_msg = str(exc)
    if len(error_msg) > _MAX_ERROR_MESSAGE:
        error_msg = error_msg[:_MAX_ERROR_MESSAGE] + "..."
    kwargs["error_message"] = error_msg
    kwargs.setdefault("error_type", type(exc).__name__)

    extra = {k: v for k, v in kwargs.items() if k not in _RESERVED_LOG_KEYS}
    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=extra)
    else:
        logger.log(level, msg, extra=extra)


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(operation="refund", request_id=request_id):
            # All logs in this block carry operation and request_id
            await client.request(...)
    """

    def __init__(
        self,
        request_id: str | None = None,
        merchant_id: str | None = None,
        operation: str | None = None,
    ):
        self.new_context = {
            "request_id": request_id,
            "merchant_id": merchant_id,
            "operation": operation,
        }
        self.old_context: dict[str, str] = {}

    def __enter__(self) -> "LogContext":
        self.old_context = get_log_context()
        set_log_context(**self.new_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_log_context(**self.old_context)
        return False
