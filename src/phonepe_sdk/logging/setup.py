"""Logging setup and configuration."""

import logging
import sys

from phonepe_sdk.logging.formatters import ConsoleFormatter, JSONFormatter

SDK_LOGGER_NAME = "phonepe_sdk"
DEFAULT_LEVEL = logging.INFO

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "asyncio",
    "urllib3",
]


def setup_logging(
    level: int | str = DEFAULT_LEVEL,
    json_format: bool = False,
    suppress_noisy: bool = True,
    stream=None,
) -> logging.Logger:
    """
    Configure the SDK logger with a single stream handler.

    Only the ``phonepe_sdk`` logger is touched; the root logger is left to the
    host application. Calling again replaces the previous handler.

    Args:
        level: Log level for the SDK logger (default: INFO)
        json_format: Emit one JSON object per line instead of console text
        suppress_noisy: Quiet down aiohttp/asyncio loggers to WARNING
        stream: Output stream (default: sys.stdout)

    Returns:
        Configured SDK logger
    """
    logger = logging.getLogger(SDK_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    logger.addHandler(handler)

    if suppress_noisy:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(
        "Logging configured",
        extra={"operation": "setup_logging"},
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Use this instead of logging.getLogger() to ensure consistent naming.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
