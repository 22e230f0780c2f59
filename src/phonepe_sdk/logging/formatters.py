"""Log formatters for JSON and console output."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from phonepe_sdk.logging.context import get_log_context
from phonepe_sdk.utils.json_serializers import json_serializer

REDACTED = "[REDACTED]"


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Redacts secret-bearing fields and sensitive URL query parameters.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # Correlation
        "request_id",
        "merchant_id",
        "duration_ms",
        # HTTP
        "http_status",
        "http_method",
        "http_url",
        "api_endpoint",
        # Errors
        "error_kind",
        "error_message",
        "error_code",
        "error_type",
        "retryable",
        "retry_after",
        # Resilience
        "attempt",
        "max_attempts",
        "delay_seconds",
        "delay_source",
        "callback_error",
        # Token lifecycle
        "expires_at",
        "environment",
        "operation",
        # Never emitted in clear, see SENSITIVE_FIELDS
        "access_token",
        "client_secret",
        "authorization",
    ]

    NUMERIC_FIELDS = {
        "duration_ms": float,
        "delay_seconds": float,
        "retry_after": float,
        "attempt": int,
        "max_attempts": int,
        "http_status": int,
    }

    SENSITIVE_FIELDS = {"access_token", "client_secret", "authorization"}

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["http_url", "url"]

    # Pattern to match sensitive query parameters
    SENSITIVE_PARAMS_PATTERN = re.compile(
        r"([?&])(sig|token|access_token|key|secret|client_secret|password|auth)=[^&]*",
        re.IGNORECASE,
    )

    def _sanitize_url(self, url: str) -> str:
        return self.SENSITIVE_PARAMS_PATTERN.sub(rf"\1\2={REDACTED}", url)

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if key in self.SENSITIVE_FIELDS:
            return REDACTED
        if key in self.URL_FIELDS and isinstance(value, str):
            return self._sanitize_url(value)
        return value

    def _ensure_type(self, field: str, value: Any) -> Any:
        """Coerce numeric extras to their declared type; None if that fails."""
        if field not in self.NUMERIC_FIELDS or value is None:
            return value

        expected_type = self.NUMERIC_FIELDS[field]
        try:
            return expected_type(value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _base_log_entry(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    @staticmethod
    def _inject_context(log_entry: dict[str, Any], log_context: dict[str, Any]) -> None:
        for field, value in log_context.items():
            if value:
                log_entry[field] = value

    @staticmethod
    def _should_include_source_location(record: logging.LogRecord) -> bool:
        return record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL)

    def _inject_extra_fields(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                typed_value = self._ensure_type(field, value)
                log_entry[field] = self._sanitize_value(field, typed_value)

    def _inject_exception(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        if not record.exc_info:
            return

        exc_type, exc_value, _ = record.exc_info
        log_entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON line."""
        log_entry = self._base_log_entry(record)

        self._inject_context(log_entry, get_log_context())

        if self._should_include_source_location(record):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        # Type coercion first, then redaction
        self._inject_extra_fields(log_entry, record)
        self._inject_exception(log_entry, record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with color-coded log levels.

    Colors are auto-disabled when output is not a TTY (pipes, files).
    """

    # ANSI color codes
    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        if not self._use_colors:
            return level_name

        color = self.COLORS.get(record.levelno, "")
        if not color:
            return level_name

        return f"{color}{level_name}{self.RESET}"

    @staticmethod
    def _build_tags(record: logging.LogRecord, log_context: dict[str, Any]) -> list[str]:
        request_id = getattr(record, "request_id", None) or log_context.get("request_id")
        operation = getattr(record, "operation", None) or log_context.get("operation")
        error_kind = getattr(record, "error_kind", None)

        tags = []
        if operation:
            tags.append(f"[{operation}]")
        if request_id:
            tags.append(f"[{request_id[:8]}]")
        if error_kind:
            tags.append(f"[{error_kind}]")
        return tags

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output with optional color coding."""
        log_context = get_log_context()

        prefix = " - ".join(
            [
                datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                self._format_level_name(record),
                record.name,
            ]
        )
        tags = self._build_tags(record, log_context)
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if tags:
            return f"{prefix} - {' '.join(tags)} {message}"

        return f"{prefix} - {message}"
