"""JSON serialization helpers for log records and error payloads."""

from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any


def _serialize_known_type(obj: Any) -> tuple[bool, Any]:
    """Try to serialize by known type. Returns (handled, result)."""
    if isinstance(obj, (datetime, date)):
        return True, obj.isoformat()
    if isinstance(obj, timedelta):
        return True, obj.total_seconds()
    if isinstance(obj, Decimal):
        # Amounts keep their exact digits
        return True, str(obj)
    if isinstance(obj, Enum):
        return True, obj.value
    if isinstance(obj, Path):
        return True, str(obj)
    return False, None


def json_serializer(obj: Any) -> Any:
    """
    Fallback serializer for json.dumps(default=...).

    - datetime/date -> ISO 8601 string
    - timedelta -> seconds (float)
    - Decimal -> string
    - Enum -> value
    - Path -> string
    - to_dict() / dataclasses -> dict
    - Everything else -> string

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation
    """
    handled, result = _serialize_known_type(obj)
    if handled:
        return result
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    return str(obj)


__all__ = ["json_serializer"]
