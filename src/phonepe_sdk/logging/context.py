"""Context variables for structured logging."""

from contextvars import ContextVar

_request_id: ContextVar[str] = ContextVar("request_id", default="")
_merchant_id: ContextVar[str] = ContextVar("merchant_id", default="")
_operation: ContextVar[str] = ContextVar("operation", default="")


def set_log_context(
    request_id: str | None = None,
    merchant_id: str | None = None,
    operation: str | None = None,
) -> None:
    if request_id is not None:
        _request_id.set(request_id)
    if merchant_id is not None:
        _merchant_id.set(merchant_id)
    if operation is not None:
        _operation.set(operation)


def get_log_context() -> dict[str, str]:
    return {
        "request_id": _request_id.get(),
        "merchant_id": _merchant_id.get(),
        "operation": _operation.get(),
    }


def clear_log_context() -> None:
    _request_id.set("")
    _merchant_id.set("")
    _operation.set("")
