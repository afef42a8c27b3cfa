"""Request-scoped logging for refund and cancellation flows.

Every log line carries the ID of the request that produced it, so a refund
can be followed from the API call through the engine to the gateway:

    [3f2c...] 2026-11-01 12:00:00 INFO mukhymat.services.refund_service: \
Refund operation: guest_cancel | booking_id=BK-1 | amount=90.000 | status=completed

The API middleware binds the ID from the X-Correlation-ID header; code that
runs outside a request (scripts, tests) logs under ``-``.
"""

import logging
import uuid
from contextvars import ContextVar
from decimal import Decimal
from typing import Any

UNBOUND = "-"

_request_id: ContextVar[str | None] = ContextVar("mukhymat_request_id", default=None)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, minting one if absent."""
    value = correlation_id or generate_correlation_id()
    _request_id.set(value)
    return value


def get_correlation_id() -> str | None:
    return _request_id.get()


def clear_correlation_id() -> None:
    _request_id.set(None)


def _current_id() -> str:
    return _request_id.get() or UNBOUND


class CorrelationIdFilter(logging.Filter):
    """Stamps ``record.correlation_id`` from the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _current_id()
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter that prefixes each line with ``[correlation_id]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None) or _current_id()
        return f"[{correlation_id}] {super().format(record)}"


def get_logger(name: str) -> logging.Logger:
    """Module logger with the correlation filter attached once."""
    logger = logging.getLogger(name)
    if not any(isinstance(existing, CorrelationIdFilter) for existing in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def configure_logging(level: int = logging.INFO) -> None:
    """Install the structured formatter on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    handler.addFilter(CorrelationIdFilter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


def log_refund_operation(
    logger: logging.Logger,
    operation: str,
    *,
    booking_id: str | None = None,
    user_id: str | None = None,
    amount: Decimal | None = None,
    refund_percentage: int | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one refund or cancellation step as ``key=value`` pairs.

    The same fields are attached to the record (``extra``) for log
    processors that index them. A non-empty ``error`` logs at ERROR.

    Args:
        logger: Logger instance
        operation: Step name (e.g. "guest_cancel", "host_cancel")
        booking_id: Booking the step applies to
        user_id: Guest or host acting
        amount: Refund amount in BHD
        refund_percentage: Tier percentage applied
        status: Resulting refund status
        error: Failure description
        **extra: Further fields, logged after the standard ones
    """
    fields: dict[str, Any] = {
        "booking_id": booking_id,
        "user_id": user_id,
        "amount": None if amount is None else str(amount),
        "refund_percentage": refund_percentage,
        "status": status,
        "error": error,
        **extra,
    }
    fields = {key: value for key, value in fields.items() if value not in (None, "")}

    message = " | ".join(
        [f"Refund operation: {operation}", *(f"{key}={value}" for key, value in fields.items())]
    )
    level = logging.ERROR if error else logging.INFO
    logger.log(level, message, extra={"operation": operation, **fields})
