"""Structured logging utilities with correlation ID support.

Provides:
- Correlation ID context management for request tracing
- Structured logging formatter for consistent log output
- Helper functions for booking and ledger operation logging

Usage:
    from stayledger.utils.logging import get_logger, set_correlation_id

    # In middleware/request handler:
    set_correlation_id(request.headers.get("X-Correlation-ID"))

    # In service code:
    logger = get_logger(__name__)
    logger.info("Reservation created", extra={"reservation_id": "RES-2030-ABCD1234"})
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

# Context variable for correlation ID - thread-safe and async-safe
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def generate_correlation_id() -> str:
    """Generate a new correlation ID.

    Returns:
        UUID-based correlation ID string
    """
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current request context.

    Args:
        correlation_id: Optional existing correlation ID. If None, generates new one.

    Returns:
        The correlation ID that was set
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter for structured log output with correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id() or "no-correlation-id"

        base = super().format(record)

        # Prefix for easy grep/filtering
        return f"[{record.correlation_id}] {base}"


def get_logger(name: str) -> logging.Logger:
    """Get a logger with correlation ID support.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())

    return logger


def configure_logging(level: str | int = "INFO") -> None:
    """Install the structured formatter on the root logger.

    Safe to call more than once; an existing structured handler is reused.

    Args:
        level: Root log level name or number
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers:
        if isinstance(handler.formatter, StructuredFormatter):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(DEFAULT_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)


def _emit(
    logger: logging.Logger,
    title: str,
    context: dict[str, Any],
    error: str | None,
) -> None:
    msg_parts = [title]
    for key, value in context.items():
        if key != "operation":
            msg_parts.append(f"{key}={value}")

    message = " | ".join(msg_parts)

    if error:
        logger.warning(message, extra=context)
    else:
        logger.info(message, extra=context)


def log_booking_operation(
    logger: logging.Logger,
    operation: str,
    *,
    reservation_id: str | None = None,
    resource_id: str | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a reservation operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "create_reservation", "reassign_reservation")
        reservation_id: Reservation ID if available
        resource_id: Resource ID if relevant
        status: Resulting reservation status
        error: Error code if the operation was rejected
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"operation": operation}

    if reservation_id:
        context["reservation_id"] = reservation_id
    if resource_id:
        context["resource_id"] = resource_id
    if status:
        context["status"] = status
    if error:
        context["error"] = error

    context.update(extra)
    _emit(logger, f"Booking operation: {operation}", context, error)


def log_ledger_operation(
    logger: logging.Logger,
    operation: str,
    *,
    user_id: str | None = None,
    transaction_id: str | None = None,
    points: int | None = None,
    balance: int | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a loyalty ledger operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "earn", "redeem")
        user_id: Account owner
        transaction_id: Appended transaction ID if any
        points: Points moved
        balance: Balance after the operation
        error: Error code if the operation was rejected
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"operation": operation}

    if user_id:
        context["user_id"] = user_id
    if transaction_id:
        context["transaction_id"] = transaction_id
    if points is not None:
        context["points"] = points
    if balance is not None:
        context["balance"] = balance
    if error:
        context["error"] = error

    context.update(extra)
    _emit(logger, f"Ledger operation: {operation}", context, error)
