"""Pydantic models for booking and loyalty data entities."""

from .booking import BookingQuote, BookingResult, CancellationResult
from .catalog import Money, Resource, User
from .enums import (
    LoyaltyTransactionType,
    ReservationEvent,
    PricingUnit,
    ReservationStatus,
    ResourceKind,
    UserRole,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    AlreadyCancelledError,
    BookingError,
    BusinessRuleError,
    ConflictError,
    ErrorCode,
    ErrorKind,
    ErrorResponse,
    InsufficientBalanceError,
    NotFoundError,
    OutcomeUnknownError,
    ValidationError,
)
from .loyalty import (
    LedgerAudit,
    LedgerEntry,
    LoyaltyAccount,
    LoyaltyTransaction,
    PointsCalculation,
)
from .reservation import BookedInterval, Reservation, ResourceCalendar

__all__ = [
    # Enums
    "LoyaltyTransactionType",
    "PricingUnit",
    "ReservationEvent",
    "ReservationStatus",
    "ResourceKind",
    "UserRole",
    # Catalog
    "Money",
    "Resource",
    "User",
    # Reservations
    "BookedInterval",
    "Reservation",
    "ResourceCalendar",
    # Loyalty
    "LedgerAudit",
    "LedgerEntry",
    "LoyaltyAccount",
    "LoyaltyTransaction",
    "PointsCalculation",
    # Orchestration
    "BookingQuote",
    "BookingResult",
    "CancellationResult",
    # Errors
    "AlreadyCancelledError",
    "BookingError",
    "BusinessRuleError",
    "ConflictError",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ErrorCode",
    "ErrorKind",
    "ErrorResponse",
    "InsufficientBalanceError",
    "NotFoundError",
    "OutcomeUnknownError",
    "ValidationError",
]
