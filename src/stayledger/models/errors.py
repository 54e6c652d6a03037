"""Error taxonomy for booking and ledger operations.

Every failure raised by the core is a ``BookingError`` subclass carrying a
stable ``ErrorKind`` (what class of failure) and a specific ``ErrorCode``
(why). The HTTP layer maps kinds to status codes.
"""

from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    """Machine-distinguishable failure kinds."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    ALREADY_CANCELLED = "already_cancelled"
    BUSINESS_RULE = "business_rule"
    OUTCOME_UNKNOWN = "outcome_unknown"


class ErrorCode(str, Enum):
    """Specific error reasons."""

    # Input validation (ERR_VAL_*)
    DATES_INVALID = "ERR_VAL_001"
    DATE_IN_PAST = "ERR_VAL_002"
    STAY_TOO_LONG = "ERR_VAL_003"
    GUESTS_INVALID = "ERR_VAL_004"
    CAPACITY_EXCEEDED = "ERR_VAL_005"
    INVALID_AMOUNT = "ERR_VAL_006"
    INVALID_POINTS = "ERR_VAL_007"
    BELOW_MIN_REDEMPTION = "ERR_VAL_008"
    ABOVE_MAX_REDEMPTION = "ERR_VAL_009"
    DISCOUNT_EXCEEDS_TOTAL = "ERR_VAL_010"
    INTERVAL_TYPE_INVALID = "ERR_VAL_011"
    CURRENCY_MISMATCH = "ERR_VAL_012"

    # Concurrency and availability (ERR_CONFLICT_*)
    DATES_UNAVAILABLE = "ERR_CONFLICT_001"
    CONCURRENT_MODIFICATION = "ERR_CONFLICT_002"

    # Lookups (ERR_NOT_FOUND_*)
    RESERVATION_NOT_FOUND = "ERR_NOT_FOUND_001"
    RESOURCE_NOT_FOUND = "ERR_NOT_FOUND_002"
    USER_NOT_FOUND = "ERR_NOT_FOUND_003"
    ACCOUNT_NOT_FOUND = "ERR_NOT_FOUND_004"

    # Ledger (ERR_LEDGER_*)
    INSUFFICIENT_POINTS = "ERR_LEDGER_001"

    # Lifecycle and business rules (ERR_RULE_*)
    ALREADY_CANCELLED = "ERR_RULE_001"
    INVALID_TRANSITION = "ERR_RULE_002"
    CHECK_IN_PASSED = "ERR_RULE_003"
    STAY_NOT_COMPLETED = "ERR_RULE_004"
    POINTS_ALREADY_AWARDED = "ERR_RULE_005"
    ACCOUNT_EXISTS = "ERR_RULE_006"

    # Storage
    OUTCOME_UNKNOWN = "ERR_STORE_001"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.DATES_INVALID: "Check-out must be after check-in",
    ErrorCode.DATE_IN_PAST: "Check-in cannot be in the past",
    ErrorCode.STAY_TOO_LONG: "Requested stay exceeds the maximum length for the resource",
    ErrorCode.GUESTS_INVALID: "Number of guests must be at least 1",
    ErrorCode.CAPACITY_EXCEEDED: "Number of guests exceeds the resource capacity",
    ErrorCode.INVALID_AMOUNT: "Amount must be positive",
    ErrorCode.INVALID_POINTS: "Points must be a positive whole number",
    ErrorCode.BELOW_MIN_REDEMPTION: "Points are below the minimum redemption",
    ErrorCode.ABOVE_MAX_REDEMPTION: "Points exceed the maximum redemption per transaction",
    ErrorCode.DISCOUNT_EXCEEDS_TOTAL: "Points discount cannot exceed the reservation total",
    ErrorCode.INTERVAL_TYPE_INVALID: "Rooms are booked by date, installations by UTC date-time",
    ErrorCode.CURRENCY_MISMATCH: "Amount is not in the loyalty ledger currency",
    ErrorCode.DATES_UNAVAILABLE: "The requested dates are not available",
    ErrorCode.CONCURRENT_MODIFICATION: "The record was modified by another request",
    ErrorCode.RESERVATION_NOT_FOUND: "Reservation not found",
    ErrorCode.RESOURCE_NOT_FOUND: "Resource not found",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.ACCOUNT_NOT_FOUND: "Loyalty account not found",
    ErrorCode.INSUFFICIENT_POINTS: "Insufficient loyalty points",
    ErrorCode.ALREADY_CANCELLED: "Reservation is already cancelled",
    ErrorCode.INVALID_TRANSITION: "Operation not allowed in the reservation's current status",
    ErrorCode.CHECK_IN_PASSED: "Cannot change a reservation whose stay has started",
    ErrorCode.STAY_NOT_COMPLETED: "Stay points are awarded only after check-out",
    ErrorCode.POINTS_ALREADY_AWARDED: "Stay points were already awarded for this reservation",
    ErrorCode.ACCOUNT_EXISTS: "Loyalty account already exists for this user",
    ErrorCode.OUTCOME_UNKNOWN: "The storage request timed out before a result was known",
}

# Recovery suggestions for callers
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.DATES_INVALID: "Provide a check-out later than the check-in",
    ErrorCode.DATE_IN_PAST: "Choose a check-in of today or later",
    ErrorCode.STAY_TOO_LONG: "Split the stay into shorter reservations",
    ErrorCode.GUESTS_INVALID: "Provide a guest count of at least 1",
    ErrorCode.CAPACITY_EXCEEDED: "Reduce guests or choose a larger resource",
    ErrorCode.INVALID_AMOUNT: "Provide a positive amount",
    ErrorCode.INVALID_POINTS: "Provide a positive number of points",
    ErrorCode.BELOW_MIN_REDEMPTION: "Redeem at least the minimum number of points",
    ErrorCode.ABOVE_MAX_REDEMPTION: "Redeem fewer points in this transaction",
    ErrorCode.DISCOUNT_EXCEEDS_TOTAL: "Redeem fewer points for this reservation",
    ErrorCode.INTERVAL_TYPE_INVALID: "Send dates for rooms and UTC date-times for installations",
    ErrorCode.CURRENCY_MISMATCH: "Convert the amount to the ledger currency",
    ErrorCode.DATES_UNAVAILABLE: "Check availability and choose other dates",
    ErrorCode.CONCURRENT_MODIFICATION: "Reload the record and retry the request",
    ErrorCode.RESERVATION_NOT_FOUND: "Verify the reservation ID",
    ErrorCode.RESOURCE_NOT_FOUND: "Verify the resource ID",
    ErrorCode.USER_NOT_FOUND: "Verify the user ID",
    ErrorCode.ACCOUNT_NOT_FOUND: "Create a loyalty account or earn points first",
    ErrorCode.INSUFFICIENT_POINTS: "Check the balance and redeem fewer points",
    ErrorCode.ALREADY_CANCELLED: "No action needed",
    ErrorCode.INVALID_TRANSITION: "Check the reservation status before retrying",
    ErrorCode.CHECK_IN_PASSED: "Contact staff for changes to stays in progress",
    ErrorCode.STAY_NOT_COMPLETED: "Retry after the check-out date",
    ErrorCode.POINTS_ALREADY_AWARDED: "No action needed",
    ErrorCode.ACCOUNT_EXISTS: "Use the existing account",
    ErrorCode.OUTCOME_UNKNOWN: "Query the current state before retrying",
}


class ErrorResponse(BaseModel):
    """Standard error body returned to callers."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    kind: ErrorKind
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        kind: ErrorKind,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            kind: Failure kind
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            kind=kind,
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class BookingError(Exception):
    """Base exception raised by booking and ledger operations.

    Subclasses pin the ``kind``; ``code`` narrows down the reason.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.BUSINESS_RULE

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = {k: str(v) for k, v in details.items()} if details else None
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.kind, self.code, self.details)


class ValidationError(BookingError):
    """Malformed or out-of-range input."""

    kind = ErrorKind.VALIDATION


class ConflictError(BookingError):
    """Overlapping confirmed booking or a lost concurrent write."""

    kind = ErrorKind.CONFLICT


class NotFoundError(BookingError):
    """Unknown reservation, account, resource or user id."""

    kind = ErrorKind.NOT_FOUND


class InsufficientBalanceError(BookingError):
    """Redemption would make the balance negative."""

    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(
        self,
        code: ErrorCode = ErrorCode.INSUFFICIENT_POINTS,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(code, details)


class AlreadyCancelledError(BookingError):
    """Cancel requested for a reservation that is no longer active."""

    kind = ErrorKind.ALREADY_CANCELLED

    def __init__(
        self,
        code: ErrorCode = ErrorCode.ALREADY_CANCELLED,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(code, details)


class BusinessRuleError(BookingError):
    """Disallowed state transition or other lifecycle rule."""

    kind = ErrorKind.BUSINESS_RULE


class OutcomeUnknownError(BookingError):
    """A write timed out; it may or may not have been applied."""

    kind = ErrorKind.OUTCOME_UNKNOWN

    def __init__(
        self,
        code: ErrorCode = ErrorCode.OUTCOME_UNKNOWN,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(code, details)
