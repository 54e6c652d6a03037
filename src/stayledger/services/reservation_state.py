"""Reservation lifecycle as an explicit transition table.

Every status change goes through ``next_status``; operations never compare
statuses ad hoc.
"""

from stayledger.models import (
    AlreadyCancelledError,
    BusinessRuleError,
    ErrorCode,
    ReservationEvent,
    ReservationStatus,
)

INITIAL_STATUS = ReservationStatus.CONFIRMED

TRANSITIONS: dict[tuple[ReservationStatus, ReservationEvent], ReservationStatus] = {
    (ReservationStatus.PENDING, ReservationEvent.CONFIRM): ReservationStatus.CONFIRMED,
    (ReservationStatus.PENDING, ReservationEvent.CANCEL): ReservationStatus.CANCELLED,
    (ReservationStatus.CONFIRMED, ReservationEvent.MODIFY): ReservationStatus.CONFIRMED,
    (ReservationStatus.CONFIRMED, ReservationEvent.CANCEL): ReservationStatus.CANCELLED,
    (ReservationStatus.CONFIRMED, ReservationEvent.REASSIGN): ReservationStatus.REASSIGNED,
}

# Statuses in which the reservation no longer holds its resource.
INACTIVE_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.REASSIGNED})


def next_status(
    current: ReservationStatus,
    event: ReservationEvent,
    reservation_id: str | None = None,
) -> ReservationStatus:
    """Apply an event to a status.

    Args:
        current: Current reservation status
        event: Requested event
        reservation_id: Included in error details

    Returns:
        The status after the event

    Raises:
        AlreadyCancelledError: CANCEL on a cancelled or reassigned reservation
        BusinessRuleError: Any other transition missing from the table
    """
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        details = {"status": current.value, "event": event.value}
        if reservation_id:
            details["reservation_id"] = reservation_id
        if event == ReservationEvent.CANCEL and current in INACTIVE_STATUSES:
            raise AlreadyCancelledError(details=details) from None
        raise BusinessRuleError(ErrorCode.INVALID_TRANSITION, details=details) from None


def allowed_events(current: ReservationStatus) -> set[ReservationEvent]:
    """Events accepted in the given status."""
    return {event for (status, event) in TRANSITIONS if status == current}
