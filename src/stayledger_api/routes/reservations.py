"""Reservation endpoints.

Provides REST endpoints for:
- Quoting and creating reservations (optionally paid in part with points)
- Listing and retrieving the caller's reservations
- Modifying and cancelling reservations (owner or staff)
- Reassigning reservations and awarding stay points (staff only)

API Gateway authenticates the caller and passes the user id in the
x-user-id header.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.status import HTTP_201_CREATED, HTTP_403_FORBIDDEN

from stayledger.models import (
    BookingQuote,
    BookingResult,
    CancellationResult,
    LoyaltyTransaction,
    Reservation,
    User,
)
from stayledger.services.booking import BookingOrchestrator
from stayledger.services.reservations import ReservationService
from stayledger_api.dependencies import (
    get_booking_orchestrator,
    get_caller,
    get_reservation_service,
    require_staff,
)
from stayledger_api.models.reservations import (
    QuoteRequest,
    ReassignRequest,
    ReservationCreateRequest,
    ReservationListResponse,
    ReservationModifyRequest,
)

router = APIRouter(tags=["reservations"])


def _ensure_access(reservation: Reservation, caller: User) -> None:
    """Only the holder or staff may see or change a reservation."""
    if reservation.client_id != caller.user_id and not caller.is_staff:
        raise HTTPException(
            status_code=HTTP_403_FORBIDDEN,
            detail="You can only access your own reservations",
        )


@router.post(
    "/reservations/quote",
    summary="Quote a reservation",
    response_model=BookingQuote,
)
def quote_reservation(
    body: QuoteRequest,
    caller: User = Depends(get_caller),
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingQuote:
    """Price a stay without reserving it. The quote may be stale at booking time."""
    return orchestrator.quote(
        body.resource_id,
        caller.user_id,
        body.check_in,
        body.check_out,
        body.guests,
        body.points_to_redeem,
    )


@router.post(
    "/reservations",
    summary="Create reservation",
    description="""
Create a CONFIRMED reservation for the caller.

**Notes:**
- check_out is exclusive; back-to-back stays do not overlap
- Rooms take dates (YYYY-MM-DD), at most `BOOKING_MAX_STAY_NIGHTS` nights; check-in
  may be today but not earlier
- Installations take UTC date-times (YYYY-MM-DDTHH:MM:SSZ), at most `BOOKING_MAX_HOURS`
  hours, priced per started hour; the start may not be in the past
- Guests must not exceed the resource capacity
- points_to_redeem > 0 spends loyalty points on a discount in the same transaction
""",
    response_model=BookingResult,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid dates, guests or redemption"},
        402: {"description": "Not enough loyalty points"},
        404: {"description": "Unknown resource or loyalty account"},
        409: {"description": "Dates unavailable or concurrent booking won"},
    },
)
def create_reservation(
    body: ReservationCreateRequest,
    caller: User = Depends(get_caller),
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingResult:
    return orchestrator.book_with_points(
        body.resource_id,
        caller.user_id,
        body.check_in,
        body.check_out,
        body.guests,
        body.points_to_redeem,
    )


@router.get(
    "/reservations",
    summary="List my reservations",
    response_model=ReservationListResponse,
)
def list_reservations(
    caller: User = Depends(get_caller),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationListResponse:
    reservations = service.list_for_client(caller.user_id)
    return ReservationListResponse(reservations=reservations, total_count=len(reservations))


@router.get(
    "/reservations/{reservation_id}",
    summary="Get reservation",
    response_model=Reservation,
)
def get_reservation(
    reservation_id: str,
    caller: User = Depends(get_caller),
    service: ReservationService = Depends(get_reservation_service),
) -> Reservation:
    reservation = service.get_reservation(reservation_id)
    _ensure_access(reservation, caller)
    return reservation


@router.patch(
    "/reservations/{reservation_id}",
    summary="Modify reservation",
    response_model=Reservation,
    responses={422: {"description": "Not CONFIRMED, or the stay has started"}},
)
def modify_reservation(
    reservation_id: str,
    body: ReservationModifyRequest,
    caller: User = Depends(get_caller),
    service: ReservationService = Depends(get_reservation_service),
) -> Reservation:
    """Change dates and/or guests. The stay is re-checked excluding itself."""
    _ensure_access(service.get_reservation(reservation_id), caller)
    return service.update_reservation(
        reservation_id,
        check_in=body.check_in,
        check_out=body.check_out,
        guests=body.guests,
    )


@router.delete(
    "/reservations/{reservation_id}",
    summary="Cancel reservation",
    response_model=CancellationResult,
    responses={
        409: {"description": "Already cancelled or concurrently modified"},
        422: {"description": "The stay has started"},
    },
)
def cancel_reservation(
    reservation_id: str,
    reason: str | None = Query(default=None, max_length=200),
    caller: User = Depends(get_caller),
    service: ReservationService = Depends(get_reservation_service),
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> CancellationResult:
    """Cancel and refund any points redeemed for the reservation."""
    _ensure_access(service.get_reservation(reservation_id), caller)
    return orchestrator.cancel_booking(reservation_id, reason)


@router.post(
    "/reservations/{reservation_id}/reassign",
    summary="Reassign reservation (staff)",
    response_model=Reservation,
    status_code=HTTP_201_CREATED,
    responses={422: {"description": "Not CONFIRMED, or the stay has started"}},
)
def reassign_reservation(
    reservation_id: str,
    body: ReassignRequest,
    staff: User = Depends(require_staff),
    service: ReservationService = Depends(get_reservation_service),
) -> Reservation:
    """Move a stay that has not started; returns the new CONFIRMED record."""
    return service.reassign_reservation(
        reservation_id,
        body.new_resource_id,
        body.new_check_in,
        body.new_check_out,
    )


@router.post(
    "/reservations/{reservation_id}/stay-points",
    summary="Award stay points (staff)",
    response_model=LoyaltyTransaction,
    status_code=HTTP_201_CREATED,
)
def award_stay_points(
    reservation_id: str,
    staff: User = Depends(require_staff),
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> LoyaltyTransaction:
    return orchestrator.award_stay_points(reservation_id)
