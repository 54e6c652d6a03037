"""Availability endpoints.

Rooms are queried with dates (YYYY-MM-DD), installations with UTC
date-times (YYYY-MM-DDTHH:MM:SSZ). check_out is exclusive.
"""

from fastapi import APIRouter, Depends, Query

from stayledger.services.availability import AvailabilityIndex
from stayledger.services.reservations import ReservationService
from stayledger.utils.intervals import Instant
from stayledger_api.dependencies import get_availability_index, get_reservation_service
from stayledger_api.models.reservations import AvailabilityResponse, AvailableResourcesResponse

router = APIRouter(tags=["availability"])


@router.get(
    "/availability",
    summary="Check resource availability",
    description="""
Check whether a resource has no CONFIRMED reservation overlapping
[check_in, check_out).

The answer is advisory: booking re-checks atomically when it commits.
""",
    response_model=AvailabilityResponse,
    responses={400: {"description": "check_out is not after check_in"}},
)
def check_availability(
    resource_id: str = Query(..., min_length=1),
    check_in: Instant = Query(..., description="First night or start time"),
    check_out: Instant = Query(..., description="Departure day or end time (exclusive)"),
    exclude_reservation_id: str | None = Query(
        default=None, description="Ignore this reservation (when modifying it)"
    ),
    availability: AvailabilityIndex = Depends(get_availability_index),
) -> AvailabilityResponse:
    return AvailabilityResponse(
        resource_id=resource_id,
        check_in=check_in,
        check_out=check_out,
        available=availability.is_available(
            resource_id, check_in, check_out, exclude_reservation_id
        ),
    )


@router.get(
    "/availability/resources",
    summary="Find available resources",
    description="""
List the resources that can take a stay: free over [check_in, check_out)
and seating at least `guests`.

Dates search the rooms; UTC date-times search the installations. The
same limits as booking apply (no past check-in, maximum length).
""",
    response_model=AvailableResourcesResponse,
    responses={400: {"description": "Invalid interval, stay length or guest count"}},
)
def find_available_resources(
    check_in: Instant = Query(..., description="First night or start time"),
    check_out: Instant = Query(..., description="Departure day or end time (exclusive)"),
    guests: int = Query(default=1, ge=1, description="Party size"),
    service: ReservationService = Depends(get_reservation_service),
) -> AvailableResourcesResponse:
    resources = service.find_available_resources(check_in, check_out, guests)
    return AvailableResourcesResponse(
        check_in=check_in,
        check_out=check_out,
        guests=guests,
        resources=resources,
        total_count=len(resources),
    )
