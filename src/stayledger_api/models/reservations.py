"""API models for reservation and availability endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from stayledger.models import Reservation, Resource
from stayledger.utils.intervals import Instant


class ReservationCreateRequest(BaseModel):
    """Request to create a new reservation.

    The client ID is not included - it comes from the caller identity.
    Rooms take dates; installations take UTC date-times.
    """

    model_config = ConfigDict(
        # strict=False allows string-to-date coercion from JSON
        strict=False,
        json_schema_extra={
            "examples": [
                {
                    "resource_id": "ROOM-101",
                    "check_in": "2030-01-10",
                    "check_out": "2030-01-12",
                    "guests": 2,
                    "points_to_redeem": 0,
                },
                {
                    "resource_id": "SAUNA",
                    "check_in": "2030-01-10T17:00:00Z",
                    "check_out": "2030-01-10T19:00:00Z",
                    "guests": 4,
                },
            ]
        },
    )

    resource_id: str = Field(..., min_length=1, description="Resource to book")
    check_in: Instant = Field(
        ..., description="First night (YYYY-MM-DD) or start (YYYY-MM-DDTHH:MM:SSZ)"
    )
    check_out: Instant = Field(..., description="Departure day or end time, exclusive")
    guests: int = Field(..., ge=1, description="Number of guests")
    points_to_redeem: int = Field(
        default=0, ge=0, description="Loyalty points to spend on a discount"
    )


class ReservationModifyRequest(BaseModel):
    """Request to modify an existing reservation.

    Only include fields that should be changed.
    """

    model_config = ConfigDict(
        strict=False,
        json_schema_extra={"examples": [{"check_out": "2030-01-13", "guests": 1}]},
    )

    check_in: Instant | None = Field(default=None, description="New first night or start")
    check_out: Instant | None = Field(default=None, description="New departure day or end")
    guests: int | None = Field(default=None, ge=1, description="New guest count")


class ReassignRequest(BaseModel):
    """Request to move a reservation to another resource and/or dates."""

    model_config = ConfigDict(strict=False)

    new_resource_id: str = Field(..., min_length=1)
    new_check_in: Instant | None = Field(default=None, description="Defaults to current check-in")
    new_check_out: Instant | None = Field(default=None, description="Defaults to current check-out")


class QuoteRequest(BaseModel):
    """Request for a price quote."""

    model_config = ConfigDict(strict=False)

    resource_id: str = Field(..., min_length=1)
    check_in: Instant
    check_out: Instant
    guests: int = Field(..., ge=1)
    points_to_redeem: int = Field(default=0, ge=0)


class ReservationListResponse(BaseModel):
    """Reservations of the current caller."""

    reservations: list[Reservation]
    total_count: int = Field(..., ge=0)


class AvailabilityResponse(BaseModel):
    """Whether a resource is free over [check_in, check_out)."""

    resource_id: str
    check_in: Instant
    check_out: Instant
    available: bool


class AvailableResourcesResponse(BaseModel):
    """Resources free over [check_in, check_out) for the given party size."""

    check_in: Instant
    check_out: Instant
    guests: int
    resources: list[Resource]
    total_count: int = Field(..., ge=0)
