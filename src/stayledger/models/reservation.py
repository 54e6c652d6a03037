"""Reservation and resource calendar models."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stayledger.utils.intervals import Instant, is_timed, same_kind, stay_units, to_instant

from .enums import PricingUnit, ReservationStatus


class Reservation(BaseModel):
    """A booking of one resource over the half-open interval [check_in, check_out).

    Rooms are held by date, installations by UTC date-time. Prices are
    snapshotted from the catalog at booking time. ``version`` increments on
    every write and guards concurrent updates.
    """

    reservation_id: str = Field(..., description="Unique reservation ID (RES-YYYY-XXXXXXXX)")
    resource_id: str = Field(..., description="Booked resource")
    client_id: str = Field(..., description="User who holds the reservation")
    check_in: Instant = Field(..., description="First night, or start of an hourly booking")
    check_out: Instant = Field(..., description="Departure day or end time (exclusive)")
    guests: int = Field(..., ge=1)
    status: ReservationStatus = Field(default=ReservationStatus.CONFIRMED)

    unit_price: Decimal = Field(..., ge=0)
    base_price: Decimal = Field(..., ge=0, description="unit_price x units")
    discount_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    total_price: Decimal = Field(..., ge=0, description="base_price - discount_amount")
    currency: str = Field(default="EUR", pattern=r"^[A-Z]{3}$")

    points_redeemed: int = Field(default=0, ge=0)
    points_earned: int = Field(default=0, ge=0)

    reassigned_from: str | None = None
    reassigned_to: str | None = None
    cancellation_reason: str | None = None

    version: int = Field(default=1, ge=0)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _check_dates(self) -> "Reservation":
        if not same_kind(self.check_in, self.check_out):
            raise ValueError("check_in and check_out must both be dates or both date-times")
        if self.check_in >= self.check_out:
            raise ValueError("check_out must be after check_in")
        return self

    @property
    def units(self) -> int:
        """Nights for a dated stay, started hours for a timed one."""
        return stay_units(self.check_in, self.check_out)

    @property
    def pricing_unit(self) -> PricingUnit:
        return PricingUnit.HOUR if is_timed(self.check_in) else PricingUnit.NIGHT

    @property
    def is_confirmed(self) -> bool:
        return self.status == ReservationStatus.CONFIRMED


class BookedInterval(BaseModel):
    """One CONFIRMED stay as held in a resource calendar."""

    model_config = ConfigDict(frozen=True)

    reservation_id: str
    check_in: Instant
    check_out: Instant
    status: ReservationStatus = ReservationStatus.CONFIRMED


class ResourceCalendar(BaseModel):
    """Per-resource projection of CONFIRMED stays.

    The calendar item is rewritten in the same transaction as every
    reservation write that changes the resource's confirmed set, guarded by
    ``version``. An empty calendar that was never written has version 0.
    """

    model_config = ConfigDict(frozen=True)

    resource_id: str
    version: int = 0
    bookings: tuple[BookedInterval, ...] = ()

    def with_booking(
        self, reservation_id: str, check_in: date, check_out: date
    ) -> "ResourceCalendar":
        """Return a copy holding the given stay (replacing any entry with the same id)."""
        kept = [b for b in self.bookings if b.reservation_id != reservation_id]
        kept.append(
            BookedInterval(reservation_id=reservation_id, check_in=check_in, check_out=check_out)
        )
        kept.sort(key=lambda b: (to_instant(b.check_in), b.reservation_id))
        return self.model_copy(update={"bookings": tuple(kept)})

    def without_booking(self, reservation_id: str) -> "ResourceCalendar":
        """Return a copy without the given reservation's stay."""
        kept = tuple(b for b in self.bookings if b.reservation_id != reservation_id)
        return self.model_copy(update={"bookings": kept})

    def pruned(self, today: date) -> "ResourceCalendar":
        """Drop stays that ended before today; they can no longer conflict."""
        start_of_day = to_instant(today)
        kept = tuple(b for b in self.bookings if to_instant(b.check_out) >= start_of_day)
        return self.model_copy(update={"bookings": kept})
