"""Results of orchestrated booking and ledger operations."""

from decimal import Decimal

from pydantic import BaseModel, Field

from stayledger.utils.intervals import Instant

from .enums import PricingUnit
from .loyalty import LoyaltyTransaction
from .reservation import Reservation


class BookingQuote(BaseModel):
    """Price breakdown for a prospective booking. May be stale by booking time."""

    resource_id: str
    check_in: Instant
    check_out: Instant
    units: int = Field(..., description="Nights, or started hours for installations")
    pricing_unit: PricingUnit
    guests: int
    unit_price: Decimal
    base_price: Decimal
    points_to_redeem: int = 0
    discount_amount: Decimal = Decimal("0.00")
    total_price: Decimal
    currency: str
    available: bool
    balance: int | None = Field(default=None, description="Client's points balance, if any")
    max_redeemable_points: int = 0


class BookingResult(BaseModel):
    """A committed booking and the redemption that paid part of it."""

    reservation: Reservation
    redemption: LoyaltyTransaction | None = None


class CancellationResult(BaseModel):
    """A cancelled reservation and the ledger reversals committed with it."""

    reservation: Reservation
    refund: LoyaltyTransaction | None = None
    clawback: LoyaltyTransaction | None = None
