"""End-to-end booking and loyalty walkthroughs."""

from decimal import Decimal

import pytest

from stayledger.models import (
    ConflictError,
    ErrorCode,
    InsufficientBalanceError,
    ReservationStatus,
)
from stayledger.services.availability import AvailabilityIndex
from stayledger.services.loyalty import LoyaltyLedger
from stayledger.services.reservations import ReservationService
from tests.factories import day

pytestmark = pytest.mark.integration


class TestFrontDeskWalkthrough:
    """room-101 holds two guests; January stays around the 10th."""

    def test_back_to_back_booking_and_points(
        self,
        reservations: ReservationService,
        availability: AvailabilityIndex,
        ledger: LoyaltyLedger,
    ) -> None:
        """Overlap is refused, back-to-back is accepted, overdraw is refused."""
        # A: Jan 10-12 confirmed
        a = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        assert a.status == ReservationStatus.CONFIRMED

        # B: Jan 11-13 overlaps A
        with pytest.raises(ConflictError) as exc_info:
            reservations.create_reservation("room-101", "client-ben", day(10), day(12), 2)
        assert exc_info.value.code == ErrorCode.DATES_UNAVAILABLE

        # C: Jan 12-14 starts the day A leaves
        c = reservations.create_reservation("room-101", "client-ben", day(11), day(13), 2)
        assert c.status == ReservationStatus.CONFIRMED
        assert [b.reservation_id for b in availability.get_calendar("room-101").bookings] == [
            a.reservation_id,
            c.reservation_id,
        ]

        # Loyalty: 0 -> earn 100 -> redeem 150 refused -> redeem 100
        ledger.create_account("client-anna")
        assert ledger.get_balance("client-anna") == 0

        ledger.earn("client-anna", Decimal("100"), "Stay")
        assert ledger.get_balance("client-anna") == 100

        with pytest.raises(InsufficientBalanceError):
            ledger.redeem("client-anna", 150, "Too much")
        assert ledger.get_balance("client-anna") == 100

        ledger.redeem("client-anna", 100, "Spa")
        assert ledger.get_balance("client-anna") == 0

    def test_cancel_then_rebook_same_dates(self, reservations: ReservationService) -> None:
        a = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        reservations.cancel_reservation(a.reservation_id)

        b = reservations.create_reservation("room-101", "client-ben", day(10), day(12), 2)

        assert b.status == ReservationStatus.CONFIRMED
        assert reservations.get_reservation(a.reservation_id).status == (
            ReservationStatus.CANCELLED
        )
