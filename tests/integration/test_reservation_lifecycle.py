"""Integration tests for the reservation lifecycle against moto DynamoDB.

Covers creation, the overlap guard, modification, cancellation and
reassignment, and checks that the resource calendars stay in step with
the reservation records.
"""

import datetime as dt
import re
from decimal import Decimal

import pytest

from stayledger.models import (
    AlreadyCancelledError,
    BusinessRuleError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    PricingUnit,
    ReservationStatus,
    ValidationError,
)
from stayledger.services.availability import AvailabilityIndex
from stayledger.services.reservations import ReservationService
from stayledger.utils.clock import FrozenClock
from tests.factories import TODAY, at, day

pytestmark = pytest.mark.integration


class TestCreateReservation:
    """Tests for creating reservations."""

    def test_creates_confirmed_reservation(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        """A new reservation is CONFIRMED, priced and held in the calendar."""
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        assert re.fullmatch(r"RES-2030-[0-9A-F]{8}", res.reservation_id)
        assert res.status == ReservationStatus.CONFIRMED
        assert res.units == 2
        assert res.pricing_unit == PricingUnit.NIGHT
        assert res.unit_price == Decimal("100.00")
        assert res.base_price == Decimal("200.00")
        assert res.total_price == Decimal("200.00")
        assert res.version == 1

        stored = reservations.get_reservation(res.reservation_id)
        assert stored == res

        calendar = availability.get_calendar("room-101")
        assert calendar.version == 1
        assert [b.reservation_id for b in calendar.bookings] == [res.reservation_id]

    def test_overlapping_stay_rejected(self, reservations: ReservationService) -> None:
        """A stay sharing a night with a confirmed one is unavailable."""
        first = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        with pytest.raises(ConflictError) as exc_info:
            reservations.create_reservation("room-101", "client-ben", day(10), day(12), 1)

        assert exc_info.value.code == ErrorCode.DATES_UNAVAILABLE
        assert first.reservation_id in exc_info.value.details["conflicting"]
        assert reservations.list_for_resource("room-101") == [first]

    def test_back_to_back_stays_allowed(self, reservations: ReservationService) -> None:
        """Check-out on the day of the next check-in is not a conflict."""
        reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        second = reservations.create_reservation("room-101", "client-ben", day(11), day(13), 1)
        earlier = reservations.create_reservation("room-101", "client-ben", day(7), day(9), 1)

        assert second.status == ReservationStatus.CONFIRMED
        assert earlier.status == ReservationStatus.CONFIRMED

    def test_same_dates_on_other_resource_allowed(self, reservations: ReservationService) -> None:
        reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        other = reservations.create_reservation("room-102", "client-ben", day(9), day(11), 2)

        assert other.base_price == Decimal("240.00")

    def test_check_in_today_allowed(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", TODAY, day(1), 1)
        assert res.check_in == TODAY

    @pytest.mark.parametrize(
        "check_in,check_out,guests,code",
        [
            (day(-1), day(1), 1, ErrorCode.DATE_IN_PAST),
            (day(5), day(5), 1, ErrorCode.DATES_INVALID),
            (day(6), day(5), 1, ErrorCode.DATES_INVALID),
            (day(1), day(32), 1, ErrorCode.STAY_TOO_LONG),
            (day(1), day(2), 0, ErrorCode.GUESTS_INVALID),
            (day(1), day(2), 3, ErrorCode.CAPACITY_EXCEEDED),
        ],
    )
    def test_invalid_stays_rejected(
        self,
        reservations: ReservationService,
        check_in,
        check_out,
        guests: int,
        code: ErrorCode,
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            reservations.create_reservation("room-101", "client-anna", check_in, check_out, guests)

        assert exc_info.value.code == code
        assert reservations.list_for_client("client-anna") == []

    def test_maximum_stay_allowed(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(31), 1)
        assert res.units == 30

    @pytest.mark.parametrize(
        "resource_id,client_id,code",
        [
            ("room-404", "client-anna", ErrorCode.RESOURCE_NOT_FOUND),
            ("room-999", "client-anna", ErrorCode.RESOURCE_NOT_FOUND),
            ("room-101", "client-nobody", ErrorCode.USER_NOT_FOUND),
        ],
    )
    def test_unknown_references_rejected(
        self,
        reservations: ReservationService,
        resource_id: str,
        client_id: str,
        code: ErrorCode,
    ) -> None:
        """Unknown and inactive resources, and unknown clients, are not found."""
        with pytest.raises(NotFoundError) as exc_info:
            reservations.create_reservation(resource_id, client_id, day(1), day(2), 1)
        assert exc_info.value.code == code


class TestQueries:
    """Tests for reservation lookups."""

    def test_get_unknown_reservation(self, reservations: ReservationService) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            reservations.get_reservation("RES-2030-DEADBEEF")
        assert exc_info.value.code == ErrorCode.RESERVATION_NOT_FOUND

    def test_lists_ordered_by_check_in(self, reservations: ReservationService) -> None:
        late = reservations.create_reservation("room-101", "client-anna", day(20), day(22), 1)
        early = reservations.create_reservation("room-102", "client-anna", day(5), day(6), 1)
        reservations.create_reservation("room-101", "client-ben", day(5), day(6), 1)

        mine = reservations.list_for_client("client-anna")
        assert [r.reservation_id for r in mine] == [early.reservation_id, late.reservation_id]
        assert len(reservations.list_for_resource("room-101")) == 2

    def test_is_available(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        assert not reservations.is_available("room-101", day(10), day(12))
        assert reservations.is_available("room-101", day(11), day(12))
        assert reservations.is_available("room-101", day(10), day(12), res.reservation_id)

    def test_quote_price(self, reservations: ReservationService) -> None:
        resource, unit_price, base_price = reservations.quote_price(
            "suite-201", day(9), day(12), 3
        )

        assert resource.resource_id == "suite-201"
        assert unit_price == Decimal("180.00")
        assert base_price == Decimal("540.00")
        assert reservations.list_for_resource("suite-201") == []

    def test_quote_price_checks_capacity(self, reservations: ReservationService) -> None:
        with pytest.raises(ValidationError) as exc_info:
            reservations.quote_price("room-101", day(9), day(11), 5)
        assert exc_info.value.code == ErrorCode.CAPACITY_EXCEEDED


class TestUpdateReservation:
    """Tests for modifying dates and guests."""

    def test_extend_stay_ignores_own_dates(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        """A reservation never conflicts with itself."""
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        updated = reservations.update_reservation(res.reservation_id, check_out=day(12))

        assert updated.check_out == day(12)
        assert updated.base_price == Decimal("300.00")
        assert updated.version == 2
        calendar = availability.get_calendar("room-101")
        assert [(b.check_in, b.check_out) for b in calendar.bookings] == [(day(9), day(12))]

    def test_update_guests_only(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        updated = reservations.update_reservation(res.reservation_id, guests=1)

        assert updated.guests == 1
        assert (updated.check_in, updated.check_out) == (res.check_in, res.check_out)

    def test_update_into_other_stay_rejected(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        reservations.create_reservation("room-101", "client-ben", day(11), day(13), 1)

        with pytest.raises(ConflictError) as exc_info:
            reservations.update_reservation(res.reservation_id, check_out=day(12))

        assert exc_info.value.code == ErrorCode.DATES_UNAVAILABLE
        assert reservations.get_reservation(res.reservation_id).version == 1

    def test_update_capacity_checked(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        with pytest.raises(ValidationError) as exc_info:
            reservations.update_reservation(res.reservation_id, guests=5)
        assert exc_info.value.code == ErrorCode.CAPACITY_EXCEEDED

    def test_update_cancelled_rejected(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        reservations.cancel_reservation(res.reservation_id)

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.update_reservation(res.reservation_id, guests=1)
        assert exc_info.value.code == ErrorCode.INVALID_TRANSITION

    def test_update_after_check_in_rejected(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        """A stay in progress keeps its dates and price."""
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 2)
        clock.advance(days=2)

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.update_reservation(res.reservation_id, check_out=day(4))

        assert exc_info.value.code == ErrorCode.CHECK_IN_PASSED
        assert reservations.get_reservation(res.reservation_id) == res

    def test_completed_stay_cannot_be_moved_forward(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 2)
        clock.advance(days=5)

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.update_reservation(res.reservation_id, day(10), day(12))

        assert exc_info.value.code == ErrorCode.CHECK_IN_PASSED
        assert reservations.is_available("room-101", day(10), day(12))

    def test_update_on_check_in_day_allowed(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 2)
        clock.advance(days=1)

        updated = reservations.update_reservation(res.reservation_id, guests=1)
        assert updated.guests == 1


class TestCancelReservation:
    """Tests for cancellation."""

    def test_cancel_releases_dates(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        """A cancelled reservation is kept but no longer blocks its dates."""
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        cancelled = reservations.cancel_reservation(res.reservation_id, "Plans changed")

        assert cancelled.status == ReservationStatus.CANCELLED
        assert cancelled.cancellation_reason == "Plans changed"
        assert cancelled.version == 2
        assert availability.get_calendar("room-101").bookings == ()

        again = reservations.create_reservation("room-101", "client-ben", day(9), day(11), 1)
        assert again.status == ReservationStatus.CONFIRMED

    def test_cancel_twice_reports_already_cancelled(
        self, reservations: ReservationService
    ) -> None:
        """The second cancel changes nothing."""
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        reservations.cancel_reservation(res.reservation_id)

        with pytest.raises(AlreadyCancelledError):
            reservations.cancel_reservation(res.reservation_id)

        stored = reservations.get_reservation(res.reservation_id)
        assert stored.status == ReservationStatus.CANCELLED
        assert stored.version == 2

    def test_cancel_after_check_in_rejected(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", TODAY, day(3), 1)
        clock.advance(days=1)

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.cancel_reservation(res.reservation_id)

        assert exc_info.value.code == ErrorCode.CHECK_IN_PASSED
        assert reservations.get_reservation(res.reservation_id).is_confirmed

    def test_cancel_on_check_in_day_allowed(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 1)
        clock.advance(days=1)

        assert reservations.cancel_reservation(res.reservation_id).status == (
            ReservationStatus.CANCELLED
        )

    def test_cancel_unknown(self, reservations: ReservationService) -> None:
        with pytest.raises(NotFoundError):
            reservations.cancel_reservation("RES-2030-00000000")


class TestReassignReservation:
    """Tests for moving reservations between resources and dates."""

    def test_reassign_to_other_resource(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        """Old record becomes REASSIGNED, new CONFIRMED record holds the target."""
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        moved = reservations.reassign_reservation(res.reservation_id, "room-102")

        assert moved.reservation_id != res.reservation_id
        assert moved.status == ReservationStatus.CONFIRMED
        assert moved.resource_id == "room-102"
        assert moved.client_id == "client-anna"
        assert moved.reassigned_from == res.reservation_id
        assert moved.base_price == Decimal("240.00")

        old = reservations.get_reservation(res.reservation_id)
        assert old.status == ReservationStatus.REASSIGNED
        assert old.reassigned_to == moved.reservation_id

        assert availability.get_calendar("room-101").bookings == ()
        assert [b.reservation_id for b in availability.get_calendar("room-102").bookings] == [
            moved.reservation_id
        ]

    def test_reassign_same_resource_new_dates(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)

        moved = reservations.reassign_reservation(
            res.reservation_id, "room-101", day(10), day(12)
        )

        calendar = availability.get_calendar("room-101")
        assert [(b.reservation_id, b.check_in) for b in calendar.bookings] == [
            (moved.reservation_id, day(10))
        ]

    def test_reassign_to_unavailable_target_leaves_original(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        """Nothing changes when the target interval is taken."""
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        reservations.create_reservation("room-102", "client-ben", day(10), day(11), 1)

        with pytest.raises(ConflictError) as exc_info:
            reservations.reassign_reservation(res.reservation_id, "room-102")

        assert exc_info.value.code == ErrorCode.DATES_UNAVAILABLE
        original = reservations.get_reservation(res.reservation_id)
        assert original.status == ReservationStatus.CONFIRMED
        assert original.version == 1
        assert len(availability.get_calendar("room-101").bookings) == 1
        assert len(reservations.list_for_client("client-anna")) == 1

    def test_reassign_checks_target_capacity(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("suite-201", "client-anna", day(9), day(11), 4)

        with pytest.raises(ValidationError) as exc_info:
            reservations.reassign_reservation(res.reservation_id, "room-101")
        assert exc_info.value.code == ErrorCode.CAPACITY_EXCEEDED

    def test_reassign_twice_rejected(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        reservations.reassign_reservation(res.reservation_id, "room-102")

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.reassign_reservation(res.reservation_id, "suite-201")
        assert exc_info.value.code == ErrorCode.INVALID_TRANSITION

    def test_reassign_completed_stay_rejected(
        self,
        reservations: ReservationService,
        availability: AvailabilityIndex,
        clock: FrozenClock,
    ) -> None:
        """A finished stay stays on its record; no new reservation is created."""
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 2)
        clock.advance(days=5)

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.reassign_reservation(res.reservation_id, "room-102", day(10), day(12))

        assert exc_info.value.code == ErrorCode.CHECK_IN_PASSED
        assert reservations.get_reservation(res.reservation_id).is_confirmed
        assert reservations.list_for_resource("room-102") == []
        assert availability.get_calendar("room-102").bookings == ()

    def test_reassign_stay_in_progress_rejected(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(4), 2)
        clock.advance(days=2)

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.reassign_reservation(res.reservation_id, "room-102")

        assert exc_info.value.code == ErrorCode.CHECK_IN_PASSED
        assert reservations.get_reservation(res.reservation_id).version == 1

    def test_reassign_on_check_in_day_allowed(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 2)
        clock.advance(days=1)

        moved = reservations.reassign_reservation(res.reservation_id, "room-102")
        assert moved.status == ReservationStatus.CONFIRMED

    def test_cancel_reassigned_reports_already_cancelled(
        self, reservations: ReservationService
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        reservations.reassign_reservation(res.reservation_id, "room-102")

        with pytest.raises(AlreadyCancelledError):
            reservations.cancel_reservation(res.reservation_id)


class TestCalendarConsistency:
    """The calendar projection matches the records after mixed operations."""

    def test_verify_calendar_after_operations(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        a = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 1)
        b = reservations.create_reservation("room-101", "client-ben", day(3), day(5), 1)
        reservations.create_reservation("room-101", "client-ben", day(8), day(9), 1)
        reservations.update_reservation(a.reservation_id, check_in=day(2))
        reservations.cancel_reservation(b.reservation_id)
        reservations.reassign_reservation(a.reservation_id, "room-102")

        for resource_id in ("room-101", "room-102"):
            problems = availability.verify_calendar(
                resource_id, reservations.list_for_resource(resource_id), TODAY
            )
            assert problems == []

    def test_verify_calendar_reports_missing_entry(
        self, reservations: ReservationService, availability: AvailabilityIndex, db
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(1), day(3), 1)
        db.put_item(AvailabilityIndex.TABLE, {"resource_id": "room-101", "version": 9, "bookings": {}})

        problems = availability.verify_calendar(
            "room-101", reservations.list_for_resource("room-101"), TODAY
        )
        assert problems == [f"{res.reservation_id} confirmed but missing from calendar"]


class TestHourlyBookings:
    """Installations are booked by UTC date-time and priced per started hour."""

    def test_priced_per_started_hour(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        res = reservations.create_reservation("sauna", "client-anna", at(3, 10), at(3, 12, 30), 4)

        assert res.pricing_unit == PricingUnit.HOUR
        assert res.units == 3
        assert res.unit_price == Decimal("40.00")
        assert res.base_price == Decimal("120.00")
        assert reservations.get_reservation(res.reservation_id) == res

        calendar = availability.get_calendar("sauna")
        assert [(b.check_in, b.check_out) for b in calendar.bookings] == [
            (at(3, 10), at(3, 12, 30))
        ]

    def test_overlapping_slot_rejected(self, reservations: ReservationService) -> None:
        reservations.create_reservation("sauna", "client-anna", at(3, 10), at(3, 12), 6)

        with pytest.raises(ConflictError) as exc_info:
            reservations.create_reservation("sauna", "client-ben", at(3, 11), at(3, 13), 1)
        assert exc_info.value.code == ErrorCode.DATES_UNAVAILABLE

    def test_back_to_back_slots_allowed(self, reservations: ReservationService) -> None:
        reservations.create_reservation("sauna", "client-anna", at(3, 10), at(3, 12), 6)
        later = reservations.create_reservation("sauna", "client-ben", at(3, 12), at(3, 14), 1)

        assert later.status == ReservationStatus.CONFIRMED

    def test_maximum_length_allowed(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("sauna", "client-anna", at(3, 10), at(3, 18), 2)
        assert res.units == 8

    def test_offset_times_stored_as_utc(self, reservations: ReservationService) -> None:
        helsinki_winter = dt.timezone(dt.timedelta(hours=2))
        start = dt.datetime(2030, 1, 4, 12, 0, tzinfo=helsinki_winter)

        res = reservations.create_reservation(
            "sauna", "client-anna", start, start + dt.timedelta(hours=1), 2
        )

        assert res.check_in == at(3, 10)
        assert res.check_in.utcoffset() == dt.timedelta(0)

    @pytest.mark.parametrize(
        "resource_id,check_in,check_out,code",
        [
            ("sauna", at(3, 10), at(3, 18, 30), ErrorCode.STAY_TOO_LONG),
            ("sauna", at(0, 8), at(0, 10), ErrorCode.DATE_IN_PAST),
            ("sauna", at(3, 12), at(3, 12), ErrorCode.DATES_INVALID),
            ("sauna", day(3), day(4), ErrorCode.INTERVAL_TYPE_INVALID),
            ("room-101", at(3, 10), at(3, 12), ErrorCode.INTERVAL_TYPE_INVALID),
            ("room-101", day(3), at(4, 10), ErrorCode.INTERVAL_TYPE_INVALID),
        ],
    )
    def test_invalid_slots_rejected(
        self,
        reservations: ReservationService,
        resource_id: str,
        check_in,
        check_out,
        code: ErrorCode,
    ) -> None:
        """Rooms take dates; installations take times and run at most eight hours."""
        with pytest.raises(ValidationError) as exc_info:
            reservations.create_reservation(resource_id, "client-anna", check_in, check_out, 1)

        assert exc_info.value.code == code
        assert reservations.list_for_client("client-anna") == []

    def test_later_today_allowed(self, reservations: ReservationService) -> None:
        res = reservations.create_reservation("sauna", "client-anna", at(0, 10), at(0, 11), 1)
        assert res.check_in == at(0, 10)

    def test_cancel_before_start_allowed(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("sauna", "client-anna", at(0, 10), at(0, 12), 2)
        clock.advance(minutes=30)

        cancelled = reservations.cancel_reservation(res.reservation_id)
        assert cancelled.status == ReservationStatus.CANCELLED

    def test_cancel_after_start_rejected(
        self, reservations: ReservationService, clock: FrozenClock
    ) -> None:
        res = reservations.create_reservation("sauna", "client-anna", at(0, 10), at(0, 12), 2)
        clock.advance(hours=2)

        with pytest.raises(BusinessRuleError) as exc_info:
            reservations.cancel_reservation(res.reservation_id)
        assert exc_info.value.code == ErrorCode.CHECK_IN_PASSED

    def test_verify_calendar_with_slots(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        first = reservations.create_reservation("sauna", "client-anna", at(1, 10), at(1, 12), 2)
        reservations.create_reservation("sauna", "client-ben", at(1, 12), at(1, 13), 2)
        reservations.update_reservation(first.reservation_id, check_out=at(1, 11))

        problems = availability.verify_calendar(
            "sauna", reservations.list_for_resource("sauna"), TODAY
        )
        assert problems == []


class TestFindAvailableResources:
    """Tests for searching the catalog for free resources."""

    def test_dates_search_rooms(self, reservations: ReservationService) -> None:
        """Inactive resources and installations are not offered for a dated stay."""
        found = reservations.find_available_resources(day(9), day(11), 2)

        assert [r.resource_id for r in found] == ["room-101", "room-102", "suite-201"]

    def test_booked_and_small_resources_excluded(self, reservations: ReservationService) -> None:
        reservations.create_reservation("room-101", "client-anna", day(10), day(12), 2)

        for_two = reservations.find_available_resources(day(9), day(11))
        for_three = reservations.find_available_resources(day(9), day(11), 3)

        assert [r.resource_id for r in for_two] == ["room-102", "suite-201"]
        assert [r.resource_id for r in for_three] == ["suite-201"]

    def test_back_to_back_counts_as_free(self, reservations: ReservationService) -> None:
        reservations.create_reservation("room-101", "client-anna", day(7), day(9), 2)

        found = reservations.find_available_resources(day(9), day(11), 2)
        assert "room-101" in [r.resource_id for r in found]

    def test_times_search_installations(self, reservations: ReservationService) -> None:
        assert [
            r.resource_id for r in reservations.find_available_resources(at(3, 10), at(3, 12))
        ] == ["sauna"]

        reservations.create_reservation("sauna", "client-anna", at(3, 11), at(3, 12), 2)

        assert reservations.find_available_resources(at(3, 10), at(3, 12)) == []
        assert [
            r.resource_id for r in reservations.find_available_resources(at(3, 12), at(3, 14))
        ] == ["sauna"]

    @pytest.mark.parametrize(
        "check_in,check_out,guests,code",
        [
            (day(5), day(5), 1, ErrorCode.DATES_INVALID),
            (day(-1), day(1), 1, ErrorCode.DATE_IN_PAST),
            (day(1), day(2), 0, ErrorCode.GUESTS_INVALID),
            (day(1), at(2, 10), 1, ErrorCode.INTERVAL_TYPE_INVALID),
        ],
    )
    def test_invalid_search_rejected(
        self,
        reservations: ReservationService,
        check_in,
        check_out,
        guests: int,
        code: ErrorCode,
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            reservations.find_available_resources(check_in, check_out, guests)
        assert exc_info.value.code == code
