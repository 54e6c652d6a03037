"""Concurrency tests: racing bookings, redemptions and cancellations.

Racing threads are lined up so that every one of them has read its state
before any of them commits; commits are then serialized the way DynamoDB
serializes transactions on the same items. Deterministic variants build a
plan, let a competing write land, then commit the stale plan.
"""

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Any

import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from stayledger.models import (
    AlreadyCancelledError,
    BookingError,
    ConflictError,
    ErrorCode,
    InsufficientBalanceError,
    OutcomeUnknownError,
    ReservationStatus,
)
from stayledger.services.availability import AvailabilityIndex, intervals_overlap
from stayledger.services.booking import BookingOrchestrator
from stayledger.services.dynamodb import DynamoDBService
from stayledger.services.loyalty import LoyaltyLedger
from stayledger.services.reservations import ReservationService
from tests.factories import day

pytestmark = pytest.mark.integration


def line_up_commits(monkeypatch: pytest.MonkeyPatch, db: DynamoDBService, parties: int) -> None:
    """Hold every transactional write until ``parties`` callers reached it."""
    barrier = threading.Barrier(parties, timeout=10)
    lock = threading.Lock()
    original = db.transact_write

    def transact_write(items: list[dict[str, Any]], client_request_token: str | None = None) -> bool:
        barrier.wait()
        with lock:
            return original(items, client_request_token)

    monkeypatch.setattr(db, "transact_write", transact_write)


def race(calls: list[Callable[[], Any]]) -> tuple[list[Any], list[BookingError]]:
    """Run calls on separate threads; split results from booking errors."""
    results: list[Any] = []
    errors: list[BookingError] = []
    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(call) for call in calls]
        for future in futures:
            try:
                results.append(future.result(timeout=30))
            except BookingError as e:
                errors.append(e)
    return results, errors


class TestRacingBookings:
    """At most one of several overlapping bookings commits."""

    def test_same_dates_single_winner(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        reservations: ReservationService,
        availability: AvailabilityIndex,
    ) -> None:
        clients = ["client-anna", "client-ben"] * 3
        line_up_commits(monkeypatch, db, len(clients))

        results, errors = race(
            [
                lambda c=client: reservations.create_reservation("room-101", c, day(9), day(11), 1)
                for client in clients
            ]
        )

        assert len(results) == 1
        assert len(errors) == len(clients) - 1
        assert all(isinstance(e, ConflictError) for e in errors)
        assert all(e.code == ErrorCode.DATES_UNAVAILABLE for e in errors)

        calendar = availability.get_calendar("room-101")
        assert [b.reservation_id for b in calendar.bookings] == [results[0].reservation_id]
        assert reservations.list_for_resource("room-101") == results

    def test_partially_overlapping_requests_never_double_book(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        reservations: ReservationService,
        availability: AvailabilityIndex,
    ) -> None:
        """Losers are told either that the dates are taken or to retry."""
        stays = [(day(9), day(11)), (day(10), day(12)), (day(11), day(13))]
        line_up_commits(monkeypatch, db, len(stays))

        results, errors = race(
            [
                lambda ci=ci, co=co: reservations.create_reservation(
                    "room-101", "client-anna", ci, co, 1
                )
                for ci, co in stays
            ]
        )

        assert len(results) == 1
        assert {e.code for e in errors} <= {
            ErrorCode.DATES_UNAVAILABLE,
            ErrorCode.CONCURRENT_MODIFICATION,
        }
        bookings = availability.get_calendar("room-101").bookings
        for i, a in enumerate(bookings):
            for b in bookings[i + 1 :]:
                assert not intervals_overlap(a.check_in, a.check_out, b.check_in, b.check_out)

    def test_different_resources_do_not_contend(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        reservations: ReservationService,
    ) -> None:
        resources = ["room-101", "room-102", "suite-201"]
        line_up_commits(monkeypatch, db, len(resources))

        results, errors = race(
            [
                lambda r=resource: reservations.create_reservation(
                    r, "client-anna", day(9), day(11), 1
                )
                for resource in resources
            ]
        )

        assert errors == []
        assert sorted(r.resource_id for r in results) == resources

    def test_stale_availability_read_rejected(
        self, reservations: ReservationService
    ) -> None:
        """A plan made before a competing booking committed cannot commit."""
        plan = reservations.plan_create("room-101", "client-anna", day(9), day(11), 1)
        winner = reservations.create_reservation("room-101", "client-ben", day(10), day(12), 1)

        with pytest.raises(ConflictError) as exc_info:
            reservations.commit(plan)

        assert exc_info.value.code == ErrorCode.DATES_UNAVAILABLE
        assert winner.reservation_id in exc_info.value.details["conflicting"]
        assert reservations.find_reservation(plan.reservation.reservation_id) is None


class TestRacingRedemptions:
    """The balance never goes negative under concurrent redemptions."""

    def test_only_covered_redemptions_succeed(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        ledger: LoyaltyLedger,
    ) -> None:
        ledger.earn("client-anna", Decimal("300"), "Stay")
        line_up_commits(monkeypatch, db, 3)

        results, errors = race(
            [lambda: ledger.redeem("client-anna", 200, "Race") for _ in range(3)]
        )

        assert len(results) == 1
        assert all(isinstance(e, InsufficientBalanceError) for e in errors)
        assert ledger.get_balance("client-anna") == 100
        assert ledger.audit_account("client-anna").consistent

    def test_covered_losers_get_conflict(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        ledger: LoyaltyLedger,
    ) -> None:
        """When the balance would still cover a loser, it is asked to retry."""
        ledger.earn("client-anna", Decimal("1000"), "Stay")
        line_up_commits(monkeypatch, db, 2)

        results, errors = race(
            [lambda: ledger.redeem("client-anna", 100, "Race") for _ in range(2)]
        )

        assert len(results) == 1
        assert [e.code for e in errors] == [ErrorCode.CONCURRENT_MODIFICATION]
        assert ledger.get_balance("client-anna") == 900

    def test_booking_loses_to_redemption_atomically(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        ledger: LoyaltyLedger,
        orchestrator: BookingOrchestrator,
        reservations: ReservationService,
        availability: AvailabilityIndex,
    ) -> None:
        """A booking whose redemption lost its race leaves no reservation behind."""
        ledger.earn("client-anna", Decimal("500"), "Stay")
        original = db.transact_write
        state = {"raced": False}

        def transact_write(items: list[dict[str, Any]], client_request_token: str | None = None) -> bool:
            if not state["raced"]:
                state["raced"] = True
                ledger.redeem("client-anna", 300, "Spent elsewhere")
            return original(items, client_request_token)

        monkeypatch.setattr(db, "transact_write", transact_write)

        with pytest.raises(InsufficientBalanceError):
            orchestrator.book_with_points("room-101", "client-anna", day(9), day(11), 2, 400)

        assert reservations.list_for_client("client-anna") == []
        assert availability.get_calendar("room-101").bookings == ()
        assert ledger.get_balance("client-anna") == 200


class TestRacingCancellations:
    """Cancellation races resolve to a single applied change."""

    def test_concurrent_cancels_refund_once(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        ledger: LoyaltyLedger,
        orchestrator: BookingOrchestrator,
    ) -> None:
        ledger.earn("client-anna", Decimal("1000"), "Stay")
        booked = orchestrator.book_with_points("room-101", "client-anna", day(9), day(11), 2, 500)
        rid = booked.reservation.reservation_id
        line_up_commits(monkeypatch, db, 2)

        results, errors = race([lambda: orchestrator.cancel_booking(rid) for _ in range(2)])

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyCancelledError)
        assert ledger.get_balance("client-anna") == 1000

    def test_cancel_after_concurrent_modify_is_conflict(
        self, reservations: ReservationService
    ) -> None:
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        stale = reservations.plan_cancel(res.reservation_id)
        reservations.update_reservation(res.reservation_id, guests=1)

        with pytest.raises(ConflictError) as exc_info:
            reservations.commit(stale)

        assert exc_info.value.code == ErrorCode.CONCURRENT_MODIFICATION
        assert reservations.get_reservation(res.reservation_id).status == (
            ReservationStatus.CONFIRMED
        )

    def test_reassign_and_cancel_race(
        self, reservations: ReservationService, availability: AvailabilityIndex
    ) -> None:
        """A cancel planned before a reassignment reports the reservation as gone."""
        res = reservations.create_reservation("room-101", "client-anna", day(9), day(11), 2)
        stale = reservations.plan_cancel(res.reservation_id)
        moved = reservations.reassign_reservation(res.reservation_id, "room-102")

        with pytest.raises(AlreadyCancelledError):
            reservations.commit(stale)

        assert [b.reservation_id for b in availability.get_calendar("room-102").bookings] == [
            moved.reservation_id
        ]


class TestOutcomeUnknown:
    """Timeouts surface as a distinct error rather than success or failure."""

    def test_read_timeout(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        reservations: ReservationService,
    ) -> None:
        def timeout(**kwargs: Any) -> None:
            raise ReadTimeoutError(endpoint_url="https://dynamodb.eu-west-1.amazonaws.com")

        monkeypatch.setattr(db.client, "transact_write_items", timeout)

        with pytest.raises(OutcomeUnknownError) as exc_info:
            reservations.create_reservation("room-101", "client-anna", day(9), day(11), 1)
        assert "token" in exc_info.value.details

    def test_transaction_in_progress(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db: DynamoDBService,
        ledger: LoyaltyLedger,
    ) -> None:
        def in_progress(**kwargs: Any) -> None:
            raise ClientError(
                {"Error": {"Code": "TransactionInProgressException", "Message": "busy"}},
                "TransactWriteItems",
            )

        monkeypatch.setattr(db.client, "transact_write_items", in_progress)

        with pytest.raises(OutcomeUnknownError):
            ledger.earn("client-anna", Decimal("100"), "Stay")
