"""Availability index over per-resource calendars.

Stays are half-open intervals ``[check_in, check_out)``: a check-out on the
same day as another stay's check-in is not an overlap. Rooms are held by
date, installations by UTC date-time; a slot ending at 12:00 and one starting
at 12:00 do not overlap either.

Each resource has one calendar item listing its CONFIRMED stays and a
``version``. Writers read the calendar, evaluate the overlap check against
it, and commit their reservation change together with a calendar put
conditioned on the version they read. Two writers racing for the same
resource cannot both commit, so the check and the write are effectively
evaluated under one lock.
"""

import datetime as dt
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from stayledger.models import (
    BookedInterval,
    ErrorCode,
    Reservation,
    ReservationStatus,
    ResourceCalendar,
    ValidationError,
)
from stayledger.utils.intervals import parse_instant, same_kind, to_instant

from .dynamodb import as_int

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class Stay(Protocol):
    reservation_id: str
    status: ReservationStatus
    check_in: dt.date
    check_out: dt.date


S = TypeVar("S", bound=Stay)


def intervals_overlap(
    a_start: dt.date, a_end: dt.date, b_start: dt.date, b_end: dt.date
) -> bool:
    """Return True if [a_start, a_end) and [b_start, b_end) share any time.

    Dates compare as midnight UTC; naive date-times are taken as UTC.
    """
    a_start, a_end, b_start, b_end = map(to_instant, (a_start, a_end, b_start, b_end))
    return a_start < b_end and b_start < a_end


def validate_interval(check_in: dt.date, check_out: dt.date) -> None:
    """Reject zero-length, inverted and mixed date/date-time intervals.

    Raises:
        ValidationError: check_out is not after check_in, or only one bound
            carries a time
    """
    if not same_kind(check_in, check_out):
        raise ValidationError(
            ErrorCode.INTERVAL_TYPE_INVALID,
            details={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
        )
    if to_instant(check_in) >= to_instant(check_out):
        raise ValidationError(
            ErrorCode.DATES_INVALID,
            details={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
        )


def find_conflicts(
    stays: Iterable[S],
    check_in: dt.date,
    check_out: dt.date,
    exclude_reservation_id: str | None = None,
) -> list[S]:
    """Return the CONFIRMED stays overlapping [check_in, check_out).

    Args:
        stays: Candidate stays (reservations or calendar entries)
        check_in: Requested start
        check_out: Requested end (exclusive)
        exclude_reservation_id: Stay to ignore, e.g. the one being modified

    Returns:
        Conflicting stays in input order
    """
    return [
        s
        for s in stays
        if s.status == ReservationStatus.CONFIRMED
        and s.reservation_id != exclude_reservation_id
        and intervals_overlap(s.check_in, s.check_out, check_in, check_out)
    ]


class AvailabilityIndex:
    """Availability queries and calendar writes for bookable resources."""

    TABLE = "resource-calendars"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize availability index.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def get_calendar(self, resource_id: str) -> ResourceCalendar:
        """Read a resource's calendar with a strongly consistent read.

        Returns:
            The calendar, or an empty version-0 calendar if none was written yet
        """
        item = self.db.get_item(self.TABLE, {"resource_id": resource_id}, consistent_read=True)
        if not item:
            return ResourceCalendar(resource_id=resource_id)
        return self._item_to_calendar(item)

    def find_conflicts(
        self,
        resource_id: str,
        check_in: dt.date,
        check_out: dt.date,
        exclude_reservation_id: str | None = None,
    ) -> list[BookedInterval]:
        """Return confirmed stays on the resource overlapping the interval."""
        validate_interval(check_in, check_out)
        calendar = self.get_calendar(resource_id)
        return find_conflicts(calendar.bookings, check_in, check_out, exclude_reservation_id)

    def is_available(
        self,
        resource_id: str,
        check_in: dt.date,
        check_out: dt.date,
        exclude_reservation_id: str | None = None,
    ) -> bool:
        """Check whether the resource is free over [check_in, check_out).

        The answer is advisory for callers outside a write; booking writes
        re-check against the calendar version they commit on.

        Args:
            resource_id: Resource to check
            check_in: Requested start
            check_out: Requested end (exclusive)
            exclude_reservation_id: Reservation to ignore

        Returns:
            True if no CONFIRMED reservation overlaps

        Raises:
            ValidationError: The interval is empty or inverted
        """
        return not self.find_conflicts(resource_id, check_in, check_out, exclude_reservation_id)

    def calendar_write(
        self,
        before: ResourceCalendar,
        after: ResourceCalendar,
        now: dt.datetime,
    ) -> dict[str, Any]:
        """Build the transactional put replacing ``before`` with ``after``.

        The put only succeeds if the stored calendar still has the version
        that was read, which serializes writers per resource.
        """
        item = self._calendar_to_item(
            after.model_copy(update={"version": before.version + 1}), now
        )
        if before.version == 0:
            return self.db.put_op(
                self.TABLE, item, condition_expression="attribute_not_exists(resource_id)"
            )
        return self.db.put_op(
            self.TABLE,
            item,
            condition_expression="version = :expected",
            expression_attribute_values={":expected": before.version},
        )

    def verify_calendar(
        self,
        resource_id: str,
        reservations: Iterable[Reservation],
        today: dt.date,
    ) -> list[str]:
        """Compare a calendar with the reservation records of its resource.

        Stays that ended before ``today`` may already be pruned and are
        not reported.

        Returns:
            Human-readable discrepancies (empty when consistent)
        """
        calendar = self.get_calendar(resource_id)
        start_of_day = to_instant(today)
        held = {
            b.reservation_id: b
            for b in calendar.bookings
            if to_instant(b.check_out) >= start_of_day
        }

        problems = []
        confirmed = {
            r.reservation_id: r
            for r in reservations
            if r.is_confirmed and to_instant(r.check_out) >= start_of_day
        }
        for rid, res in confirmed.items():
            entry = held.get(rid)
            if entry is None:
                problems.append(f"{rid} confirmed but missing from calendar")
            elif (entry.check_in, entry.check_out) != (res.check_in, res.check_out):
                problems.append(f"{rid} calendar dates differ from reservation")
        for rid in held:
            if rid not in confirmed:
                problems.append(f"{rid} in calendar but not confirmed")

        stays = sorted(calendar.bookings, key=lambda b: to_instant(b.check_in))
        for prev, nxt in zip(stays, stays[1:]):
            if intervals_overlap(prev.check_in, prev.check_out, nxt.check_in, nxt.check_out):
                problems.append(f"{prev.reservation_id} overlaps {nxt.reservation_id}")
        return problems

    def _calendar_to_item(self, calendar: ResourceCalendar, now: dt.datetime) -> dict[str, Any]:
        """Convert ResourceCalendar to DynamoDB item."""
        return {
            "resource_id": calendar.resource_id,
            "version": calendar.version,
            "bookings": {
                b.reservation_id: {
                    "check_in": b.check_in.isoformat(),
                    "check_out": b.check_out.isoformat(),
                }
                for b in calendar.bookings
            },
            "updated_at": now.isoformat(),
        }

    def _item_to_calendar(self, item: dict[str, Any]) -> ResourceCalendar:
        """Convert DynamoDB item to ResourceCalendar."""
        bookings = sorted(
            (
                BookedInterval(
                    reservation_id=rid,
                    check_in=parse_instant(stay["check_in"]),
                    check_out=parse_instant(stay["check_out"]),
                )
                for rid, stay in item.get("bookings", {}).items()
            ),
            key=lambda b: (to_instant(b.check_in), b.reservation_id),
        )
        return ResourceCalendar(
            resource_id=item["resource_id"],
            version=as_int(item.get("version")),
            bookings=tuple(bookings),
        )
