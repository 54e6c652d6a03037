"""Reservation service: guarded creation, modification, cancellation and reassignment.

Every write is planned first (validation, availability check against the
calendar versions read, resulting records) and then committed as a single
DynamoDB transaction. A plan that loses a race is never retried; the
failure is classified by re-reading and raised to the caller.
"""

import datetime as dt
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from stayledger.config import Settings, get_settings
from stayledger.models import (
    BookingError,
    BusinessRuleError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    PricingUnit,
    Reservation,
    ReservationEvent,
    ReservationStatus,
    Resource,
    ResourceCalendar,
    User,
    ValidationError,
)
from stayledger.utils.clock import Clock, SystemClock
from stayledger.utils.ids import generate_reservation_id
from stayledger.utils.intervals import has_started, is_timed, parse_instant, stay_units
from stayledger.utils.logging import get_logger, log_booking_operation

from .availability import find_conflicts, validate_interval
from .dynamodb import as_decimal, as_int
from .reservation_state import INITIAL_STATUS, next_status

if TYPE_CHECKING:
    from .availability import AvailabilityIndex
    from .catalog import ResourceCatalog, UserDirectory
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

CENT = Decimal("0.01")


@dataclass
class StayClaim:
    """An interval a plan needs free on a resource."""

    resource_id: str
    check_in: dt.date
    check_out: dt.date
    exclude_reservation_id: str | None = None


@dataclass
class ReservationPlan:
    """Writes for one reservation operation, not yet committed."""

    operation: str
    reservation: Reservation
    operations: list[dict[str, Any]]
    event: ReservationEvent | None = None
    previous: Reservation | None = None
    claims: list[StayClaim] = field(default_factory=list)

    @property
    def original(self) -> Reservation:
        """The reservation as read before this plan changed it.

        Raises:
            ValueError: The plan creates a new reservation and has no original
        """
        if self.previous is None:
            raise ValueError(f"{self.operation} plan has no original reservation")
        return self.previous


def price_stay(resource: Resource, units: int) -> tuple[Decimal, Decimal]:
    """Price a stay from the catalog's unit price.

    ``units`` are nights for rooms and started hours for installations.

    Returns:
        (unit_price, base_price) with base rounded to cents
    """
    base = (resource.unit_price * units).quantize(CENT, rounding=ROUND_HALF_UP)
    return resource.unit_price, base


def apply_discount(base_price: Decimal, discount: Decimal) -> Decimal:
    """Total after a points discount, never negative."""
    return max(base_price - discount, Decimal("0")).quantize(CENT, rounding=ROUND_HALF_UP)


class ReservationService:
    """Service for the reservation lifecycle."""

    TABLE = "reservations"

    def __init__(
        self,
        db: "DynamoDBService",
        availability: "AvailabilityIndex",
        catalog: "ResourceCatalog",
        users: "UserDirectory",
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize reservation service.

        Args:
            db: DynamoDB service instance
            availability: Availability index over resource calendars
            catalog: Resource catalog (read-only)
            users: User directory (read-only)
            settings: Booking limits; defaults to the environment
            clock: Time source; defaults to the UTC wall clock
        """
        self.db = db
        self.availability = availability
        self.catalog = catalog
        self.users = users
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()

    # =========================================================================
    # Queries
    # =========================================================================

    def find_reservation(self, reservation_id: str) -> Reservation | None:
        item = self.db.get_item(
            self.TABLE, {"reservation_id": reservation_id}, consistent_read=True
        )
        return self._item_to_reservation(item) if item else None

    def get_reservation(self, reservation_id: str) -> Reservation:
        """Get a reservation by ID.

        Raises:
            NotFoundError: Unknown reservation ID
        """
        reservation = self.find_reservation(reservation_id)
        if reservation is None:
            raise NotFoundError(
                ErrorCode.RESERVATION_NOT_FOUND, details={"reservation_id": reservation_id}
            )
        return reservation

    def list_for_client(self, client_id: str) -> list[Reservation]:
        """List a client's reservations ordered by check-in."""
        items = self.db.query(
            self.TABLE,
            "client_id = :client_id",
            {":client_id": client_id},
            index_name="client_id-index",
        )
        return [self._item_to_reservation(item) for item in items]

    def list_for_resource(self, resource_id: str) -> list[Reservation]:
        """List a resource's reservations ordered by check-in."""
        items = self.db.query(
            self.TABLE,
            "resource_id = :resource_id",
            {":resource_id": resource_id},
            index_name="resource_id-index",
        )
        return [self._item_to_reservation(item) for item in items]

    def is_available(
        self,
        resource_id: str,
        check_in: dt.date,
        check_out: dt.date,
        exclude_reservation_id: str | None = None,
    ) -> bool:
        return self.availability.is_available(
            resource_id, check_in, check_out, exclude_reservation_id
        )

    def find_available_resources(
        self,
        check_in: dt.date,
        check_out: dt.date,
        guests: int = 1,
    ) -> list[Resource]:
        """List catalog resources that can take the stay as requested.

        Dates search the rooms, date-times search the installations. A
        resource qualifies when it seats ``guests`` and no CONFIRMED stay
        overlaps the interval. Like ``is_available`` the answer is advisory.

        Returns:
            Matching resources ordered by ID

        Raises:
            ValidationError: Invalid interval, stay length or guest count
        """
        self.validate_stay(check_in, check_out, guests)
        unit = PricingUnit.HOUR if is_timed(check_in) else PricingUnit.NIGHT
        return [
            resource
            for resource in self.catalog.list_resources()
            if resource.pricing_unit == unit
            and resource.capacity >= guests
            and self.availability.is_available(resource.resource_id, check_in, check_out)
        ]

    def require_resource(self, resource_id: str) -> Resource:
        resource = self.catalog.get_resource(resource_id)
        if resource is None:
            raise NotFoundError(ErrorCode.RESOURCE_NOT_FOUND, details={"resource_id": resource_id})
        return resource

    def require_user(self, user_id: str) -> User:
        user = self.users.get_user(user_id)
        if user is None:
            raise NotFoundError(ErrorCode.USER_NOT_FOUND, details={"user_id": user_id})
        return user

    def validate_stay(
        self,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
        resource: Resource | None = None,
    ) -> None:
        """Validate the interval, stay length and guest count.

        Check-in today is allowed for rooms; an hourly booking may not start
        before the current time. Rooms are limited to ``max_stay_nights``,
        installations to ``max_booking_hours``. With a resource, the interval
        kind must match it: dates for rooms, date-times for installations.

        Raises:
            ValidationError: With the specific reason code
        """
        validate_interval(check_in, check_out)
        timed = is_timed(check_in)
        if resource is not None and timed != (resource.pricing_unit == PricingUnit.HOUR):
            raise ValidationError(
                ErrorCode.INTERVAL_TYPE_INVALID,
                details={"resource_id": resource.resource_id, "kind": resource.kind.value},
            )

        now = self.clock.now()
        if has_started(check_in, now):
            raise ValidationError(
                ErrorCode.DATE_IN_PAST,
                details={"check_in": check_in.isoformat(), "now": now.isoformat()},
            )

        units = stay_units(check_in, check_out)
        maximum = self.settings.max_booking_hours if timed else self.settings.max_stay_nights
        if units > maximum:
            raise ValidationError(
                ErrorCode.STAY_TOO_LONG,
                details={"hours" if timed else "nights": units, "maximum": maximum},
            )

        if guests < 1:
            raise ValidationError(ErrorCode.GUESTS_INVALID, details={"guests": guests})

        if resource is not None and guests > resource.capacity:
            raise ValidationError(
                ErrorCode.CAPACITY_EXCEEDED,
                details={"guests": guests, "capacity": resource.capacity},
            )

    def quote_price(
        self,
        resource_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
    ) -> tuple[Resource, Decimal, Decimal]:
        """Validate a prospective stay and price it without reserving anything.

        Returns:
            (resource, unit_price, base_price)

        Raises:
            ValidationError: Invalid dates, stay length or guest count
            NotFoundError: Unknown resource
        """
        self.validate_stay(check_in, check_out, guests)
        resource = self.require_resource(resource_id)
        self.validate_stay(check_in, check_out, guests, resource)
        unit_price, base_price = price_stay(resource, stay_units(check_in, check_out))
        return resource, unit_price, base_price

    # =========================================================================
    # Commands
    # =========================================================================

    def create_reservation(
        self,
        resource_id: str,
        client_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
    ) -> Reservation:
        """Create a CONFIRMED reservation.

        Args:
            resource_id: Resource to book
            client_id: Client holding the reservation
            check_in: First night
            check_out: Departure day (exclusive)
            guests: Number of guests

        Returns:
            The committed reservation

        Raises:
            ValidationError: Invalid dates, stay length or guest count
            NotFoundError: Unknown client or resource
            ConflictError: Overlaps a confirmed reservation or lost a race
        """
        plan = self.plan_create(resource_id, client_id, check_in, check_out, guests)
        self.commit(plan)
        return plan.reservation

    def update_reservation(
        self,
        reservation_id: str,
        check_in: dt.date | None = None,
        check_out: dt.date | None = None,
        guests: int | None = None,
    ) -> Reservation:
        """Change dates and/or guests of a CONFIRMED reservation.

        The reservation's own stay is ignored in the overlap check. The stay
        is repriced at the catalog's current unit price; an existing points
        discount is kept. Only stays that have not started can be changed.

        Raises:
            NotFoundError: Unknown reservation or resource
            ValidationError: Invalid new values
            BusinessRuleError: Reservation is not CONFIRMED, or the stay has started
            ConflictError: New dates overlap or the record changed concurrently
        """
        current = self.get_reservation(reservation_id)
        new_status = next_status(current.status, ReservationEvent.MODIFY, reservation_id)
        self._require_not_started(current)

        new_check_in = parse_instant(check_in or current.check_in)
        new_check_out = parse_instant(check_out or current.check_out)
        new_guests = guests if guests is not None else current.guests

        resource = self.require_resource(current.resource_id)
        self.validate_stay(new_check_in, new_check_out, new_guests, resource)

        calendar = self._claim(
            StayClaim(current.resource_id, new_check_in, new_check_out, reservation_id)
        )

        now = self.clock.now()
        unit_price, base_price = price_stay(resource, stay_units(new_check_in, new_check_out))
        updated = current.model_copy(
            update={
                "check_in": new_check_in,
                "check_out": new_check_out,
                "guests": new_guests,
                "status": new_status,
                "unit_price": unit_price,
                "base_price": base_price,
                "total_price": apply_discount(base_price, current.discount_amount),
                "currency": resource.currency,
                "version": current.version + 1,
                "updated_at": now,
            }
        )
        after = calendar.pruned(now.date()).with_booking(
            reservation_id, new_check_in, new_check_out
        )
        plan = ReservationPlan(
            operation="update_reservation",
            reservation=updated,
            event=ReservationEvent.MODIFY,
            previous=current,
            claims=[StayClaim(current.resource_id, new_check_in, new_check_out, reservation_id)],
            operations=[
                self._reservation_write(updated, current),
                self.availability.calendar_write(calendar, after, now),
            ],
        )
        self.commit(plan)
        return updated

    def cancel_reservation(self, reservation_id: str, reason: str | None = None) -> Reservation:
        """Cancel a reservation and release its dates.

        The record is kept with status CANCELLED.

        Raises:
            NotFoundError: Unknown reservation
            AlreadyCancelledError: Already CANCELLED or REASSIGNED; nothing changes
            BusinessRuleError: The stay has started
            ConflictError: The record changed concurrently
        """
        plan = self.plan_cancel(reservation_id, reason)
        self.commit(plan)
        return plan.reservation

    def reassign_reservation(
        self,
        reservation_id: str,
        new_resource_id: str,
        new_check_in: dt.date | None = None,
        new_check_out: dt.date | None = None,
    ) -> Reservation:
        """Move a CONFIRMED reservation to another resource and/or dates.

        The old record becomes REASSIGNED and a new CONFIRMED record is
        created, in one transaction. Guests, loyalty fields and the points
        discount carry over; the stay is repriced for the new resource.
        Only stays that have not started can move; a stay in progress or
        already completed stays where it is.

        Args:
            reservation_id: Reservation to move
            new_resource_id: Target resource (may be the same resource)
            new_check_in: New first night, defaults to the current one
            new_check_out: New departure day, defaults to the current one

        Returns:
            The new CONFIRMED reservation

        Raises:
            NotFoundError: Unknown reservation or resource
            ValidationError: Invalid dates or capacity
            BusinessRuleError: Reservation is not CONFIRMED, or the stay has started
            ConflictError: Target dates unavailable or lost a race; the old
                reservation is left untouched
        """
        current = self.get_reservation(reservation_id)
        old_status = next_status(current.status, ReservationEvent.REASSIGN, reservation_id)
        self._require_not_started(current)

        check_in = parse_instant(new_check_in or current.check_in)
        check_out = parse_instant(new_check_out or current.check_out)
        resource = self.require_resource(new_resource_id)
        self.validate_stay(check_in, check_out, current.guests, resource)

        same_resource = new_resource_id == current.resource_id
        claim = StayClaim(
            new_resource_id, check_in, check_out, reservation_id if same_resource else None
        )
        target_calendar = self._claim(claim)

        now = self.clock.now()
        today = now.date()
        unit_price, base_price = price_stay(resource, stay_units(check_in, check_out))
        moved = Reservation(
            reservation_id=generate_reservation_id(today),
            resource_id=new_resource_id,
            client_id=current.client_id,
            check_in=check_in,
            check_out=check_out,
            guests=current.guests,
            status=INITIAL_STATUS,
            unit_price=unit_price,
            base_price=base_price,
            discount_amount=current.discount_amount,
            total_price=apply_discount(base_price, current.discount_amount),
            currency=resource.currency,
            points_redeemed=current.points_redeemed,
            points_earned=current.points_earned,
            reassigned_from=reservation_id,
            version=1,
            created_at=now,
            updated_at=now,
        )
        retired = current.model_copy(
            update={
                "status": old_status,
                "reassigned_to": moved.reservation_id,
                "version": current.version + 1,
                "updated_at": now,
            }
        )

        operations = [
            self._reservation_write(retired, current),
            self._reservation_write(moved, None),
        ]
        if same_resource:
            after = (
                target_calendar.pruned(today)
                .without_booking(reservation_id)
                .with_booking(moved.reservation_id, check_in, check_out)
            )
            operations.append(self.availability.calendar_write(target_calendar, after, now))
        else:
            source_calendar = self.availability.get_calendar(current.resource_id)
            operations.append(
                self.availability.calendar_write(
                    source_calendar,
                    source_calendar.pruned(today).without_booking(reservation_id),
                    now,
                )
            )
            operations.append(
                self.availability.calendar_write(
                    target_calendar,
                    target_calendar.pruned(today).with_booking(
                        moved.reservation_id, check_in, check_out
                    ),
                    now,
                )
            )

        plan = ReservationPlan(
            operation="reassign_reservation",
            reservation=moved,
            event=ReservationEvent.REASSIGN,
            previous=current,
            claims=[claim],
            operations=operations,
        )
        self.commit(plan)
        return moved

    # =========================================================================
    # Planning (shared with the booking orchestrator)
    # =========================================================================

    def plan_create(
        self,
        resource_id: str,
        client_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
        *,
        discount_amount: Decimal = Decimal("0.00"),
        points_redeemed: int = 0,
    ) -> ReservationPlan:
        """Validate and plan a new CONFIRMED reservation without committing.

        Raises:
            ValidationError, NotFoundError, ConflictError: As create_reservation
        """
        self.validate_stay(check_in, check_out, guests)
        self.require_user(client_id)
        resource = self.require_resource(resource_id)
        self.validate_stay(check_in, check_out, guests, resource)

        claim = StayClaim(resource_id, check_in, check_out)
        calendar = self._claim(claim)

        now = self.clock.now()
        unit_price, base_price = price_stay(resource, stay_units(check_in, check_out))
        reservation = Reservation(
            reservation_id=generate_reservation_id(now.date()),
            resource_id=resource_id,
            client_id=client_id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            status=INITIAL_STATUS,
            unit_price=unit_price,
            base_price=base_price,
            discount_amount=discount_amount,
            total_price=apply_discount(base_price, discount_amount),
            currency=resource.currency,
            points_redeemed=points_redeemed,
            version=1,
            created_at=now,
            updated_at=now,
        )
        after = calendar.pruned(now.date()).with_booking(
            reservation.reservation_id, check_in, check_out
        )
        return ReservationPlan(
            operation="create_reservation",
            reservation=reservation,
            claims=[claim],
            operations=[
                self._reservation_write(reservation, None),
                self.availability.calendar_write(calendar, after, now),
            ],
        )

    def plan_cancel(self, reservation_id: str, reason: str | None = None) -> ReservationPlan:
        """Validate and plan a cancellation without committing."""
        current = self.get_reservation(reservation_id)
        new_status = next_status(current.status, ReservationEvent.CANCEL, reservation_id)

        self._require_not_started(current)
        now = self.clock.now()

        cancelled = current.model_copy(
            update={
                "status": new_status,
                "cancellation_reason": reason,
                "version": current.version + 1,
                "updated_at": now,
            }
        )
        operations = [self._reservation_write(cancelled, current)]
        if current.status == ReservationStatus.CONFIRMED:
            calendar = self.availability.get_calendar(current.resource_id)
            after = calendar.pruned(now.date()).without_booking(reservation_id)
            operations.append(self.availability.calendar_write(calendar, after, now))

        return ReservationPlan(
            operation="cancel_reservation",
            reservation=cancelled,
            event=ReservationEvent.CANCEL,
            previous=current,
            operations=operations,
        )

    def commit(
        self,
        plan: ReservationPlan,
        extra_operations: list[dict[str, Any]] | None = None,
    ) -> None:
        """Commit a plan, optionally with other writes in the same transaction.

        Raises:
            BookingError: Classified failure when any condition did not hold
        """
        operations = plan.operations + (extra_operations or [])
        if self.db.transact_write(operations):
            log_booking_operation(
                logger,
                plan.operation,
                reservation_id=plan.reservation.reservation_id,
                resource_id=plan.reservation.resource_id,
                status=plan.reservation.status.value,
            )
            return

        error = self.classify_failure(plan)
        log_booking_operation(
            logger,
            plan.operation,
            reservation_id=plan.reservation.reservation_id,
            resource_id=plan.reservation.resource_id,
            error=error.code.value,
        )
        raise error

    def classify_failure(self, plan: ReservationPlan) -> BookingError:
        """Explain why a plan's transaction was cancelled by re-reading state.

        Returns:
            The lifecycle error if the reservation moved on, DATES_UNAVAILABLE
            if a claimed interval is now taken, otherwise CONCURRENT_MODIFICATION
        """
        if plan.previous is not None and plan.event is not None:
            latest = self.find_reservation(plan.previous.reservation_id)
            if latest is not None and latest.version != plan.previous.version:
                try:
                    next_status(latest.status, plan.event, latest.reservation_id)
                except BookingError as e:
                    return e

        for claim in plan.claims:
            calendar = self.availability.get_calendar(claim.resource_id)
            taken = find_conflicts(
                calendar.bookings, claim.check_in, claim.check_out, claim.exclude_reservation_id
            )
            if taken:
                return self._unavailable(claim, [b.reservation_id for b in taken])

        return ConflictError(
            ErrorCode.CONCURRENT_MODIFICATION,
            details={"reservation_id": plan.reservation.reservation_id},
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_not_started(self, current: Reservation) -> None:
        """Stays that have started can no longer be changed, cancelled or moved."""
        if has_started(current.check_in, self.clock.now()):
            raise BusinessRuleError(
                ErrorCode.CHECK_IN_PASSED,
                details={
                    "reservation_id": current.reservation_id,
                    "check_in": current.check_in.isoformat(),
                },
            )

    def _claim(self, claim: StayClaim) -> ResourceCalendar:
        """Read the calendar for a claim and fail fast if the interval is taken."""
        calendar = self.availability.get_calendar(claim.resource_id)
        taken = find_conflicts(
            calendar.bookings, claim.check_in, claim.check_out, claim.exclude_reservation_id
        )
        if taken:
            error = self._unavailable(claim, [b.reservation_id for b in taken])
            log_booking_operation(
                logger,
                "availability_check",
                resource_id=claim.resource_id,
                error=error.code.value,
            )
            raise error
        return calendar

    @staticmethod
    def _unavailable(claim: StayClaim, conflicting: list[str]) -> ConflictError:
        return ConflictError(
            ErrorCode.DATES_UNAVAILABLE,
            details={
                "resource_id": claim.resource_id,
                "check_in": claim.check_in.isoformat(),
                "check_out": claim.check_out.isoformat(),
                "conflicting": ",".join(conflicting),
            },
        )

    def _reservation_write(
        self, reservation: Reservation, previous: Reservation | None
    ) -> dict[str, Any]:
        """Put guarded by the version read, or by non-existence for new records."""
        item = self._reservation_to_item(reservation)
        if previous is None:
            return self.db.put_op(
                self.TABLE, item, condition_expression="attribute_not_exists(reservation_id)"
            )
        return self.db.put_op(
            self.TABLE,
            item,
            condition_expression="version = :expected",
            expression_attribute_values={":expected": previous.version},
        )

    def _reservation_to_item(self, reservation: Reservation) -> dict[str, Any]:
        """Convert Reservation model to DynamoDB item."""
        return {
            "reservation_id": reservation.reservation_id,
            "resource_id": reservation.resource_id,
            "client_id": reservation.client_id,
            "check_in": reservation.check_in.isoformat(),
            "check_out": reservation.check_out.isoformat(),
            "guests": reservation.guests,
            "status": reservation.status.value,
            "unit_price": reservation.unit_price,
            "base_price": reservation.base_price,
            "discount_amount": reservation.discount_amount,
            "total_price": reservation.total_price,
            "currency": reservation.currency,
            "points_redeemed": reservation.points_redeemed,
            "points_earned": reservation.points_earned,
            "reassigned_from": reservation.reassigned_from,
            "reassigned_to": reservation.reassigned_to,
            "cancellation_reason": reservation.cancellation_reason,
            "version": reservation.version,
            "created_at": reservation.created_at.isoformat(),
            "updated_at": reservation.updated_at.isoformat(),
        }

    def _item_to_reservation(self, item: dict[str, Any]) -> Reservation:
        """Convert DynamoDB item to Reservation model."""
        return Reservation(
            reservation_id=item["reservation_id"],
            resource_id=item["resource_id"],
            client_id=item["client_id"],
            check_in=parse_instant(item["check_in"]),
            check_out=parse_instant(item["check_out"]),
            guests=as_int(item["guests"]),
            status=ReservationStatus(item["status"]),
            unit_price=as_decimal(item["unit_price"]),
            base_price=as_decimal(item["base_price"]),
            discount_amount=as_decimal(item.get("discount_amount")),
            total_price=as_decimal(item["total_price"]),
            currency=item.get("currency", "EUR"),
            points_redeemed=as_int(item.get("points_redeemed")),
            points_earned=as_int(item.get("points_earned")),
            reassigned_from=item.get("reassigned_from"),
            reassigned_to=item.get("reassigned_to"),
            cancellation_reason=item.get("cancellation_reason"),
            version=as_int(item.get("version"), default=1),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
        )
