"""Booking orchestrator: reservation writes combined with ledger writes.

Each operation plans its reservation change and its ledger appends
separately, then commits both in one DynamoDB transaction. Either all of it
is applied or none of it is, so a redemption can never be kept without its
reservation and vice versa.
"""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING

from stayledger.models import (
    BookingError,
    BookingQuote,
    BookingResult,
    BusinessRuleError,
    CancellationResult,
    ErrorCode,
    LedgerEntry,
    LoyaltyTransaction,
    LoyaltyTransactionType,
    Money,
    ReservationStatus,
    ValidationError,
)
from stayledger.utils.intervals import has_ended, stay_units
from stayledger.utils.logging import get_logger, log_booking_operation

from .reservations import apply_discount

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService
    from .loyalty import LedgerPlan, LoyaltyLedger
    from .reservations import ReservationPlan, ReservationService

logger = get_logger(__name__)


class BookingOrchestrator:
    """Service for operations that span reservations and the loyalty ledger."""

    def __init__(
        self,
        db: "DynamoDBService",
        reservations: "ReservationService",
        ledger: "LoyaltyLedger",
    ) -> None:
        """Initialize booking orchestrator.

        Args:
            db: DynamoDB service instance
            reservations: Reservation service
            ledger: Loyalty ledger
        """
        self.db = db
        self.reservations = reservations
        self.ledger = ledger

    def quote(
        self,
        resource_id: str,
        client_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
        points_to_redeem: int = 0,
    ) -> BookingQuote:
        """Price a prospective booking, optionally with points.

        Nothing is reserved; the quote may be stale by the time of booking.

        Raises:
            ValidationError: Invalid stay or redemption, or points offered
                against a price outside the ledger currency
            NotFoundError: Unknown resource
        """
        resource, unit_price, base_price = self.reservations.quote_price(
            resource_id, check_in, check_out, guests
        )

        account = self.ledger.get_account(client_id)
        balance = account.balance if account else None

        discount = Decimal("0.00")
        if points_to_redeem:
            self.ledger.validate_redemption(points_to_redeem)
            self.ledger.require_currency(resource.currency)
            discount = self.ledger.points_to_discount(points_to_redeem)
            self._check_discount(discount, base_price)

        return BookingQuote(
            resource_id=resource_id,
            check_in=check_in,
            check_out=check_out,
            units=stay_units(check_in, check_out),
            pricing_unit=resource.pricing_unit,
            guests=guests,
            unit_price=unit_price,
            base_price=base_price,
            points_to_redeem=points_to_redeem,
            discount_amount=discount,
            total_price=apply_discount(base_price, discount),
            currency=resource.currency,
            available=self.reservations.is_available(resource_id, check_in, check_out),
            balance=balance,
            max_redeemable_points=self.ledger.max_redeemable_points(balance or 0, base_price),
        )

    def book_with_points(
        self,
        resource_id: str,
        client_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
        points_to_redeem: int = 0,
    ) -> BookingResult:
        """Create a reservation, paying part of it with loyalty points.

        The reservation, its calendar entry and the REDEEM transaction commit
        together. With zero points this is a plain reservation.

        Args:
            resource_id: Resource to book
            client_id: Client holding the reservation and the points
            check_in: First night, or start of an hourly booking
            check_out: Departure day or end time (exclusive)
            guests: Number of guests
            points_to_redeem: Points to spend on a discount

        Returns:
            The reservation and the redemption transaction

        Raises:
            ValidationError: Invalid stay, redemption limits, discount above the
                price, or a resource priced outside the ledger currency
            NotFoundError: Unknown client, resource or loyalty account
            InsufficientBalanceError: Balance lower than points_to_redeem
            ConflictError: Dates taken or a concurrent write won
        """
        if points_to_redeem == 0:
            reservation = self.reservations.create_reservation(
                resource_id, client_id, check_in, check_out, guests
            )
            return BookingResult(reservation=reservation)

        self.ledger.validate_redemption(points_to_redeem)
        discount = self.ledger.points_to_discount(points_to_redeem)

        plan = self.reservations.plan_create(
            resource_id,
            client_id,
            check_in,
            check_out,
            guests,
            discount_amount=discount,
            points_redeemed=points_to_redeem,
        )
        self._check_discount(discount, plan.reservation.base_price)
        self.ledger.require_currency(plan.reservation.currency)

        reservation_id = plan.reservation.reservation_id
        ledger_plan = self.ledger.plan_entries(
            client_id,
            [
                LedgerEntry(
                    type=LoyaltyTransactionType.REDEEM,
                    points=points_to_redeem,
                    reason=f"Redeemed for reservation {reservation_id}",
                    reservation_id=reservation_id,
                )
            ],
            create_if_missing=False,
            operation="redeem_for_booking",
        )

        self._commit(plan, ledger_plan)
        return BookingResult(reservation=plan.reservation, redemption=ledger_plan.transactions[0])

    def cancel_booking(self, reservation_id: str, reason: str | None = None) -> CancellationResult:
        """Cancel a reservation and reverse its loyalty effects.

        Redeemed points are refunded as an EARN. Points earned for the stay
        are clawed back as a REDEEM limited to what the balance covers after
        the refund. The reversal commits with the cancellation.

        Raises:
            NotFoundError: Unknown reservation
            AlreadyCancelledError: Already CANCELLED or REASSIGNED
            BusinessRuleError: The stay has started
            ConflictError: The reservation or account changed concurrently
        """
        plan = self.reservations.plan_cancel(reservation_id, reason)
        original = plan.original

        entries = []
        if original.points_redeemed:
            entries.append(
                LedgerEntry(
                    type=LoyaltyTransactionType.EARN,
                    points=original.points_redeemed,
                    reason=f"Refund for cancelled reservation {reservation_id}",
                    reservation_id=reservation_id,
                )
            )
        if original.points_earned:
            entries.append(
                LedgerEntry(
                    type=LoyaltyTransactionType.REDEEM,
                    points=original.points_earned,
                    reason=f"Stay points reversed for cancelled reservation {reservation_id}",
                    reservation_id=reservation_id,
                )
            )

        if not entries:
            self.reservations.commit(plan)
            return CancellationResult(reservation=plan.reservation)

        ledger_plan = self.ledger.plan_entries(
            original.client_id,
            entries,
            create_if_missing=True,
            operation="cancel_booking",
            clamp_redemptions=True,
        )
        self._commit(plan, ledger_plan)

        refund = self._first(ledger_plan.transactions, LoyaltyTransactionType.EARN)
        clawback = self._first(ledger_plan.transactions, LoyaltyTransactionType.REDEEM)
        return CancellationResult(reservation=plan.reservation, refund=refund, clawback=clawback)

    def award_stay_points(self, reservation_id: str) -> LoyaltyTransaction:
        """Credit points for a completed stay, at most once per reservation.

        Points are earned on the reservation's total price. The reservation
        records ``points_earned`` in the same transaction.

        Raises:
            NotFoundError: Unknown reservation
            BusinessRuleError: Not CONFIRMED, not yet checked out, or already awarded
            ValidationError: The total price earns no points or is not in the
                ledger currency
            ConflictError: The reservation or account changed concurrently
        """
        reservation = self.reservations.get_reservation(reservation_id)
        if reservation.status != ReservationStatus.CONFIRMED:
            raise BusinessRuleError(
                ErrorCode.INVALID_TRANSITION,
                details={"reservation_id": reservation_id, "status": reservation.status.value},
            )
        if reservation.points_earned:
            raise BusinessRuleError(
                ErrorCode.POINTS_ALREADY_AWARDED, details={"reservation_id": reservation_id}
            )
        now = self.reservations.clock.now()
        if not has_ended(reservation.check_out, now):
            raise BusinessRuleError(
                ErrorCode.STAY_NOT_COMPLETED,
                details={
                    "reservation_id": reservation_id,
                    "check_out": reservation.check_out.isoformat(),
                },
            )

        points = self.ledger.points_for_amount(
            Money(amount=reservation.total_price, currency=reservation.currency)
        )
        if points < 1:
            raise ValidationError(
                ErrorCode.INVALID_AMOUNT,
                details={"reservation_id": reservation_id, "amount": reservation.total_price},
            )

        ledger_plan = self.ledger.plan_entries(
            reservation.client_id,
            [
                LedgerEntry(
                    type=LoyaltyTransactionType.EARN,
                    points=points,
                    reason=f"Stay points for reservation {reservation_id}",
                    reservation_id=reservation_id,
                )
            ],
            create_if_missing=True,
            operation="award_stay_points",
        )
        mark_awarded = self.db.update_op(
            self.reservations.TABLE,
            {"reservation_id": reservation_id},
            "SET points_earned = :points, version = :next, updated_at = :now",
            {
                ":points": points,
                ":next": reservation.version + 1,
                ":now": now.isoformat(),
                ":expected": reservation.version,
            },
            condition_expression="version = :expected",
        )

        if self.db.transact_write(ledger_plan.operations + [mark_awarded]):
            self.ledger.log_committed(ledger_plan)
            return ledger_plan.transactions[0]

        latest = self.reservations.find_reservation(reservation_id)
        if latest is not None and latest.points_earned:
            raise BusinessRuleError(
                ErrorCode.POINTS_ALREADY_AWARDED, details={"reservation_id": reservation_id}
            )
        raise self.ledger.classify_failure(ledger_plan)

    def _commit(self, plan: "ReservationPlan", ledger_plan: "LedgerPlan") -> None:
        if self.db.transact_write(plan.operations + ledger_plan.operations):
            log_booking_operation(
                logger,
                plan.operation,
                reservation_id=plan.reservation.reservation_id,
                resource_id=plan.reservation.resource_id,
                status=plan.reservation.status.value,
                balance=ledger_plan.account.balance,
            )
            self.ledger.log_committed(ledger_plan)
            return

        error: BookingError = self.reservations.classify_failure(plan)
        if error.code == ErrorCode.CONCURRENT_MODIFICATION:
            error = self.ledger.classify_failure(ledger_plan)
        log_booking_operation(
            logger,
            plan.operation,
            reservation_id=plan.reservation.reservation_id,
            resource_id=plan.reservation.resource_id,
            error=error.code.value,
        )
        raise error

    def _check_discount(self, discount: Decimal, base_price: Decimal) -> None:
        if discount > base_price:
            raise ValidationError(
                ErrorCode.DISCOUNT_EXCEEDS_TOTAL,
                details={"discount": discount, "total": base_price},
            )

    @staticmethod
    def _first(
        transactions: list[LoyaltyTransaction], kind: LoyaltyTransactionType
    ) -> LoyaltyTransaction | None:
        return next((t for t in transactions if t.type == kind), None)
