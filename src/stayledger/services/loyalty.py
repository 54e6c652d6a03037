"""Loyalty ledger: append-only points transactions with a cached balance.

The transaction log is authoritative. Each account item caches the balance
and a ``version`` equal to the number of transactions appended; every append
is a transaction that writes the next sequence number(s) and the new account
state, conditioned on the version that was read. A redemption therefore
cannot be checked against a stale balance.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from stayledger.config import Settings, get_settings
from stayledger.models import (
    BookingError,
    BusinessRuleError,
    ConflictError,
    ErrorCode,
    InsufficientBalanceError,
    LedgerAudit,
    LedgerEntry,
    LoyaltyAccount,
    LoyaltyTransaction,
    LoyaltyTransactionType,
    Money,
    NotFoundError,
    PointsCalculation,
    ValidationError,
)
from stayledger.utils.clock import Clock, SystemClock
from stayledger.utils.ids import generate_id
from stayledger.utils.logging import get_logger, log_ledger_operation

from .dynamodb import as_int

if TYPE_CHECKING:
    from .catalog import UserDirectory
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

CENT = Decimal("0.01")


@dataclass
class LedgerPlan:
    """Appends to one account, not yet committed."""

    operation: str
    user_id: str
    account: LoyaltyAccount
    previous: LoyaltyAccount | None
    transactions: list[LoyaltyTransaction]
    operations: list[dict[str, Any]]

    @property
    def redeemed(self) -> int:
        return sum(
            t.points for t in self.transactions if t.type == LoyaltyTransactionType.REDEEM
        )

    @property
    def earned(self) -> int:
        return sum(t.points for t in self.transactions if t.type == LoyaltyTransactionType.EARN)


class LoyaltyLedger:
    """Service for loyalty accounts and their points transactions."""

    ACCOUNTS_TABLE = "loyalty-accounts"
    TRANSACTIONS_TABLE = "loyalty-transactions"

    def __init__(
        self,
        db: "DynamoDBService",
        users: "UserDirectory",
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize loyalty ledger.

        Args:
            db: DynamoDB service instance
            users: User directory (read-only)
            settings: Earn rate, point value and redemption limits
            clock: Time source; defaults to the UTC wall clock
        """
        self.db = db
        self.users = users
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()

    # =========================================================================
    # Pure calculations
    # =========================================================================

    def require_currency(self, currency: str) -> None:
        """The ledger is single-currency: points only follow ``ledger_currency``.

        Raises:
            ValidationError: ``currency`` is another currency
        """
        if currency != self.settings.ledger_currency:
            raise ValidationError(
                ErrorCode.CURRENCY_MISMATCH,
                details={"currency": currency, "ledger_currency": self.settings.ledger_currency},
            )

    def amount_value(self, amount: Money | Decimal) -> Decimal:
        """Plain amount in the ledger currency. Bare decimals are taken to be in it."""
        if isinstance(amount, Money):
            self.require_currency(amount.currency)
            return amount.amount
        return Decimal(amount)

    def points_for_amount(self, amount: Money | Decimal) -> int:
        """Points earned for an amount, rounded down."""
        value = self.amount_value(amount)
        points = (value * self.settings.points_per_currency_unit).to_integral_value(
            rounding=ROUND_FLOOR
        )
        return max(int(points), 0)

    def points_to_discount(self, points: int) -> Decimal:
        """Monetary discount that a number of points is worth."""
        return (Decimal(points) * self.settings.point_value).quantize(
            CENT, rounding=ROUND_HALF_UP
        )

    def max_redeemable_points(self, balance: int, total: Decimal) -> int:
        """Most points usable against a total: bounded by balance, total and the per-transaction cap."""
        by_total = int((total / self.settings.point_value).to_integral_value(rounding=ROUND_FLOOR))
        return max(min(balance, by_total, self.settings.max_redemption_points), 0)

    def calculate_points(self, amount: Money | Decimal) -> PointsCalculation:
        """Quote the points value of an amount. Nothing is persisted.

        Args:
            amount: Amount spent

        Returns:
            Points the amount would earn, the discount those points are worth
            and the per-transaction redemption cap

        Raises:
            ValidationError: Negative amount or another currency
        """
        value = self.amount_value(amount)
        if value < 0:
            raise ValidationError(ErrorCode.INVALID_AMOUNT, details={"amount": value})
        points = self.points_for_amount(value)
        return PointsCalculation(
            amount=value,
            points=points,
            discount_amount=self.points_to_discount(points),
            max_redeemable_points=self.settings.max_redemption_points,
        )

    def validate_redemption(self, points: int) -> None:
        """Check a redemption against the per-transaction limits.

        Raises:
            ValidationError: Non-positive, below minimum or above maximum
        """
        if points <= 0:
            raise ValidationError(ErrorCode.INVALID_POINTS, details={"points": points})
        if points < self.settings.min_redemption_points:
            raise ValidationError(
                ErrorCode.BELOW_MIN_REDEMPTION,
                details={"points": points, "minimum": self.settings.min_redemption_points},
            )
        if points > self.settings.max_redemption_points:
            raise ValidationError(
                ErrorCode.ABOVE_MAX_REDEMPTION,
                details={"points": points, "maximum": self.settings.max_redemption_points},
            )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_account(self, user_id: str) -> LoyaltyAccount | None:
        item = self.db.get_item(self.ACCOUNTS_TABLE, {"user_id": user_id}, consistent_read=True)
        return self._item_to_account(item) if item else None

    def require_account(self, user_id: str) -> LoyaltyAccount:
        account = self.get_account(user_id)
        if account is None:
            raise NotFoundError(ErrorCode.ACCOUNT_NOT_FOUND, details={"user_id": user_id})
        return account

    def get_balance(self, user_id: str) -> int:
        """Current points balance.

        Raises:
            NotFoundError: The user has no loyalty account
        """
        return self.require_account(user_id).balance

    def get_transactions(
        self,
        user_id: str,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[LoyaltyTransaction]:
        """List an account's transactions in sequence order.

        Args:
            user_id: Account owner
            newest_first: Descending sequence order
            limit: Max transactions to return

        Raises:
            NotFoundError: The user has no loyalty account
        """
        account = self.require_account(user_id)
        return self._load_transactions(account.account_id, newest_first, limit)

    # =========================================================================
    # Commands
    # =========================================================================

    def create_account(self, user_id: str) -> LoyaltyAccount:
        """Open a loyalty account with a zero balance.

        Raises:
            NotFoundError: Unknown user
            BusinessRuleError: The user already has an account
        """
        self._require_user(user_id)
        now = self.clock.now()
        account = LoyaltyAccount(
            account_id=generate_id("LA"),
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        created = self.db.put_item(
            self.ACCOUNTS_TABLE,
            self._account_to_item(account),
            condition_expression="attribute_not_exists(user_id)",
        )
        if not created:
            raise BusinessRuleError(ErrorCode.ACCOUNT_EXISTS, details={"user_id": user_id})

        log_ledger_operation(logger, "create_account", user_id=user_id, balance=0)
        return account

    def earn(
        self,
        user_id: str,
        amount: Money | Decimal,
        reason: str,
        reservation_id: str | None = None,
    ) -> LoyaltyTransaction:
        """Credit points for an amount spent.

        Creates the account on first earn.

        Args:
            user_id: Account owner
            amount: Amount spent; one point per currency unit by default
            reason: Human-readable reason stored on the transaction
            reservation_id: Related reservation, if any

        Returns:
            The appended EARN transaction

        Raises:
            ValidationError: Amount not positive, worth less than one point, or
                not in the ledger currency
            NotFoundError: Unknown user
            ConflictError: Account changed concurrently
        """
        value = self.amount_value(amount)
        if value <= 0:
            raise ValidationError(ErrorCode.INVALID_AMOUNT, details={"amount": value})
        points = self.points_for_amount(value)
        if points < 1:
            raise ValidationError(
                ErrorCode.INVALID_AMOUNT, details={"amount": value, "points": points}
            )

        self._require_user(user_id)
        plan = self.plan_entries(
            user_id,
            [
                LedgerEntry(
                    type=LoyaltyTransactionType.EARN,
                    points=points,
                    reason=reason,
                    reservation_id=reservation_id,
                )
            ],
            create_if_missing=True,
            operation="earn",
        )
        self.commit(plan)
        return plan.transactions[0]

    def redeem(
        self,
        user_id: str,
        points: int,
        reason: str,
        reservation_id: str | None = None,
    ) -> LoyaltyTransaction:
        """Debit points if the balance covers them.

        The balance check and the append commit atomically; of two
        concurrent redemptions that together exceed the balance at most one
        succeeds.

        Returns:
            The appended REDEEM transaction

        Raises:
            ValidationError: Points outside the redemption limits
            NotFoundError: The user has no loyalty account
            InsufficientBalanceError: Balance lower than points
            ConflictError: Account changed concurrently but still covers points
        """
        self.validate_redemption(points)
        plan = self.plan_entries(
            user_id,
            [
                LedgerEntry(
                    type=LoyaltyTransactionType.REDEEM,
                    points=points,
                    reason=reason,
                    reservation_id=reservation_id,
                )
            ],
            create_if_missing=False,
            operation="redeem",
        )
        self.commit(plan)
        return plan.transactions[0]

    # =========================================================================
    # Planning (shared with the booking orchestrator)
    # =========================================================================

    def plan_entries(
        self,
        user_id: str,
        entries: list[LedgerEntry],
        *,
        create_if_missing: bool,
        operation: str,
        clamp_redemptions: bool = False,
    ) -> LedgerPlan:
        """Plan one or more appends to a user's account without committing.

        Entries apply in order; each REDEEM must be covered by the balance
        at that point. With ``clamp_redemptions`` a REDEEM is instead reduced
        to the running balance (and dropped when that is zero), which is how
        earned points are clawed back without driving the balance negative.

        Raises:
            NotFoundError: No account and ``create_if_missing`` is False
            InsufficientBalanceError: A REDEEM exceeds the running balance
        """
        now = self.clock.now()
        previous = self.get_account(user_id)
        if previous is None:
            if not create_if_missing:
                raise NotFoundError(ErrorCode.ACCOUNT_NOT_FOUND, details={"user_id": user_id})
            account = LoyaltyAccount(
                account_id=generate_id("LA"),
                user_id=user_id,
                created_at=now,
                updated_at=now,
            )
        else:
            account = previous

        balance = account.balance
        sequence = account.version
        transactions: list[LoyaltyTransaction] = []
        for entry in entries:
            if (
                clamp_redemptions
                and entry.type == LoyaltyTransactionType.REDEEM
                and entry.points > balance
            ):
                if balance == 0:
                    continue
                entry = entry.model_copy(update={"points": balance})
            if entry.type == LoyaltyTransactionType.REDEEM and entry.points > balance:
                log_ledger_operation(
                    logger,
                    operation,
                    user_id=user_id,
                    points=entry.points,
                    balance=balance,
                    error=ErrorCode.INSUFFICIENT_POINTS.value,
                )
                raise InsufficientBalanceError(
                    details={"user_id": user_id, "balance": balance, "requested": entry.points}
                )
            sign = 1 if entry.type == LoyaltyTransactionType.EARN else -1
            balance += sign * entry.points
            sequence += 1
            transactions.append(
                LoyaltyTransaction(
                    transaction_id=generate_id("LTX"),
                    account_id=account.account_id,
                    sequence=sequence,
                    type=entry.type,
                    points=entry.points,
                    balance_after=balance,
                    reason=entry.reason,
                    reservation_id=entry.reservation_id,
                    created_at=now,
                )
            )

        updated = account.model_copy(
            update={"balance": balance, "version": sequence, "updated_at": now}
        )
        operations = [self._account_write(updated, previous)]
        operations.extend(
            self.db.put_op(
                self.TRANSACTIONS_TABLE,
                self._transaction_to_item(txn, user_id),
                condition_expression="attribute_not_exists(account_id)",
            )
            for txn in transactions
        )
        return LedgerPlan(
            operation=operation,
            user_id=user_id,
            account=updated,
            previous=previous,
            transactions=transactions,
            operations=operations,
        )

    def commit(
        self,
        plan: LedgerPlan,
        extra_operations: list[dict[str, Any]] | None = None,
    ) -> None:
        """Commit a plan, optionally with other writes in the same transaction.

        Raises:
            BookingError: Classified failure when any condition did not hold
        """
        if self.db.transact_write(plan.operations + (extra_operations or [])):
            self.log_committed(plan)
            return

        error = self.classify_failure(plan)
        log_ledger_operation(logger, plan.operation, user_id=plan.user_id, error=error.code.value)
        raise error

    def log_committed(self, plan: LedgerPlan) -> None:
        for txn in plan.transactions:
            log_ledger_operation(
                logger,
                plan.operation,
                user_id=plan.user_id,
                transaction_id=txn.transaction_id,
                points=txn.signed_points,
                balance=txn.balance_after,
                reservation_id=txn.reservation_id,
            )

    def classify_failure(self, plan: LedgerPlan) -> BookingError:
        """Explain why a plan's transaction was cancelled by re-reading the account.

        Returns:
            InsufficientBalanceError if the current balance no longer covers
            the plan's redemptions, otherwise a ConflictError
        """
        latest = self.get_account(plan.user_id)
        balance = latest.balance if latest else 0
        if plan.redeemed and balance + plan.earned < plan.redeemed:
            return InsufficientBalanceError(
                details={"user_id": plan.user_id, "balance": balance, "requested": plan.redeemed}
            )
        return ConflictError(ErrorCode.CONCURRENT_MODIFICATION, details={"user_id": plan.user_id})

    # =========================================================================
    # Audit
    # =========================================================================

    def audit_account(self, user_id: str) -> LedgerAudit:
        """Replay an account's log and compare it with the cached balance.

        Raises:
            NotFoundError: The user has no loyalty account
        """
        account = self.require_account(user_id)
        return self._audit(account)

    def audit_all(self) -> list[LedgerAudit]:
        """Audit every account. Intended for the offline reconciliation job."""
        accounts = [self._item_to_account(item) for item in self.db.scan(self.ACCOUNTS_TABLE)]
        return [self._audit(account) for account in sorted(accounts, key=lambda a: a.user_id)]

    def _audit(self, account: LoyaltyAccount) -> LedgerAudit:
        transactions = self._load_transactions(account.account_id, newest_first=False)

        running = 0
        first_negative: int | None = None
        gaps: list[int] = []
        expected = 1
        for txn in transactions:
            if txn.sequence != expected:
                gaps.extend(range(expected, txn.sequence))
            expected = txn.sequence + 1
            running += txn.signed_points
            if running < 0 and first_negative is None:
                first_negative = txn.sequence
        # The account version counts appends, so missing tail entries show up here
        if account.version >= expected:
            gaps.extend(range(expected, account.version + 1))

        audit = LedgerAudit(
            user_id=account.user_id,
            account_id=account.account_id,
            cached_balance=account.balance,
            replayed_balance=running,
            transaction_count=len(transactions),
            first_negative_sequence=first_negative,
            sequence_gaps=gaps,
        )
        if not audit.consistent:
            logger.error(
                "Ledger drift detected",
                extra={
                    "user_id": account.user_id,
                    "cached_balance": account.balance,
                    "replayed_balance": running,
                },
            )
        return audit

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_user(self, user_id: str) -> None:
        if self.users.get_user(user_id) is None:
            raise NotFoundError(ErrorCode.USER_NOT_FOUND, details={"user_id": user_id})

    def _load_transactions(
        self,
        account_id: str,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[LoyaltyTransaction]:
        items = self.db.query(
            self.TRANSACTIONS_TABLE,
            "account_id = :account_id",
            {":account_id": account_id},
            limit=limit,
            scan_index_forward=not newest_first,
            consistent_read=True,
        )
        return [self._item_to_transaction(item) for item in items]

    def _account_write(
        self, account: LoyaltyAccount, previous: LoyaltyAccount | None
    ) -> dict[str, Any]:
        """Put guarded by the version read, or by non-existence for new accounts."""
        item = self._account_to_item(account)
        if previous is None:
            return self.db.put_op(
                self.ACCOUNTS_TABLE, item, condition_expression="attribute_not_exists(user_id)"
            )
        return self.db.put_op(
            self.ACCOUNTS_TABLE,
            item,
            condition_expression="version = :expected",
            expression_attribute_values={":expected": previous.version},
        )

    def _account_to_item(self, account: LoyaltyAccount) -> dict[str, Any]:
        """Convert LoyaltyAccount model to DynamoDB item."""
        return {
            "user_id": account.user_id,
            "account_id": account.account_id,
            "balance": account.balance,
            "version": account.version,
            "created_at": account.created_at.isoformat(),
            "updated_at": account.updated_at.isoformat(),
        }

    def _item_to_account(self, item: dict[str, Any]) -> LoyaltyAccount:
        """Convert DynamoDB item to LoyaltyAccount model."""
        return LoyaltyAccount(
            account_id=item["account_id"],
            user_id=item["user_id"],
            balance=as_int(item.get("balance")),
            version=as_int(item.get("version")),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
        )

    def _transaction_to_item(self, txn: LoyaltyTransaction, user_id: str) -> dict[str, Any]:
        """Convert LoyaltyTransaction model to DynamoDB item."""
        return {
            "account_id": txn.account_id,
            "sequence": txn.sequence,
            "transaction_id": txn.transaction_id,
            "user_id": user_id,
            "type": txn.type.value,
            "points": txn.points,
            "balance_after": txn.balance_after,
            "reason": txn.reason,
            "reservation_id": txn.reservation_id,
            "created_at": txn.created_at.isoformat(),
        }

    def _item_to_transaction(self, item: dict[str, Any]) -> LoyaltyTransaction:
        """Convert DynamoDB item to LoyaltyTransaction model."""
        return LoyaltyTransaction(
            transaction_id=item["transaction_id"],
            account_id=item["account_id"],
            sequence=as_int(item["sequence"]),
            type=LoyaltyTransactionType(item["type"]),
            points=as_int(item["points"]),
            balance_after=as_int(item["balance_after"]),
            reason=item.get("reason", ""),
            reservation_id=item.get("reservation_id"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
        )
