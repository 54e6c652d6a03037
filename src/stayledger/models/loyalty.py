"""Loyalty account, ledger transaction and points calculation models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import LoyaltyTransactionType


class LoyaltyAccount(BaseModel):
    """Points account of one user.

    ``balance`` is a cached fold of the account's transactions. ``version``
    equals the number of transactions appended so far.
    """

    account_id: str = Field(..., description="Unique account ID (LA-XXXXXXXXXXXX)")
    user_id: str = Field(..., description="Owner; one account per user")
    balance: int = Field(default=0, ge=0)
    version: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime


class LoyaltyTransaction(BaseModel):
    """An immutable ledger entry."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str = Field(..., description="Unique transaction ID (LTX-XXXXXXXXXXXX)")
    account_id: str
    sequence: int = Field(..., ge=1, description="Position in the account's log")
    type: LoyaltyTransactionType
    points: int = Field(..., gt=0)
    balance_after: int = Field(..., ge=0)
    reason: str = Field(default="")
    reservation_id: str | None = None
    created_at: datetime

    @property
    def signed_points(self) -> int:
        return self.points if self.type == LoyaltyTransactionType.EARN else -self.points


class LedgerEntry(BaseModel):
    """A transaction about to be appended."""

    model_config = ConfigDict(frozen=True)

    type: LoyaltyTransactionType
    points: int = Field(..., gt=0)
    reason: str = ""
    reservation_id: str | None = None


class PointsCalculation(BaseModel):
    """Quote of the points value of an amount. Nothing is persisted."""

    amount: Decimal
    points: int = Field(..., ge=0, description="Points earned for the amount")
    discount_amount: Decimal = Field(..., ge=0, description="Discount those points are worth")
    max_redeemable_points: int = Field(..., ge=0, description="Per-transaction redemption cap")


class LedgerAudit(BaseModel):
    """Result of replaying an account's transaction log."""

    user_id: str
    account_id: str
    cached_balance: int
    replayed_balance: int
    transaction_count: int
    first_negative_sequence: int | None = None
    sequence_gaps: list[int] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def consistent(self) -> bool:
        return (
            self.cached_balance == self.replayed_balance
            and self.first_negative_sequence is None
            and not self.sequence_gaps
        )
