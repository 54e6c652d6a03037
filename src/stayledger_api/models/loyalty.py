"""API models for loyalty endpoints."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from stayledger.models import LoyaltyTransaction


class EarnRequest(BaseModel):
    """Staff request to credit points for an amount spent."""

    model_config = ConfigDict(
        strict=False,
        json_schema_extra={
            "examples": [
                {
                    "user_id": "user-123",
                    "amount": "250.00",
                    "currency": "EUR",
                    "reason": "Restaurant spend",
                }
            ]
        },
    )

    user_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, description="Amount spent")
    currency: str = Field(default="EUR", pattern=r"^[A-Z]{3}$")
    reason: str = Field(..., min_length=1, max_length=200)
    reservation_id: str | None = None


class RedeemRequest(BaseModel):
    """Request to spend the caller's points."""

    model_config = ConfigDict(strict=False)

    points: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=200)


class BalanceResponse(BaseModel):
    user_id: str
    balance: int


class TransactionListResponse(BaseModel):
    """Ledger transactions, newest first."""

    transactions: list[LoyaltyTransaction]
    total_count: int = Field(..., ge=0)
