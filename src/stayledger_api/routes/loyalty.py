"""Loyalty ledger endpoints.

Clients manage their own account and redemptions; crediting points and
auditing accounts are staff operations.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from starlette.status import HTTP_201_CREATED

from stayledger.models import (
    LedgerAudit,
    LoyaltyAccount,
    LoyaltyTransaction,
    Money,
    PointsCalculation,
    User,
)
from stayledger.services.loyalty import LoyaltyLedger
from stayledger_api.dependencies import get_caller, get_loyalty_ledger, require_staff
from stayledger_api.models.loyalty import (
    BalanceResponse,
    EarnRequest,
    RedeemRequest,
    TransactionListResponse,
)

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@router.get(
    "/calculate",
    summary="Quote points for an amount",
    response_model=PointsCalculation,
)
def calculate_points(
    amount: Decimal = Query(..., ge=0, description="Amount spent"),
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
) -> PointsCalculation:
    return ledger.calculate_points(amount)


@router.post(
    "/account",
    summary="Open a loyalty account",
    response_model=LoyaltyAccount,
    status_code=HTTP_201_CREATED,
)
def create_account(
    caller: User = Depends(get_caller),
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
) -> LoyaltyAccount:
    return ledger.create_account(caller.user_id)


@router.get("/balance", summary="Get my balance", response_model=BalanceResponse)
def get_balance(
    caller: User = Depends(get_caller),
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
) -> BalanceResponse:
    return BalanceResponse(user_id=caller.user_id, balance=ledger.get_balance(caller.user_id))


@router.get(
    "/transactions",
    summary="List my transactions",
    response_model=TransactionListResponse,
)
def list_transactions(
    limit: int | None = Query(default=None, ge=1, le=500),
    caller: User = Depends(get_caller),
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
) -> TransactionListResponse:
    transactions = ledger.get_transactions(caller.user_id, newest_first=True, limit=limit)
    return TransactionListResponse(transactions=transactions, total_count=len(transactions))


@router.post(
    "/earn",
    summary="Credit points (staff)",
    response_model=LoyaltyTransaction,
    status_code=HTTP_201_CREATED,
)
def earn_points(
    body: EarnRequest,
    staff: User = Depends(require_staff),
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
) -> LoyaltyTransaction:
    return ledger.earn(
        body.user_id,
        Money(amount=body.amount, currency=body.currency),
        body.reason,
        body.reservation_id,
    )


@router.post(
    "/redeem",
    summary="Redeem my points",
    response_model=LoyaltyTransaction,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Points outside redemption limits"},
        402: {"description": "Not enough points"},
    },
)
def redeem_points(
    body: RedeemRequest,
    caller: User = Depends(get_caller),
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
) -> LoyaltyTransaction:
    return ledger.redeem(caller.user_id, body.points, body.reason)


@router.get(
    "/audit/{user_id}",
    summary="Replay and verify an account (staff)",
    response_model=LedgerAudit,
)
def audit_account(
    user_id: str,
    staff: User = Depends(require_staff),
    ledger: LoyaltyLedger = Depends(get_loyalty_ledger),
) -> LedgerAudit:
    return ledger.audit_account(user_id)
