"""Wisdom-coin endpoints: balance, history and the daily reward."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.auth.dependencies import get_current_user
from ailesson.database import get_session
from ailesson.db.models import Account
from ailesson.economy.ledger_service import claim_daily_reward, list_transactions
from ailesson.economy.pricing import is_exempt_from_balance_checks
from ailesson.economy.schemas import (
    BalanceResponse,
    PricedActionResponse,
    TransactionEntry,
    TransactionHistoryResponse,
)

router = APIRouter(prefix="/api/v1/economy", tags=["Wisdom coins"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(account: Account = Depends(get_current_user)) -> BalanceResponse:
    return BalanceResponse(
        wisdom_coins=account.wisdom_coins,
        exempt_from_balance_checks=is_exempt_from_balance_checks(account.role),
    )


@router.get("/transactions", response_model=TransactionHistoryResponse)
async def get_transactions(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TransactionHistoryResponse:
    """Ledger history for the caller (paginated, newest first)."""
    entries, total = await list_transactions(db, account.id, page, per_page)
    return TransactionHistoryResponse(
        entries=[
            TransactionEntry(
                id=e.id,
                amount=e.amount,
                reason=e.reason,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/daily-reward", response_model=PricedActionResponse)
async def daily_reward(
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PricedActionResponse:
    entry = await claim_daily_reward(db, account)
    return PricedActionResponse(amount=entry.amount, new_balance=account.wisdom_coins)
