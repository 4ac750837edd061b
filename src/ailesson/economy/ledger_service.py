"""Wisdom-coin ledger: the priced-action executor and balance queries.

``apply_priced_action`` is the only code path that changes a balance. It
never commits: callers run it inside ``unit_of_work`` together with the
action's other side effects, so the balance change, its ledger entry and the
side effects commit or roll back as one.
"""

from __future__ import annotations

from datetime import datetime, time, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.database import unit_of_work
from ailesson.db.models import Account, LedgerEntry
from ailesson.economy.pricing import ActionKind, ReasonCode, is_exempt_from_balance_checks, price_for
from ailesson.errors import AlreadyClaimed, InsufficientFunds, NotFound, ValidationFailed

logger = structlog.get_logger()


async def get_account(db: AsyncSession, account_id: int) -> Account:
    """Fetch an account or raise NotFound."""
    account = await db.get(Account, account_id)
    if account is None:
        msg = "User not found"
        raise NotFound(msg)
    return account


def ensure_affordable(account: Account, action: ActionKind) -> None:
    """Early balance check for actions with slow preparatory work.

    Lets callers fail before calling out to text generation; the executor
    still re-checks against the fresh balance when the action is applied.
    """
    price = price_for(account.role, action)
    if price.waived or price.delta is None or price.delta >= 0:
        return
    if is_exempt_from_balance_checks(account.role):
        return
    if account.wisdom_coins < -price.delta:
        raise InsufficientFunds(balance=account.wisdom_coins, required=-price.delta)


async def apply_priced_action(
    db: AsyncSession,
    account: Account,
    action: ActionKind,
    *,
    amount: int | None = None,
    description: str = "",
) -> LedgerEntry | None:
    """Check, apply and log one priced action for ``account``.

    1. Reload the current balance and role.
    2. Administrators skip the balance check entirely.
    3. Anyone else with ``balance < cost`` gets ``InsufficientFunds`` and
       nothing is written.
    4. Otherwise the balance moves by the signed delta and exactly one
       ledger entry is added.

    ``amount`` is only accepted for actions whose price is caller-supplied
    (admin grants). Returns the ledger entry, or None for a waived price.
    """
    await db.flush()
    await db.refresh(account)

    price = price_for(account.role, action)
    if price.waived:
        logger.info("priced_action_waived", user_id=account.id, action=action.value, role=account.role)
        return None

    if price.delta is None:
        if amount is None:
            msg = f"{action.value} requires an explicit amount"
            raise ValueError(msg)
        delta = amount
    else:
        if amount is not None:
            msg = f"{action.value} has a fixed price; amount must not be given"
            raise ValueError(msg)
        delta = price.delta

    if delta == 0:
        msg = "Amount must be non-zero"
        raise ValidationFailed(msg)

    balance = account.wisdom_coins
    if delta < 0 and not is_exempt_from_balance_checks(account.role) and balance < -delta:
        logger.info(
            "priced_action_rejected",
            user_id=account.id,
            action=action.value,
            balance=balance,
            required=-delta,
        )
        raise InsufficientFunds(balance=balance, required=-delta)

    # Increment in SQL so concurrent actions don't overwrite each other
    account.wisdom_coins = Account.wisdom_coins + delta
    entry = LedgerEntry(
        user_id=account.id,
        amount=delta,
        reason=price.reason.value,
        description=description,
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    await db.flush()
    await db.refresh(account, ["wisdom_coins"])

    logger.info(
        "coins_credited" if delta > 0 else "coins_debited",
        user_id=account.id,
        action=action.value,
        amount=delta,
        balance=account.wisdom_coins,
    )
    return entry


# ---------------------------------------------------------------------------
# Priced-action helpers (caller commits)
# ---------------------------------------------------------------------------


async def register_grant(db: AsyncSession, account: Account) -> LedgerEntry | None:
    return await apply_priced_action(
        db,
        account,
        ActionKind.REGISTRATION,
        description=f"Initial {account.role} registration bonus",
    )


async def pay_answer_reward(db: AsyncSession, account: Account, question_id: int) -> LedgerEntry | None:
    return await apply_priced_action(
        db,
        account,
        ActionKind.ANSWER_REWARD,
        description=f"Correct answer to question {question_id}",
    )


async def pay_leaderboard_win(db: AsyncSession, account: Account) -> LedgerEntry | None:
    return await apply_priced_action(
        db, account, ActionKind.LEADERBOARD_WIN, description="Daily leaderboard winner"
    )


# ---------------------------------------------------------------------------
# Whole-unit operations
# ---------------------------------------------------------------------------


def _start_of_utc_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


async def claim_daily_reward(db: AsyncSession, account: Account) -> LedgerEntry:
    """Grant the daily reward once per UTC calendar day."""
    now = datetime.now(timezone.utc)
    async with unit_of_work(db):
        claimed = await db.execute(
            select(LedgerEntry.id).where(
                LedgerEntry.user_id == account.id,
                LedgerEntry.reason == ReasonCode.DAILY.value,
                LedgerEntry.created_at >= _start_of_utc_day(now),
            ).limit(1)
        )
        if claimed.scalar_one_or_none() is not None:
            msg = "Daily reward already claimed today"
            raise AlreadyClaimed(msg)
        entry = await apply_priced_action(db, account, ActionKind.DAILY_REWARD, description="Daily reward")
    if entry is None:
        msg = "Daily reward produced no ledger entry"
        raise RuntimeError(msg)
    return entry


async def admin_grant(
    db: AsyncSession,
    account: Account,
    amount: int,
    description: str = "",
) -> LedgerEntry:
    """Grant (or, with a negative amount, withdraw) coins on an administrator's behalf."""
    async with unit_of_work(db):
        entry = await apply_priced_action(
            db,
            account,
            ActionKind.ADMIN_GRANT,
            amount=amount,
            description=description or "Administrator grant",
        )
    if entry is None:
        msg = "Administrator grant produced no ledger entry"
        raise RuntimeError(msg)
    return entry


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_balance(db: AsyncSession, account_id: int) -> int:
    """Current stored balance."""
    result = await db.execute(select(Account.wisdom_coins).where(Account.id == account_id))
    balance = result.scalar_one_or_none()
    if balance is None:
        msg = "User not found"
        raise NotFound(msg)
    return balance


async def list_transactions(
    db: AsyncSession,
    account_id: int,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[LedgerEntry], int]:
    """Ledger entries for an account, newest first, with the total count."""
    total_result = await db.execute(
        select(func.count()).select_from(LedgerEntry).where(LedgerEntry.user_id == account_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(LedgerEntry)
        .where(LedgerEntry.user_id == account_id)
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def ledger_sum(db: AsyncSession, account_id: int) -> int:
    """Sum of all ledger amounts for an account; equals the balance when consistent."""
    result = await db.execute(
        select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(LedgerEntry.user_id == account_id)
    )
    return int(result.scalar_one())
