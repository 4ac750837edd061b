"""Priced-action executor tests: acceptance, rejection and the ledger invariant."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.database import unit_of_work
from ailesson.db.models import LedgerEntry
from ailesson.economy.ledger_service import (
    admin_grant,
    apply_priced_action,
    claim_daily_reward,
    ensure_affordable,
    get_balance,
    ledger_sum,
    list_transactions,
)
from ailesson.economy.pricing import ActionKind, ReasonCode, Role
from ailesson.errors import AlreadyClaimed, InsufficientFunds, ValidationFailed


async def _entry_count(db: AsyncSession, account_id: int) -> int:
    result = await db.execute(select(func.count()).select_from(LedgerEntry).where(LedgerEntry.user_id == account_id))
    return result.scalar_one()


class TestApplyPricedAction:
    """Test apply_priced_action."""

    @pytest.mark.asyncio
    async def test_debit_writes_one_entry(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        async with unit_of_work(db_session):
            entry = await apply_priced_action(db_session, account, ActionKind.CHAT_MESSAGE, description="chat")

        assert entry is not None
        assert entry.amount == -5
        assert entry.reason == ReasonCode.CHAT_COST.value
        assert account.wisdom_coins == 145
        assert await _entry_count(db_session, account.id) == 2
        assert await ledger_sum(db_session, account.id) == account.wisdom_coins

    @pytest.mark.asyncio
    async def test_insufficient_balance_writes_nothing(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        async with unit_of_work(db_session):
            await apply_priced_action(db_session, account, ActionKind.ADMIN_GRANT, amount=-147)
        assert account.wisdom_coins == 3

        with pytest.raises(InsufficientFunds) as exc_info:
            async with unit_of_work(db_session):
                await apply_priced_action(db_session, account, ActionKind.CHAT_MESSAGE)

        assert exc_info.value.balance == 3
        assert exc_info.value.required == 5
        await db_session.refresh(account)
        assert account.wisdom_coins == 3
        assert await _entry_count(db_session, account.id) == 2
        assert await ledger_sum(db_session, account.id) == 3

    @pytest.mark.asyncio
    async def test_exact_balance_is_accepted(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        await admin_grant(db_session, account, -145)
        assert account.wisdom_coins == 5

        async with unit_of_work(db_session):
            await apply_priced_action(db_session, account, ActionKind.CHAT_MESSAGE)
        assert account.wisdom_coins == 0

    @pytest.mark.asyncio
    async def test_administrator_is_never_rejected(self, db_session, make_account):
        admin = await make_account(Role.ADMINISTRATOR)
        await admin_grant(db_session, admin, -999_999)
        assert admin.wisdom_coins == 0

        async with unit_of_work(db_session):
            entry = await apply_priced_action(db_session, admin, ActionKind.CHAT_MESSAGE)
        assert entry is not None
        assert admin.wisdom_coins == -5
        assert await ledger_sum(db_session, admin.id) == -5

    @pytest.mark.asyncio
    async def test_waived_price_writes_nothing(self, db_session, make_account):
        admin = await make_account(Role.ADMINISTRATOR)
        async with unit_of_work(db_session):
            entry = await apply_priced_action(db_session, admin, ActionKind.LESSON_CREATION)
        assert entry is None
        assert admin.wisdom_coins == 999_999
        assert await _entry_count(db_session, admin.id) == 1

    @pytest.mark.asyncio
    async def test_fixed_price_rejects_amount(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        with pytest.raises(ValueError):
            await apply_priced_action(db_session, account, ActionKind.CHAT_MESSAGE, amount=-1)

    @pytest.mark.asyncio
    async def test_admin_grant_requires_amount(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        with pytest.raises(ValueError):
            await apply_priced_action(db_session, account, ActionKind.ADMIN_GRANT)

    @pytest.mark.asyncio
    async def test_zero_grant_rejected(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        with pytest.raises(ValidationFailed):
            await admin_grant(db_session, account, 0)

    @pytest.mark.asyncio
    async def test_grant_without_entry_raises(self, db_session, make_account, monkeypatch):
        account = await make_account(Role.LEARNER)

        async def _no_entry(*args, **kwargs):
            return None

        monkeypatch.setattr("ailesson.economy.ledger_service.apply_priced_action", _no_entry)
        with pytest.raises(RuntimeError, match="no ledger entry"):
            await admin_grant(db_session, account, 10)
        with pytest.raises(RuntimeError, match="no ledger entry"):
            await claim_daily_reward(db_session, account)

    @pytest.mark.asyncio
    async def test_side_effect_failure_rolls_back_charge(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        with pytest.raises(RuntimeError):
            async with unit_of_work(db_session):
                await apply_priced_action(db_session, account, ActionKind.CHAT_MESSAGE)
                raise RuntimeError("side effect failed")

        await db_session.refresh(account)
        assert account.wisdom_coins == 150
        assert await _entry_count(db_session, account.id) == 1


class TestEnsureAffordable:
    @pytest.mark.asyncio
    async def test_precheck_matches_executor(self, db_session, make_account):
        account = await make_account(Role.INSTRUCTOR)
        await admin_grant(db_session, account, -240)
        with pytest.raises(InsufficientFunds):
            ensure_affordable(account, ActionKind.LESSON_CREATION)
        ensure_affordable(account, ActionKind.CHAT_MESSAGE)

    @pytest.mark.asyncio
    async def test_credits_and_waived_prices_always_pass(self, db_session, make_account):
        admin = await make_account(Role.ADMINISTRATOR)
        await admin_grant(db_session, admin, -999_999)
        ensure_affordable(admin, ActionKind.LESSON_CREATION)
        ensure_affordable(admin, ActionKind.DAILY_REWARD)


class TestDailyReward:
    @pytest.mark.asyncio
    async def test_claim_once_per_day(self, db_session, make_account):
        account = await make_account(Role.GUARDIAN)
        entry = await claim_daily_reward(db_session, account)
        assert entry.amount == 20
        assert account.wisdom_coins == 120

        with pytest.raises(AlreadyClaimed):
            await claim_daily_reward(db_session, account)
        await db_session.refresh(account)
        assert account.wisdom_coins == 120

    @pytest.mark.asyncio
    async def test_yesterdays_claim_does_not_block(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        async with unit_of_work(db_session):
            db_session.add(
                LedgerEntry(
                    user_id=account.id,
                    amount=0,
                    reason=ReasonCode.DAILY.value,
                    description="Daily reward",
                    created_at=datetime.now(timezone.utc) - timedelta(days=1),
                )
            )
        entry = await claim_daily_reward(db_session, account)
        assert entry.amount == 20


class TestQueries:
    @pytest.mark.asyncio
    async def test_transactions_newest_first(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        await claim_daily_reward(db_session, account)
        await admin_grant(db_session, account, 7, "bonus")

        entries, total = await list_transactions(db_session, account.id)
        assert total == 3
        assert [e.reason for e in entries] == ["admin_grant", "daily", "initial"]

    @pytest.mark.asyncio
    async def test_pagination(self, db_session, make_account):
        account = await make_account(Role.LEARNER)
        await claim_daily_reward(db_session, account)
        entries, total = await list_transactions(db_session, account.id, page=2, per_page=1)
        assert total == 2
        assert len(entries) == 1
        assert entries[0].reason == "initial"

    @pytest.mark.asyncio
    async def test_get_balance(self, db_session, make_account):
        account = await make_account(Role.INSTRUCTOR)
        assert await get_balance(db_session, account.id) == 250
