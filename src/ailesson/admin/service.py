"""Administrator account management, content moderation and expert administration.

A balance edit is recorded as one admin grant for the difference, so the
ledger still sums to the stored balance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from ailesson.auth.password import PasswordPolicyError, hash_password, validate_password
from ailesson.auth.service import get_account_by_email
from ailesson.database import unit_of_work
from ailesson.db.models import Account, ChatMessage, Expert, LeaderboardEntry, Lesson, Quiz
from ailesson.economy.ledger_service import apply_priced_action, get_account
from ailesson.economy.pricing import ActionKind, Role, is_exempt_from_balance_checks
from ailesson.errors import Conflict, NotFound, ValidationFailed
from ailesson.experts.service import get_expert

logger = structlog.get_logger()


async def list_accounts(
    db: AsyncSession,
    role: Role | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[Account], int]:
    stmt = select(Account)
    count_stmt = select(func.count()).select_from(Account)
    if role is not None:
        stmt = stmt.where(Account.role == role.value)
        count_stmt = count_stmt.where(Account.role == role.value)
    total = (await db.execute(count_stmt)).scalar_one()
    result = await db.execute(
        stmt.order_by(Account.created_at.desc(), Account.id.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return list(result.scalars().all()), total


async def update_account(
    db: AsyncSession,
    admin: Account,
    account_id: int,
    *,
    name: str | None = None,
    email: str | None = None,
    role: Role | None = None,
    password: str | None = None,
    wisdom_coins: int | None = None,
) -> Account:
    """Apply an administrator's edits to an account in one unit of work."""
    account = await get_account(db, account_id)

    if email is not None:
        email = email.lower().strip()
        other = await get_account_by_email(db, email)
        if other is not None and other.id != account.id:
            msg = "Email is already in use"
            raise Conflict(msg)
    if name is not None and not name.strip():
        msg = "Name cannot be empty"
        raise ValidationFailed(msg)
    if password is not None:
        try:
            validate_password(password)
        except PasswordPolicyError as e:
            raise ValidationFailed(str(e)) from e
    if wisdom_coins is not None and wisdom_coins < 0:
        msg = "Balance cannot be negative"
        raise ValidationFailed(msg)
    target_role = role or Role(account.role)
    target_balance = wisdom_coins if wisdom_coins is not None else account.wisdom_coins
    if not is_exempt_from_balance_checks(target_role) and target_balance < 0:
        msg = f"Balance is {target_balance}; a {target_role.value} account cannot have a negative balance"
        raise ValidationFailed(msg)

    async with unit_of_work(db):
        if name is not None:
            account.name = name.strip()
        if email is not None:
            account.email = email
        if password is not None:
            account.password_hash = hash_password(password)
        if role is not None and role.value != account.role:
            account.role = role.value
            if role is Role.LEARNER and await db.get(LeaderboardEntry, account.id) is None:
                db.add(LeaderboardEntry(user_id=account.id, updated_at=datetime.now(timezone.utc)))
        if wisdom_coins is not None:
            await db.flush()
            await db.refresh(account, ["wisdom_coins"])
            diff = wisdom_coins - account.wisdom_coins
            if diff:
                await apply_priced_action(
                    db,
                    account,
                    ActionKind.ADMIN_GRANT,
                    amount=diff,
                    description=f"Balance set to {wisdom_coins} by administrator {admin.id}",
                )

    logger.info("account_updated_by_admin", user_id=account.id, admin_id=admin.id)
    return account


async def delete_account(db: AsyncSession, admin: Account, account_id: int) -> None:
    """Delete an account and everything it owns."""
    if account_id == admin.id:
        msg = "Cannot delete your own account"
        raise ValidationFailed(msg)
    account = await get_account(db, account_id)
    async with unit_of_work(db):
        await db.delete(account)
    logger.info("account_deleted_by_admin", user_id=account_id, admin_id=admin.id)


async def set_lesson_flag(db: AsyncSession, lesson_id: int, flagged: bool) -> Lesson:
    """Mark or clear a lesson as flagged for review."""
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        msg = "Lesson not found"
        raise NotFound(msg)
    async with unit_of_work(db):
        lesson.is_flagged = flagged
    logger.info("lesson_flag_set", lesson_id=lesson_id, flagged=flagged)
    return lesson


# ---------------------------------------------------------------------------
# Content moderation
# ---------------------------------------------------------------------------


async def list_all_lessons(db: AsyncSession) -> list[tuple[Lesson, Account]]:
    """Every lesson with its creator, newest first."""
    result = await db.execute(
        select(Lesson, Account)
        .join(Account, Account.id == Lesson.creator_id)
        .options(selectinload(Lesson.quiz).selectinload(Quiz.questions))
        .order_by(Lesson.created_at.desc(), Lesson.id.desc())
    )
    return [(row.Lesson, row.Account) for row in result.all()]


async def delete_lesson(db: AsyncSession, admin: Account, lesson_id: int) -> None:
    """Delete a lesson with its quiz, questions, attempts and shares."""
    lesson = await db.get(Lesson, lesson_id)
    if lesson is None:
        msg = "Lesson not found"
        raise NotFound(msg)
    async with unit_of_work(db):
        await db.delete(lesson)
    logger.info("lesson_deleted_by_admin", lesson_id=lesson_id, admin_id=admin.id)


@dataclass
class Conversation:
    user_id: int
    user_name: str
    user_email: str
    expert_name: str | None
    message_count: int
    last_message_at: datetime


async def list_conversations(db: AsyncSession) -> list[Conversation]:
    """One row per account that has chatted, most recently active first."""
    stats = (
        select(
            ChatMessage.user_id,
            func.count(ChatMessage.id).label("message_count"),
            func.max(ChatMessage.created_at).label("last_message_at"),
        )
        .group_by(ChatMessage.user_id)
        .subquery()
    )
    result = await db.execute(
        select(Account, Expert.name, stats.c.message_count, stats.c.last_message_at)
        .join(stats, stats.c.user_id == Account.id)
        .outerjoin(Expert, Expert.id == Account.selected_expert_id)
        .order_by(stats.c.last_message_at.desc(), Account.id)
    )
    return [
        Conversation(
            user_id=account.id,
            user_name=account.name,
            user_email=account.email,
            expert_name=expert_name,
            message_count=count,
            last_message_at=last,
        )
        for account, expert_name, count, last in result.all()
    ]


async def list_account_messages(db: AsyncSession, account_id: int) -> list[ChatMessage]:
    """Every chat message of an account across all experts, oldest first."""
    await get_account(db, account_id)
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.user_id == account_id)
        .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
    )
    return list(result.scalars().all())


async def delete_chat_message(db: AsyncSession, admin: Account, message_id: int) -> None:
    message = await db.get(ChatMessage, message_id)
    if message is None:
        msg = "Message not found"
        raise NotFound(msg)
    async with unit_of_work(db):
        await db.delete(message)
    logger.info("chat_message_deleted_by_admin", message_id=message_id, admin_id=admin.id)


# ---------------------------------------------------------------------------
# Expert administration
# ---------------------------------------------------------------------------


async def count_expert_users(db: AsyncSession, expert_id: int) -> int:
    """Number of accounts that have this expert selected."""
    result = await db.execute(
        select(func.count()).select_from(Account).where(Account.selected_expert_id == expert_id)
    )
    return result.scalar_one()


async def list_all_experts(db: AsyncSession) -> list[tuple[Expert, Account, int]]:
    """Every expert with its owner and how many accounts use it, newest first."""
    users = (
        select(Account.selected_expert_id.label("expert_id"), func.count(Account.id).label("users"))
        .where(Account.selected_expert_id.is_not(None))
        .group_by(Account.selected_expert_id)
        .subquery()
    )
    owner = aliased(Account)
    result = await db.execute(
        select(Expert, owner, func.coalesce(users.c.users, 0))
        .join(owner, owner.id == Expert.owner_id)
        .outerjoin(users, users.c.expert_id == Expert.id)
        .order_by(Expert.created_at.desc(), Expert.id.desc())
    )
    return [(expert, account, count) for expert, account, count in result.all()]


async def create_expert(
    db: AsyncSession,
    admin: Account,
    *,
    owner_id: int,
    name: str,
    personality: str,
    communication_style: str,
    appearance: str,
) -> Expert:
    await get_account(db, owner_id)
    async with unit_of_work(db):
        expert = Expert(
            owner_id=owner_id,
            name=name.strip(),
            personality=personality,
            communication_style=communication_style,
            appearance=appearance,
            created_at=datetime.now(timezone.utc),
        )
        db.add(expert)
    logger.info("expert_created_by_admin", expert_id=expert.id, owner_id=owner_id, admin_id=admin.id)
    return expert


async def update_expert(db: AsyncSession, admin: Account, expert_id: int, **changes: object) -> Expert:
    """Apply partial edits; a new owner must be an existing account."""
    expert = await get_expert(db, expert_id)
    owner_id = changes.get("owner_id")
    if owner_id is not None:
        await get_account(db, int(owner_id))
    async with unit_of_work(db):
        for field, value in changes.items():
            if value is not None:
                setattr(expert, field, value)
    logger.info("expert_updated_by_admin", expert_id=expert.id, admin_id=admin.id, fields=sorted(changes))
    return expert


async def delete_expert(db: AsyncSession, admin: Account, expert_id: int) -> None:
    """Delete an expert and its chat history; refused while any account has it selected."""
    expert = await get_expert(db, expert_id)
    in_use = await count_expert_users(db, expert_id)
    if in_use:
        msg = f"Cannot delete expert: {in_use} users are currently using this expert"
        raise ValidationFailed(msg, users=in_use)
    async with unit_of_work(db):
        await db.delete(expert)
    logger.info("expert_deleted_by_admin", expert_id=expert_id, admin_id=admin.id)


async def assign_expert(db: AsyncSession, admin: Account, account_id: int, expert_id: int) -> tuple[Account, Expert]:
    """Make ``expert_id`` the selected tutor of any account."""
    expert = await get_expert(db, expert_id)
    account = await get_account(db, account_id)
    async with unit_of_work(db):
        account.selected_expert_id = expert.id
    logger.info("expert_assigned_by_admin", expert_id=expert.id, user_id=account.id, admin_id=admin.id)
    return account, expert
