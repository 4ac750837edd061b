"""
Account registration and authentication.

Registration is a priced action: the account row, its registration grant and
(for learners) the leaderboard row are written in one unit of work.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from ailesson.auth.password import (
    PasswordPolicyError,
    check_needs_rehash,
    hash_password,
    validate_password,
    verify_password,
)
from ailesson.config import get_settings
from ailesson.database import unit_of_work
from ailesson.db.models import Account, LeaderboardEntry
from ailesson.economy.ledger_service import register_grant
from ailesson.economy.pricing import Role
from ailesson.errors import Conflict, Forbidden, ValidationFailed

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_account_by_id(db: AsyncSession, account_id: int) -> Account | None:
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalar_one_or_none()


async def get_account_by_email(db: AsyncSession, email: str) -> Account | None:
    """Fetch an account by email (case-insensitive)."""
    result = await db.execute(select(Account).where(func.lower(Account.email) == email.lower().strip()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_account(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: Role,
    *,
    allow_admin: bool | None = None,
) -> Account:
    """
    Register a new account and pay its role's registration grant.

    Raises:
        ValidationFailed: Missing fields or a password outside policy.
        Forbidden: Administrator self-registration while disabled.
        Conflict: Email already registered.
    """
    email = (email or "").lower().strip()
    name = (name or "").strip()
    if not email or not name or not password:
        msg = "All fields are required"
        raise ValidationFailed(msg)
    try:
        validate_password(password)
    except PasswordPolicyError as e:
        raise ValidationFailed(str(e)) from e

    if allow_admin is None:
        allow_admin = get_settings().allow_admin_registration
    if role is Role.ADMINISTRATOR and not allow_admin:
        msg = "Administrator accounts cannot be self-registered"
        raise Forbidden(msg)

    if await get_account_by_email(db, email) is not None:
        msg = "User with this email already exists"
        raise Conflict(msg)

    now = datetime.now(timezone.utc)
    async with unit_of_work(db):
        account = Account(
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=role.value,
            wisdom_coins=0,
            created_at=now,
            login_count=0,
        )
        db.add(account)
        await db.flush()

        await register_grant(db, account)
        if role is Role.LEARNER:
            db.add(LeaderboardEntry(user_id=account.id, updated_at=now))

    logger.info("account_registered", user_id=account.id, role=role.value, balance=account.wisdom_coins)
    return account


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate(db: AsyncSession, email: str, password: str) -> Account:
    """
    Authenticate with email + password and record the login.

    Raises:
        ValidationFailed: Unknown email or wrong password (same message for both).
    """
    account = await get_account_by_email(db, email)
    if account is None or not verify_password(password, account.password_hash):
        msg = "Invalid email or password"
        raise ValidationFailed(msg)

    async with unit_of_work(db):
        if check_needs_rehash(account.password_hash):
            account.password_hash = hash_password(password)
        account.last_login = datetime.now(timezone.utc)
        account.login_count = (account.login_count or 0) + 1

    logger.info("account_login", user_id=account.id)
    return account
