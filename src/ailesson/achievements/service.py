"""Achievement evaluation and per-account progress."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.achievements.seed import FIRST_QUIZ, PERFECT_QUIZ, QUIZ_COUNT
from ailesson.database import unit_of_work
from ailesson.db.models import Achievement, AchievementUnlock, LeaderboardEntry, QuizAttempt

logger = logging.getLogger(__name__)


async def has_perfect_attempt(db: AsyncSession, account_id: int) -> bool:
    """True if the account has ever completed a quiz with every answer correct."""
    result = await db.execute(
        select(QuizAttempt.id)
        .where(
            QuizAttempt.user_id == account_id,
            QuizAttempt.is_perfect.is_(True),
            QuizAttempt.completed_at.is_not(None),
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _unlocked_ids(db: AsyncSession, account_id: int) -> dict[int, datetime]:
    result = await db.execute(
        select(AchievementUnlock.achievement_id, AchievementUnlock.earned_at).where(
            AchievementUnlock.user_id == account_id
        )
    )
    return {row.achievement_id: row.earned_at for row in result.all()}


def _condition_met(achievement: Achievement, quiz_count: int, perfect: bool) -> bool:
    if achievement.condition == FIRST_QUIZ:
        return quiz_count >= 1
    if achievement.condition == QUIZ_COUNT:
        return quiz_count >= achievement.threshold
    if achievement.condition == PERFECT_QUIZ:
        return perfect
    return False


async def evaluate_achievements(db: AsyncSession, account_id: int) -> list[Achievement]:
    """Unlock every achievement whose condition the account now meets.

    Returns the newly unlocked definitions. Accounts without a leaderboard
    row have nothing to evaluate. Each achievement unlocks at most once; one
    unlocked concurrently elsewhere is skipped without losing the others.
    """
    entry = await db.get(LeaderboardEntry, account_id)
    if entry is None:
        return []

    unlocked = await _unlocked_ids(db, account_id)
    achievements = (
        await db.execute(select(Achievement).order_by(Achievement.sort_order))
    ).scalars().all()
    pending = [a for a in achievements if a.id not in unlocked]
    if not pending:
        return []

    perfect = False
    if any(a.condition == PERFECT_QUIZ for a in pending):
        perfect = await has_perfect_attempt(db, account_id)

    earned = [a for a in pending if _condition_met(a, entry.quiz_count, perfect)]
    if not earned:
        return []

    now = datetime.now(timezone.utc)
    unlocked_now: list[Achievement] = []
    async with unit_of_work(db):
        for achievement in earned:
            try:
                async with db.begin_nested():
                    db.add(AchievementUnlock(user_id=account_id, achievement_id=achievement.id, earned_at=now))
            except IntegrityError:
                # Already unlocked by a concurrent completion
                logger.info("Achievement unlock raced: user=%d slug=%s", account_id, achievement.slug)
                continue
            unlocked_now.append(achievement)

    for achievement in unlocked_now:
        logger.info("Achievement unlocked: user=%d slug=%s", account_id, achievement.slug)
    return unlocked_now


async def list_account_achievements(db: AsyncSession, account_id: int) -> list[dict]:
    """Every achievement with the account's earned flag and progress."""
    entry = await db.get(LeaderboardEntry, account_id)
    quiz_count = entry.quiz_count if entry else 0
    unlocked = await _unlocked_ids(db, account_id)
    achievements = (
        await db.execute(select(Achievement).order_by(Achievement.sort_order))
    ).scalars().all()

    items = []
    for a in achievements:
        earned_at = unlocked.get(a.id)
        if a.condition == PERFECT_QUIZ:
            progress = 1 if earned_at else 0
        else:
            progress = min(quiz_count, a.threshold)
        items.append({
            "slug": a.slug,
            "name": a.name,
            "description": a.description,
            "icon": a.icon,
            "condition": a.condition,
            "threshold": a.threshold,
            "earned": earned_at is not None,
            "earned_at": earned_at,
            "progress": progress,
        })
    return items
