"""Leaderboard aggregate: quiz-completion updates, ranking and the scheduled reset."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.database import unit_of_work
from ailesson.db.models import Account, LeaderboardEntry
from ailesson.economy.ledger_service import pay_leaderboard_win
from ailesson.economy.pricing import Role

logger = structlog.get_logger()

POINTS_PER_CORRECT = 10
POINTS_PER_INCORRECT = -1
PERFECT_QUIZ_BONUS = 50


def quiz_score_delta(correct: int, total: int) -> int:
    """Leaderboard score change for one completed quiz."""
    incorrect = total - correct
    delta = POINTS_PER_CORRECT * correct + POINTS_PER_INCORRECT * incorrect
    if total > 0 and correct == total:
        delta += PERFECT_QUIZ_BONUS
    return delta


async def get_or_create_entry(db: AsyncSession, account_id: int) -> LeaderboardEntry:
    """Get or create the aggregate row for an account."""
    entry = await db.get(LeaderboardEntry, account_id)
    if entry is None:
        entry = LeaderboardEntry(user_id=account_id, updated_at=datetime.now(timezone.utc))
        db.add(entry)
        await db.flush()
    return entry


async def record_quiz_completion(
    db: AsyncSession,
    account_id: int,
    correct: int,
    total: int,
) -> LeaderboardEntry:
    """Fold one completed quiz into the account's running totals.

    Flushes but does not commit; independent of the coin ledger.
    """
    if correct < 0 or total < 0 or correct > total:
        msg = f"Invalid quiz result: {correct}/{total}"
        raise ValueError(msg)

    entry = await get_or_create_entry(db, account_id)
    delta = quiz_score_delta(correct, total)
    entry.quiz_count = LeaderboardEntry.quiz_count + 1
    entry.correct_answers = LeaderboardEntry.correct_answers + correct
    entry.total_answers = LeaderboardEntry.total_answers + total
    entry.score = LeaderboardEntry.score + delta
    entry.updated_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(entry)

    logger.info(
        "leaderboard_updated",
        user_id=account_id,
        correct=correct,
        total=total,
        score_delta=delta,
        score=entry.score,
    )
    return entry


@dataclass
class ResetResult:
    leader_id: int | None
    leader_name: str | None
    leader_score: int | None
    coins_awarded: int
    rows_reset: int


async def reset_leaderboard(db: AsyncSession) -> ResetResult:
    """Pay the top learner, then zero every learner's counters.

    The winner is the highest score, ties going to the lowest account id.
    Payment and zeroing commit together. A second call right after pays the
    (now zero-scored) top row again.
    """
    now = datetime.now(timezone.utc)
    leader_id = leader_name = leader_score = None
    coins_awarded = 0

    async with unit_of_work(db):
        top = await db.execute(
            select(LeaderboardEntry, Account)
            .join(Account, LeaderboardEntry.user_id == Account.id)
            .where(Account.role == Role.LEARNER.value)
            .order_by(LeaderboardEntry.score.desc(), LeaderboardEntry.user_id.asc())
            .limit(1)
        )
        row = top.first()
        if row is not None:
            entry, account = row
            leader_id, leader_name, leader_score = account.id, account.name, entry.score
            ledger_entry = await pay_leaderboard_win(db, account)
            coins_awarded = ledger_entry.amount if ledger_entry else 0

        learner_ids = select(Account.id).where(Account.role == Role.LEARNER.value)
        result = await db.execute(
            update(LeaderboardEntry)
            .where(LeaderboardEntry.user_id.in_(learner_ids))
            .values(
                score=0,
                quiz_count=0,
                correct_answers=0,
                total_answers=0,
                last_reset_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        rows_reset = result.rowcount or 0

    # Drop stale identity-map copies of the zeroed rows
    db.expire_all()

    logger.info(
        "leaderboard_reset",
        leader_id=leader_id,
        leader_score=leader_score,
        coins_awarded=coins_awarded,
        rows_reset=rows_reset,
    )
    return ResetResult(
        leader_id=leader_id,
        leader_name=leader_name,
        leader_score=leader_score,
        coins_awarded=coins_awarded,
        rows_reset=rows_reset,
    )


async def get_leaderboard(db: AsyncSession, limit: int = 100) -> list[dict]:
    """Learner standings ordered by score (ties: lowest account id first)."""
    result = await db.execute(
        select(LeaderboardEntry, Account)
        .join(Account, LeaderboardEntry.user_id == Account.id)
        .where(Account.role == Role.LEARNER.value)
        .order_by(LeaderboardEntry.score.desc(), LeaderboardEntry.user_id.asc())
        .limit(limit)
    )
    return [
        {
            "rank": rank,
            "user_id": account.id,
            "name": account.name,
            "score": entry.score,
            "quiz_count": entry.quiz_count,
            "correct_answers": entry.correct_answers,
            "total_answers": entry.total_answers,
            "accuracy": round(entry.correct_answers / entry.total_answers * 100, 1) if entry.total_answers else 0.0,
            "last_reset_at": entry.last_reset_at,
        }
        for rank, (entry, account) in enumerate(result.all(), start=1)
    ]
