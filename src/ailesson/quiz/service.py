"""
Quiz attempts: start, answer, complete.

A correct answer pays its coin reward in the same unit of work as the
answer row. Completing an attempt finalises its score first; the
leaderboard update and achievement evaluation follow as separate steps
whose failures are logged and do not undo the completion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ailesson.achievements.service import evaluate_achievements
from ailesson.database import unit_of_work
from ailesson.db.models import Account, Achievement, Question, Quiz, QuizAttempt, UserAnswer
from ailesson.economy.ledger_service import pay_answer_reward
from ailesson.economy.pricing import Role
from ailesson.errors import Conflict, Forbidden, NotFound, ValidationFailed
from ailesson.leaderboard.service import (
    PERFECT_QUIZ_BONUS,
    POINTS_PER_CORRECT,
    POINTS_PER_INCORRECT,
    record_quiz_completion,
)
from ailesson.lessons.service import get_visible_lesson
from ailesson.quiz.grading import check_answer

logger = structlog.get_logger()


def attempt_score(correct: int, total: int) -> int:
    """Attempt score: +10 per correct answer, -1 per incorrect one."""
    return POINTS_PER_CORRECT * correct + POINTS_PER_INCORRECT * (total - correct)


@dataclass
class AnswerResult:
    is_correct: bool
    points: int
    coins_earned: int
    balance: int


@dataclass
class CompletionResult:
    score: int
    correct: int
    total: int
    is_perfect: bool
    bonus_awarded: int
    leaderboard_updated: bool
    new_achievements: list[Achievement] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_quiz(db: AsyncSession, quiz_id: int) -> Quiz:
    result = await db.execute(select(Quiz).where(Quiz.id == quiz_id).options(selectinload(Quiz.questions)))
    quiz = result.scalar_one_or_none()
    if quiz is None:
        msg = "Quiz not found"
        raise NotFound(msg)
    return quiz


async def get_attempt(db: AsyncSession, account: Account, attempt_id: int) -> QuizAttempt:
    """Fetch the caller's own attempt with its answers."""
    result = await db.execute(
        select(QuizAttempt)
        .where(QuizAttempt.id == attempt_id)
        .options(selectinload(QuizAttempt.answers))
        .execution_options(populate_existing=True)
    )
    attempt = result.scalar_one_or_none()
    if attempt is None:
        msg = "Quiz attempt not found"
        raise NotFound(msg)
    if attempt.user_id != account.id:
        msg = "This quiz attempt belongs to another user"
        raise Forbidden(msg)
    return attempt


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


async def start_attempt(db: AsyncSession, account: Account, quiz_id: int) -> tuple[QuizAttempt, Quiz]:
    quiz = await get_quiz(db, quiz_id)
    await get_visible_lesson(db, account, quiz.lesson_id)
    if not quiz.questions:
        msg = "Quiz has no questions"
        raise ValidationFailed(msg)

    async with unit_of_work(db):
        attempt = QuizAttempt(quiz_id=quiz.id, user_id=account.id, started_at=datetime.now(timezone.utc))
        db.add(attempt)

    logger.info("quiz_attempt_started", attempt_id=attempt.id, quiz_id=quiz.id, user_id=account.id)
    return attempt, quiz


async def submit_answer(
    db: AsyncSession,
    account: Account,
    attempt_id: int,
    question_id: int,
    answer: Any,  # noqa: ANN401
) -> AnswerResult:
    """
    Grade and store one answer; a correct answer pays the answer reward.

    Raises:
        NotFound: Unknown attempt, or question not in the attempt's quiz.
        Forbidden: Attempt belongs to someone else.
        ValidationFailed: Attempt already completed.
        Conflict: Question already answered in this attempt.
    """
    attempt = await get_attempt(db, account, attempt_id)
    if attempt.completed_at is not None:
        msg = "Quiz already completed"
        raise ValidationFailed(msg)

    question = await db.get(Question, question_id)
    if question is None or question.quiz_id != attempt.quiz_id:
        msg = "Question not found in this quiz"
        raise NotFound(msg)
    if any(a.question_id == question_id for a in attempt.answers):
        msg = "Question already answered"
        raise Conflict(msg)

    is_correct = check_answer(question.type, question.correct_answer, answer, question.options)

    coins = 0
    async with unit_of_work(db):
        db.add(
            UserAnswer(
                attempt_id=attempt.id,
                question_id=question.id,
                user_id=account.id,
                answer=answer,
                is_correct=is_correct,
                created_at=datetime.now(timezone.utc),
            )
        )
        if is_correct:
            entry = await pay_answer_reward(db, account, question.id)
            coins = entry.amount if entry else 0

    logger.info(
        "quiz_answer_submitted",
        attempt_id=attempt.id,
        question_id=question.id,
        user_id=account.id,
        correct=is_correct,
    )
    return AnswerResult(
        is_correct=is_correct,
        points=POINTS_PER_CORRECT if is_correct else POINTS_PER_INCORRECT,
        coins_earned=coins,
        balance=account.wisdom_coins,
    )


async def complete_attempt(db: AsyncSession, account: Account, attempt_id: int) -> CompletionResult:
    """
    Finalise an attempt once every question is answered.

    Raises:
        NotFound / Forbidden: As for ``get_attempt``.
        ValidationFailed: Already completed, or questions left unanswered.
    """
    attempt = await get_attempt(db, account, attempt_id)
    if attempt.completed_at is not None:
        msg = "Quiz already completed"
        raise ValidationFailed(msg)

    quiz = await get_quiz(db, attempt.quiz_id)
    total = len(quiz.questions)
    answered = len(attempt.answers)
    if answered < total:
        msg = f"Please answer all questions. {answered}/{total} answered."
        raise ValidationFailed(msg, answered=answered, total=total)

    correct = sum(1 for a in attempt.answers if a.is_correct)
    is_perfect = total > 0 and correct == total
    score = attempt_score(correct, total)

    async with unit_of_work(db):
        # Conditional on completed_at so concurrent completions finalise once
        result = await db.execute(
            update(QuizAttempt)
            .where(QuizAttempt.id == attempt.id, QuizAttempt.completed_at.is_(None))
            .values(completed_at=datetime.now(timezone.utc), score=score, is_perfect=is_perfect)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            msg = "Quiz already completed"
            raise ValidationFailed(msg)
    await db.refresh(attempt)

    logger.info(
        "quiz_attempt_completed",
        attempt_id=attempt.id,
        user_id=account.id,
        score=score,
        correct=correct,
        total=total,
        perfect=is_perfect,
    )

    leaderboard_updated = False
    if account.role == Role.LEARNER.value:
        try:
            async with unit_of_work(db):
                await record_quiz_completion(db, account.id, correct, total)
            leaderboard_updated = True
        except Exception:
            logger.exception("leaderboard_update_failed", attempt_id=attempt.id, user_id=account.id)

    new_achievements: list[Achievement] = []
    try:
        new_achievements = await evaluate_achievements(db, account.id)
    except Exception:
        logger.exception("achievement_evaluation_failed", attempt_id=attempt.id, user_id=account.id)

    return CompletionResult(
        score=score,
        correct=correct,
        total=total,
        is_perfect=is_perfect,
        bonus_awarded=PERFECT_QUIZ_BONUS if is_perfect else 0,
        leaderboard_updated=leaderboard_updated,
        new_achievements=new_achievements,
    )
