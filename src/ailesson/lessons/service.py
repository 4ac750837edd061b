"""Lesson creation (a priced action), visibility and sharing."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ailesson.ai.client import TextGenerationService
from ailesson.ai.parsing import TextGenerationError
from ailesson.database import unit_of_work
from ailesson.db.models import Account, Lesson, LessonShare, Question, Quiz
from ailesson.economy.ledger_service import apply_priced_action, ensure_affordable
from ailesson.economy.pricing import ActionKind, Role
from ailesson.errors import Forbidden, NotFound, ServiceUnavailable, ValidationFailed
from ailesson.subjects.service import get_subject

logger = structlog.get_logger()

MAX_MATERIAL_LENGTH = 50_000

# Roles that may read every lesson
_READ_ALL_ROLES = frozenset({Role.LEARNER.value, Role.ADMINISTRATOR.value})


async def create_lesson(
    db: AsyncSession,
    account: Account,
    subject_id: int,
    material: str,
    generator: TextGenerationService,
) -> Lesson:
    """
    Generate a lesson and its quiz from source material and charge for it.

    Generation happens before anything is written, so a generation failure
    costs nothing. The lesson, quiz, questions and the coin charge then
    commit together.

    Raises:
        ValidationFailed: Empty or oversized material.
        NotFound: Unknown subject.
        InsufficientFunds: Balance below the lesson price.
        ServiceUnavailable: Every text provider failed.
    """
    material = (material or "").strip()
    if not material:
        msg = "Material is required"
        raise ValidationFailed(msg)
    if len(material) > MAX_MATERIAL_LENGTH:
        msg = f"Material must be at most {MAX_MATERIAL_LENGTH} characters"
        raise ValidationFailed(msg)

    subject = await get_subject(db, subject_id)
    ensure_affordable(account, ActionKind.LESSON_CREATION)

    try:
        lesson_draft = await generator.generate_lesson(material, subject.name)
        quiz_draft = await generator.generate_quiz(lesson_draft.content, lesson_draft.title)
    except TextGenerationError as e:
        logger.error("lesson_generation_failed", user_id=account.id, subject_id=subject_id, error=str(e))
        msg = "Failed to generate lesson. Please try again."
        raise ServiceUnavailable(msg) from e

    now = datetime.now(timezone.utc)
    async with unit_of_work(db):
        lesson = Lesson(
            title=lesson_draft.title,
            content=lesson_draft.content,
            key_points=lesson_draft.key_points,
            difficulty=lesson_draft.difficulty,
            subject_id=subject.id,
            creator_id=account.id,
            created_at=now,
        )
        db.add(lesson)
        await db.flush()

        quiz = Quiz(lesson_id=lesson.id, created_at=now)
        db.add(quiz)
        await db.flush()
        for question in quiz_draft.questions:
            db.add(
                Question(
                    quiz_id=quiz.id,
                    type=question.type,
                    text=question.text,
                    correct_answer=question.correct_answer,
                    options=question.options,
                    order=question.order,
                )
            )

        await apply_priced_action(
            db, account, ActionKind.LESSON_CREATION, description=f"Lesson creation: {lesson.title}"
        )

    logger.info(
        "lesson_created",
        lesson_id=lesson.id,
        user_id=account.id,
        questions=len(quiz_draft.questions),
        balance=account.wisdom_coins,
    )
    return await get_lesson(db, lesson.id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _with_quiz():
    return selectinload(Lesson.quiz).selectinload(Quiz.questions)


async def get_lesson(db: AsyncSession, lesson_id: int) -> Lesson:
    result = await db.execute(
        select(Lesson).where(Lesson.id == lesson_id).options(_with_quiz()).execution_options(populate_existing=True)
    )
    lesson = result.scalar_one_or_none()
    if lesson is None:
        msg = "Lesson not found"
        raise NotFound(msg)
    return lesson


async def is_shared_with(db: AsyncSession, lesson_id: int, learner_id: int) -> bool:
    result = await db.execute(
        select(LessonShare.id).where(LessonShare.lesson_id == lesson_id, LessonShare.learner_id == learner_id)
    )
    return result.scalar_one_or_none() is not None


async def get_visible_lesson(db: AsyncSession, account: Account, lesson_id: int) -> Lesson:
    """Fetch a lesson the caller may read, or raise NotFound / Forbidden."""
    lesson = await get_lesson(db, lesson_id)
    if account.role in _READ_ALL_ROLES or lesson.creator_id == account.id:
        return lesson
    if await is_shared_with(db, lesson_id, account.id):
        return lesson
    msg = "You do not have access to this lesson"
    raise Forbidden(msg)


async def list_visible_lessons(db: AsyncSession, account: Account) -> list[Lesson]:
    """Lessons the caller may read, newest first."""
    stmt = select(Lesson).options(_with_quiz()).order_by(Lesson.created_at.desc(), Lesson.id.desc())
    if account.role not in _READ_ALL_ROLES:
        shared = select(LessonShare.lesson_id).where(LessonShare.learner_id == account.id)
        stmt = stmt.where(or_(Lesson.creator_id == account.id, Lesson.id.in_(shared)))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_shared_with(db: AsyncSession, learner_id: int) -> list[Lesson]:
    """Lessons explicitly shared with a learner, most recently shared first."""
    result = await db.execute(
        select(Lesson)
        .join(LessonShare, LessonShare.lesson_id == Lesson.id)
        .where(LessonShare.learner_id == learner_id)
        .options(_with_quiz())
        .order_by(LessonShare.shared_at.desc())
    )
    return list(result.scalars().all())


async def list_created_by(db: AsyncSession, account_id: int) -> list[Lesson]:
    result = await db.execute(
        select(Lesson)
        .where(Lesson.creator_id == account_id)
        .options(_with_quiz())
        .order_by(Lesson.created_at.desc(), Lesson.id.desc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------


async def share_lesson(db: AsyncSession, account: Account, lesson_id: int, learner_ids: list[int]) -> int:
    """
    Share a lesson with learners. Already-shared learners are skipped.

    Returns the number of learners the lesson is now shared with from this call
    (new and existing).
    """
    if not learner_ids:
        msg = "At least one learner is required"
        raise ValidationFailed(msg)

    lesson = await get_lesson(db, lesson_id)
    if lesson.creator_id != account.id and account.role != Role.ADMINISTRATOR.value:
        msg = "You can only share your own lessons"
        raise Forbidden(msg)

    unique_ids = list(dict.fromkeys(learner_ids))
    found = await db.execute(
        select(Account.id).where(Account.id.in_(unique_ids), Account.role == Role.LEARNER.value)
    )
    learners = set(found.scalars().all())
    missing = [i for i in unique_ids if i not in learners]
    if missing:
        msg = f"Not learner accounts: {missing}"
        raise ValidationFailed(msg)

    existing = await db.execute(
        select(LessonShare.learner_id).where(
            LessonShare.lesson_id == lesson_id, LessonShare.learner_id.in_(unique_ids)
        )
    )
    already = set(existing.scalars().all())

    now = datetime.now(timezone.utc)
    async with unit_of_work(db):
        for learner_id in unique_ids:
            if learner_id not in already:
                db.add(LessonShare(lesson_id=lesson_id, learner_id=learner_id, shared_at=now))

    logger.info("lesson_shared", lesson_id=lesson_id, user_id=account.id, learners=len(unique_ids))
    return len(unique_ids)
