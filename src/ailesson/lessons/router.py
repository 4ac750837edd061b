"""Lesson endpoints: creation, listing, detail and sharing."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.ai.client import TextGenerationService, get_text_generator
from ailesson.auth.dependencies import get_current_user, require_roles
from ailesson.database import get_session
from ailesson.db.models import Account, Lesson
from ailesson.economy.pricing import Role
from ailesson.lessons.schemas import (
    LessonCreate,
    LessonCreatedResponse,
    LessonListResponse,
    LessonResponse,
    LessonShareRequest,
    LessonShareResponse,
    LessonSummary,
    QuestionPublic,
)
from ailesson.lessons.service import (
    create_lesson,
    get_visible_lesson,
    list_created_by,
    list_shared_with,
    list_visible_lessons,
    share_lesson,
)

router = APIRouter(prefix="/api/v1/lessons", tags=["Lessons"])

_authors = require_roles(Role.INSTRUCTOR, Role.ADMINISTRATOR)


def lesson_response(lesson: Lesson) -> LessonResponse:
    quiz = lesson.quiz
    return LessonResponse(
        id=lesson.id,
        title=lesson.title,
        content=lesson.content,
        key_points=lesson.key_points or [],
        difficulty=lesson.difficulty,
        subject_id=lesson.subject_id,
        subject_name=lesson.subject.name,
        creator_id=lesson.creator_id,
        is_flagged=lesson.is_flagged,
        created_at=lesson.created_at,
        quiz_id=quiz.id if quiz else None,
        questions=[
            QuestionPublic(id=q.id, type=q.type, text=q.text, options=q.options, order=q.order)
            for q in (quiz.questions if quiz else [])
        ],
    )


def _summary(lesson: Lesson) -> LessonSummary:
    quiz = lesson.quiz
    return LessonSummary(
        id=lesson.id,
        title=lesson.title,
        difficulty=lesson.difficulty,
        subject_id=lesson.subject_id,
        subject_name=lesson.subject.name,
        creator_id=lesson.creator_id,
        created_at=lesson.created_at,
        quiz_id=quiz.id if quiz else None,
        question_count=len(quiz.questions) if quiz else 0,
    )


@router.post("", response_model=LessonCreatedResponse, status_code=201)
async def create(
    body: LessonCreate,
    account: Account = Depends(_authors),
    db: AsyncSession = Depends(get_session),
    generator: TextGenerationService = Depends(get_text_generator),
) -> LessonCreatedResponse:
    """Generate a lesson with its quiz and charge the caller for it."""
    lesson = await create_lesson(db, account, body.subject_id, body.material, generator)
    return LessonCreatedResponse(lesson=lesson_response(lesson), new_balance=account.wisdom_coins)


@router.get("", response_model=LessonListResponse)
async def lessons(
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonListResponse:
    visible = await list_visible_lessons(db, account)
    received = await list_shared_with(db, account.id) if account.role == Role.LEARNER.value else []
    return LessonListResponse(
        lessons=[_summary(lesson) for lesson in visible],
        received=[_summary(lesson) for lesson in received],
    )


@router.get("/mine", response_model=LessonListResponse)
async def my_lessons(
    account: Account = Depends(_authors),
    db: AsyncSession = Depends(get_session),
) -> LessonListResponse:
    return LessonListResponse(lessons=[_summary(lesson) for lesson in await list_created_by(db, account.id)])


@router.get("/{lesson_id}", response_model=LessonResponse)
async def lesson_detail(
    lesson_id: int,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonResponse:
    return lesson_response(await get_visible_lesson(db, account, lesson_id))


@router.post("/{lesson_id}/share", response_model=LessonShareResponse)
async def share(
    lesson_id: int,
    body: LessonShareRequest,
    account: Account = Depends(_authors),
    db: AsyncSession = Depends(get_session),
) -> LessonShareResponse:
    count = await share_lesson(db, account, lesson_id, body.learner_ids)
    return LessonShareResponse(shared_with=count)
