"""Quiz attempt endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.auth.dependencies import get_current_user
from ailesson.database import get_session
from ailesson.db.models import Account
from ailesson.lessons.schemas import QuestionPublic
from ailesson.quiz.schemas import (
    AchievementUnlocked,
    AnswerResponse,
    AnswerSubmit,
    AttemptDetail,
    AttemptStarted,
    CompletionResponse,
    GivenAnswer,
    ReviewedQuestion,
)
from ailesson.quiz.service import complete_attempt, get_attempt, get_quiz, start_attempt, submit_answer

router = APIRouter(prefix="/api/v1", tags=["Quizzes"])


@router.post("/quizzes/{quiz_id}/attempts", response_model=AttemptStarted, status_code=201)
async def start(
    quiz_id: int,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AttemptStarted:
    attempt, quiz = await start_attempt(db, account, quiz_id)
    return AttemptStarted(
        attempt_id=attempt.id,
        quiz_id=quiz.id,
        lesson_id=quiz.lesson_id,
        question_count=len(quiz.questions),
        questions=[
            QuestionPublic(id=q.id, type=q.type, text=q.text, options=q.options, order=q.order)
            for q in quiz.questions
        ],
    )


@router.post("/attempts/{attempt_id}/answers", response_model=AnswerResponse)
async def answer(
    attempt_id: int,
    body: AnswerSubmit,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AnswerResponse:
    """Grade one answer. Correct answers earn wisdom coins immediately."""
    result = await submit_answer(db, account, attempt_id, body.question_id, body.answer)
    return AnswerResponse(
        is_correct=result.is_correct,
        points_earned=result.points,
        coins_earned=result.coins_earned,
        new_balance=result.balance,
    )


@router.post("/attempts/{attempt_id}/complete", response_model=CompletionResponse)
async def complete(
    attempt_id: int,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompletionResponse:
    result = await complete_attempt(db, account, attempt_id)
    return CompletionResponse(
        score=result.score,
        correct_answers=result.correct,
        total_questions=result.total,
        is_perfect=result.is_perfect,
        bonus_awarded=result.bonus_awarded,
        new_achievements=[
            AchievementUnlocked(slug=a.slug, name=a.name, description=a.description, icon=a.icon)
            for a in result.new_achievements
        ],
    )


@router.get("/attempts/{attempt_id}", response_model=AttemptDetail)
async def attempt_detail(
    attempt_id: int,
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AttemptDetail:
    """Attempt state; correct answers are revealed only after completion."""
    attempt = await get_attempt(db, account, attempt_id)
    quiz = await get_quiz(db, attempt.quiz_id)
    reveal = attempt.completed_at is not None
    return AttemptDetail(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        score=attempt.score,
        is_perfect=attempt.is_perfect,
        questions=[
            ReviewedQuestion(
                id=q.id,
                type=q.type,
                text=q.text,
                options=q.options,
                order=q.order,
                correct_answer=q.correct_answer if reveal else None,
            )
            for q in quiz.questions
        ],
        answers=[GivenAnswer(question_id=a.question_id, answer=a.answer, is_correct=a.is_correct) for a in attempt.answers],
    )
