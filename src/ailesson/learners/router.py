"""Instructor views of learners: roster, progress and CSV export."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.auth.dependencies import require_roles
from ailesson.database import get_session
from ailesson.db.models import Account
from ailesson.economy.pricing import Role
from ailesson.learners.schemas import (
    CompletedQuizOut,
    EarnedAchievementOut,
    LeaderboardStats,
    LearnerInfo,
    LearnerListResponse,
    LearnerProgressResponse,
    LearnerSummary,
    ProgressStats,
    ReceivedLessonOut,
)
from ailesson.learners.service import get_learner_progress, list_learners, progress_csv

router = APIRouter(prefix="/api/v1/learners", tags=["Learners"])

_instructors = require_roles(Role.INSTRUCTOR, Role.ADMINISTRATOR)


@router.get("", response_model=LearnerListResponse)
async def learners(
    _account: Account = Depends(_instructors),
    db: AsyncSession = Depends(get_session),
) -> LearnerListResponse:
    return LearnerListResponse(
        learners=[
            LearnerSummary(id=a.id, name=a.name, email=a.email, created_at=a.created_at)
            for a in await list_learners(db)
        ]
    )


@router.get("/{learner_id}/progress", response_model=LearnerProgressResponse)
async def progress(
    learner_id: int,
    _account: Account = Depends(_instructors),
    db: AsyncSession = Depends(get_session),
) -> LearnerProgressResponse:
    report = await get_learner_progress(db, learner_id)
    learner = report.learner
    board = report.leaderboard
    return LearnerProgressResponse(
        learner=LearnerInfo(
            id=learner.id,
            name=learner.name,
            email=learner.email,
            created_at=learner.created_at,
            wisdom_coins=learner.wisdom_coins,
        ),
        progress=ProgressStats(
            total_quizzes=report.total_quizzes,
            perfect_quizzes=report.perfect_quizzes,
            total_answers=report.total_answers,
            correct_answers=report.correct_answers,
            correct_answer_percentage=report.correct_percentage,
            completed_lessons=[CompletedQuizOut(**asdict(c)) for c in report.completed],
            achievements=[EarnedAchievementOut(**asdict(a)) for a in report.achievements],
            leaderboard=LeaderboardStats(
                score=board.score,
                quiz_count=board.quiz_count,
                correct_answers=board.correct_answers,
                total_answers=board.total_answers,
            )
            if board
            else None,
            received_lessons=[ReceivedLessonOut(**asdict(r)) for r in report.received],
        ),
    )


@router.get("/{learner_id}/export")
async def export(
    learner_id: int,
    _account: Account = Depends(_instructors),
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Download a learner's progress report as CSV."""
    report = await get_learner_progress(db, learner_id)
    safe_name = "-".join(report.learner.name.split()) or f"learner-{report.learner.id}"
    return Response(
        content=progress_csv(report),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="learner-progress-{safe_name}-{date.today().isoformat()}.csv"'
        },
    )
