"""Per-learner progress for instructors: quiz history, achievements and shared lessons."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ailesson.db.models import (
    Account,
    AchievementUnlock,
    LeaderboardEntry,
    Lesson,
    LessonShare,
    Quiz,
    QuizAttempt,
)
from ailesson.economy.ledger_service import get_account
from ailesson.economy.pricing import Role
from ailesson.errors import ValidationFailed


@dataclass
class CompletedQuiz:
    attempt_id: int
    lesson_title: str
    subject_name: str
    score: int
    is_perfect: bool
    completed_at: datetime
    correct_answers: int
    total_questions: int


@dataclass
class EarnedAchievement:
    slug: str
    name: str
    description: str
    icon: str
    earned_at: datetime


@dataclass
class ReceivedLesson:
    lesson_id: int
    lesson_title: str
    subject_name: str
    shared_by: str
    shared_at: datetime


@dataclass
class LearnerProgress:
    learner: Account
    completed: list[CompletedQuiz] = field(default_factory=list)
    achievements: list[EarnedAchievement] = field(default_factory=list)
    received: list[ReceivedLesson] = field(default_factory=list)
    leaderboard: LeaderboardEntry | None = None

    @property
    def total_quizzes(self) -> int:
        return len(self.completed)

    @property
    def perfect_quizzes(self) -> int:
        return sum(1 for c in self.completed if c.is_perfect)

    @property
    def total_answers(self) -> int:
        return sum(c.total_questions for c in self.completed)

    @property
    def correct_answers(self) -> int:
        return sum(c.correct_answers for c in self.completed)

    @property
    def correct_percentage(self) -> int:
        """Share of correct answers, rounded half up to a whole percent."""
        total = self.total_answers
        if not total:
            return 0
        return (self.correct_answers * 100 + total // 2) // total


async def list_learners(db: AsyncSession) -> list[Account]:
    result = await db.execute(
        select(Account).where(Account.role == Role.LEARNER.value).order_by(Account.name, Account.id)
    )
    return list(result.scalars().all())


async def get_learner(db: AsyncSession, account_id: int) -> Account:
    account = await get_account(db, account_id)
    if account.role != Role.LEARNER.value:
        msg = "User is not a learner"
        raise ValidationFailed(msg)
    return account


async def _completed_quizzes(db: AsyncSession, account_id: int) -> list[CompletedQuiz]:
    result = await db.execute(
        select(QuizAttempt, Lesson)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .join(Lesson, Lesson.id == Quiz.lesson_id)
        .where(QuizAttempt.user_id == account_id, QuizAttempt.completed_at.is_not(None))
        .options(selectinload(QuizAttempt.answers))
        .order_by(QuizAttempt.completed_at.desc(), QuizAttempt.id.desc())
    )
    return [
        CompletedQuiz(
            attempt_id=attempt.id,
            lesson_title=lesson.title,
            subject_name=lesson.subject.name,
            score=attempt.score or 0,
            is_perfect=attempt.is_perfect,
            completed_at=attempt.completed_at,
            correct_answers=sum(1 for a in attempt.answers if a.is_correct),
            total_questions=len(attempt.answers),
        )
        for attempt, lesson in result.all()
    ]


async def _earned_achievements(db: AsyncSession, account_id: int) -> list[EarnedAchievement]:
    result = await db.execute(
        select(AchievementUnlock)
        .where(AchievementUnlock.user_id == account_id)
        .order_by(AchievementUnlock.earned_at.desc(), AchievementUnlock.id.desc())
    )
    return [
        EarnedAchievement(
            slug=unlock.achievement.slug,
            name=unlock.achievement.name,
            description=unlock.achievement.description,
            icon=unlock.achievement.icon,
            earned_at=unlock.earned_at,
        )
        for unlock in result.scalars().all()
    ]


async def _received_lessons(db: AsyncSession, account_id: int) -> list[ReceivedLesson]:
    result = await db.execute(
        select(LessonShare, Lesson, Account.name)
        .join(Lesson, Lesson.id == LessonShare.lesson_id)
        .join(Account, Account.id == Lesson.creator_id)
        .where(LessonShare.learner_id == account_id)
        .order_by(LessonShare.shared_at.desc(), LessonShare.id.desc())
    )
    return [
        ReceivedLesson(
            lesson_id=lesson.id,
            lesson_title=lesson.title,
            subject_name=lesson.subject.name,
            shared_by=creator_name,
            shared_at=share.shared_at,
        )
        for share, lesson, creator_name in result.all()
    ]


async def get_learner_progress(db: AsyncSession, account_id: int) -> LearnerProgress:
    """Everything an instructor sees about one learner."""
    learner = await get_learner(db, account_id)
    return LearnerProgress(
        learner=learner,
        completed=await _completed_quizzes(db, learner.id),
        achievements=await _earned_achievements(db, learner.id),
        received=await _received_lessons(db, learner.id),
        leaderboard=await db.get(LeaderboardEntry, learner.id),
    )


def progress_csv(progress: LearnerProgress) -> str:
    """Render a progress report as a sectioned CSV document."""
    learner = progress.learner
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["Learner Progress Report"])
    writer.writerow([])
    writer.writerow(["Learner Information"])
    writer.writerow(["Name", learner.name])
    writer.writerow(["Email", learner.email])
    writer.writerow(["Wisdom Coins", learner.wisdom_coins])
    writer.writerow(["Member Since", learner.created_at.date().isoformat() if learner.created_at else ""])
    writer.writerow([])

    writer.writerow(["Overall Statistics"])
    writer.writerow(["Total Quizzes Completed", progress.total_quizzes])
    writer.writerow(["Perfect Quizzes", progress.perfect_quizzes])
    writer.writerow(["Total Answers", progress.total_answers])
    writer.writerow(["Correct Answers", progress.correct_answers])
    writer.writerow(["Correct Answer Percentage", f"{progress.correct_percentage}%"])
    if progress.leaderboard is not None:
        writer.writerow(["Current Leaderboard Score", progress.leaderboard.score])
    writer.writerow([])

    writer.writerow(["Completed Lessons"])
    writer.writerow(
        ["Lesson Title", "Subject", "Score", "Perfect", "Completed Date", "Correct Answers", "Total Questions"]
    )
    for c in progress.completed:
        writer.writerow([
            c.lesson_title,
            c.subject_name,
            c.score,
            "Yes" if c.is_perfect else "No",
            c.completed_at.date().isoformat(),
            c.correct_answers,
            c.total_questions,
        ])
    writer.writerow([])

    writer.writerow(["Achievements"])
    writer.writerow(["Achievement Name", "Description", "Earned Date"])
    for a in progress.achievements:
        writer.writerow([a.name, a.description, a.earned_at.date().isoformat()])

    return output.getvalue()
