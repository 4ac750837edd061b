"""ORM models for accounts, the coin ledger, learning content and gamification.

Column types are portable: the same models run on PostgreSQL in production
and on SQLite in the test suite.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ailesson.db.base import Base, BigIntId, JSONType


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """A platform user: identity, role and wisdom-coin balance."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    wisdom_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    # Not a foreign key: experts.owner_id already points back at users
    selected_expert_id: Mapped[int | None] = mapped_column(BigIntId, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


# ---------------------------------------------------------------------------
# Wisdom-coin ledger
# ---------------------------------------------------------------------------


class LedgerEntry(Base):
    """Immutable signed record explaining one balance change."""

    __tablename__ = "token_transactions"
    __table_args__ = (Index("ix_token_transactions_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Leaderboard & achievements
# ---------------------------------------------------------------------------


class LeaderboardEntry(Base):
    """Per-learner running quiz-performance counters."""

    __tablename__ = "leaderboard_entries"

    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    score: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    quiz_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    correct_answers: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_answers: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_reset_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Achievement(Base):
    """Achievement definition (seeded)."""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    condition: Mapped[str] = mapped_column(String(32), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


class AchievementUnlock(Base):
    """One-time record that an account reached an achievement."""

    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    achievement_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    achievement: Mapped[Achievement] = relationship("Achievement", lazy="joined")


# ---------------------------------------------------------------------------
# Learning content
# ---------------------------------------------------------------------------


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Lesson(Base):
    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    key_points: Mapped[list[str]] = mapped_column(JSONType, default=list)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    # RESTRICT: subjects with lessons cannot be deleted
    subject_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False)
    creator_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    subject: Mapped[Subject] = relationship("Subject", lazy="joined")
    quiz: Mapped[Quiz | None] = relationship("Quiz", back_populates="lesson", uselist=False, passive_deletes=True)


class LessonShare(Base):
    """Lesson made visible to a specific learner by its creator."""

    __tablename__ = "lesson_shares"
    __table_args__ = (UniqueConstraint("lesson_id", "learner_id", name="uq_lesson_share"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    lesson_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False)
    learner_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    shared_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    lesson_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("lessons.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    lesson: Mapped[Lesson] = relationship("Lesson", back_populates="quiz")
    questions: Mapped[list[Question]] = relationship(
        "Question", order_by="Question.order", passive_deletes=True
    )


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    quiz_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answer: Mapped[Any] = mapped_column(JSONType, nullable=False)
    options: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    quiz_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_perfect: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    answers: Mapped[list[UserAnswer]] = relationship("UserAnswer", passive_deletes=True)


class UserAnswer(Base):
    __tablename__ = "user_answers"
    __table_args__ = (UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    attempt_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    answer: Mapped[Any] = mapped_column(JSONType, nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Experts & chat
# ---------------------------------------------------------------------------


class Expert(Base):
    """AI tutor persona generated from a learner survey."""

    __tablename__ = "experts"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    personality: Mapped[str] = mapped_column(Text, nullable=False)
    communication_style: Mapped[str] = mapped_column(Text, nullable=False)
    appearance: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (Index("ix_chat_messages_user_expert", "user_id", "expert_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expert_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("experts.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_from_user: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
