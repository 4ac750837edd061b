"""Pydantic schemas for quiz endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from ailesson.lessons.schemas import QuestionPublic


class AttemptStarted(BaseModel):
    success: bool = True
    attempt_id: int
    quiz_id: int
    lesson_id: int
    question_count: int
    questions: list[QuestionPublic]


class AnswerSubmit(BaseModel):
    question_id: int
    answer: Any = None


class AnswerResponse(BaseModel):
    success: bool = True
    is_correct: bool
    points_earned: int
    coins_earned: int
    new_balance: int


class AchievementUnlocked(BaseModel):
    slug: str
    name: str
    description: str
    icon: str


class CompletionResponse(BaseModel):
    success: bool = True
    score: int
    correct_answers: int
    total_questions: int
    is_perfect: bool
    bonus_awarded: int
    new_achievements: list[AchievementUnlocked]


class GivenAnswer(BaseModel):
    question_id: int
    answer: Any = None
    is_correct: bool


class ReviewedQuestion(QuestionPublic):
    correct_answer: Any = None


class AttemptDetail(BaseModel):
    id: int
    quiz_id: int
    started_at: datetime
    completed_at: datetime | None = None
    score: int | None = None
    is_perfect: bool
    questions: list[ReviewedQuestion]
    answers: list[GivenAnswer]
