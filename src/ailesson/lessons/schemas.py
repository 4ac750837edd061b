"""Pydantic schemas for lesson endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LessonCreate(BaseModel):
    subject_id: int
    material: str = Field(min_length=1)


class LessonShareRequest(BaseModel):
    learner_ids: list[int] = Field(min_length=1)


class QuestionPublic(BaseModel):
    """A quiz question without its correct answer."""

    id: int
    type: str
    text: str
    options: list[str] | None = None
    order: int


class LessonResponse(BaseModel):
    id: int
    title: str
    content: str
    key_points: list[str]
    difficulty: str
    subject_id: int
    subject_name: str
    creator_id: int
    is_flagged: bool
    created_at: datetime
    quiz_id: int | None = None
    questions: list[QuestionPublic] = []


class LessonSummary(BaseModel):
    id: int
    title: str
    difficulty: str
    subject_id: int
    subject_name: str
    creator_id: int
    created_at: datetime
    quiz_id: int | None = None
    question_count: int = 0


class LessonListResponse(BaseModel):
    lessons: list[LessonSummary]
    received: list[LessonSummary] = []


class LessonCreatedResponse(BaseModel):
    success: bool = True
    lesson: LessonResponse
    new_balance: int


class LessonShareResponse(BaseModel):
    success: bool = True
    shared_with: int
