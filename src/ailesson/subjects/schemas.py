"""Pydantic schemas for subject endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    icon: str | None = Field(None, max_length=16)


class SubjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = None
    icon: str | None = Field(None, max_length=16)


class SubjectResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    icon: str | None = None
    lesson_count: int = 0
    created_at: datetime | None = None


class SubjectListResponse(BaseModel):
    subjects: list[SubjectResponse]
