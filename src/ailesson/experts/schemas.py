"""Pydantic schemas for expert endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SurveyRequest(BaseModel):
    learning_style: str = Field(min_length=1)
    preferred_tone: str = Field(min_length=1)
    expertise_level: str = Field(min_length=1)
    interests: list[str] = Field(default_factory=list)
    communication_preference: str = Field(min_length=1)


class ExpertSelectRequest(BaseModel):
    expert_id: int


class ExpertResponse(BaseModel):
    id: int
    name: str
    personality: str
    communication_style: str
    appearance: str
    created_at: datetime


class ExpertListResponse(BaseModel):
    experts: list[ExpertResponse]
    selected_expert_id: int | None = None


class SelectedExpertResponse(BaseModel):
    expert: ExpertResponse | None = None
