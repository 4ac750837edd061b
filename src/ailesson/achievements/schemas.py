"""Pydantic schemas for achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AchievementProgress(BaseModel):
    slug: str
    name: str
    description: str
    icon: str
    condition: str
    threshold: int
    earned: bool
    earned_at: datetime | None = None
    progress: int


class AchievementsResponse(BaseModel):
    achievements: list[AchievementProgress]
    earned: int
    total: int
