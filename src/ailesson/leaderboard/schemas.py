"""Pydantic schemas for leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class LeaderboardRow(BaseModel):
    rank: int
    user_id: int
    name: str
    score: int
    quiz_count: int
    correct_answers: int
    total_answers: int
    accuracy: float
    last_reset_at: datetime | None = None


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardRow]
    total: int


class LeaderboardResetResponse(BaseModel):
    success: bool = True
    leader_id: int | None = None
    leader_name: str | None = None
    leader_score: int | None = None
    coins_awarded: int = 0
    rows_reset: int
