"""Pydantic schemas for learner progress endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class LearnerSummary(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime | None = None


class LearnerListResponse(BaseModel):
    learners: list[LearnerSummary]


class LearnerInfo(LearnerSummary):
    wisdom_coins: int


class CompletedQuizOut(BaseModel):
    attempt_id: int
    lesson_title: str
    subject_name: str
    score: int
    is_perfect: bool
    completed_at: datetime
    correct_answers: int
    total_questions: int


class EarnedAchievementOut(BaseModel):
    slug: str
    name: str
    description: str
    icon: str
    earned_at: datetime


class ReceivedLessonOut(BaseModel):
    lesson_id: int
    lesson_title: str
    subject_name: str
    shared_by: str
    shared_at: datetime


class LeaderboardStats(BaseModel):
    score: int
    quiz_count: int
    correct_answers: int
    total_answers: int


class ProgressStats(BaseModel):
    total_quizzes: int
    perfect_quizzes: int
    total_answers: int
    correct_answers: int
    correct_answer_percentage: int
    completed_lessons: list[CompletedQuizOut]
    achievements: list[EarnedAchievementOut]
    leaderboard: LeaderboardStats | None = None
    received_lessons: list[ReceivedLessonOut]


class LearnerProgressResponse(BaseModel):
    success: bool = True
    learner: LearnerInfo
    progress: ProgressStats
