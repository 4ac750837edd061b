"""Achievement seeding, unlocking and progress."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from ailesson.achievements.seed import ACHIEVEMENT_SEED_DATA, seed_achievements
from ailesson.achievements.service import evaluate_achievements, list_account_achievements
from ailesson.database import unit_of_work
from ailesson.db.models import Achievement, AchievementUnlock, LeaderboardEntry, Lesson, Quiz, QuizAttempt, Subject
from ailesson.economy.pricing import Role


async def _set_quiz_count(db, account_id, count):
    async with unit_of_work(db):
        entry = await db.get(LeaderboardEntry, account_id)
        entry.quiz_count = count


async def _add_perfect_attempt(db, account):
    now = datetime.now(timezone.utc)
    async with unit_of_work(db):
        subject = Subject(name=f"Subject {account.id}")
        db.add(subject)
        await db.flush()
        lesson = Lesson(
            title="T", content="C", key_points=[], difficulty="BEGINNER",
            subject_id=subject.id, creator_id=account.id, created_at=now,
        )
        db.add(lesson)
        await db.flush()
        quiz = Quiz(lesson_id=lesson.id, created_at=now)
        db.add(quiz)
        await db.flush()
        db.add(QuizAttempt(quiz_id=quiz.id, user_id=account.id, started_at=now, completed_at=now, score=100, is_perfect=True))


class TestSeed:
    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db_session):
        # Already seeded once by the fixture
        assert await seed_achievements(db_session) == len(ACHIEVEMENT_SEED_DATA)
        count = (await db_session.execute(select(func.count()).select_from(Achievement))).scalar_one()
        assert count == len(ACHIEVEMENT_SEED_DATA)


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_first_quiz_unlocks_once(self, db_session, make_account):
        learner = await make_account(Role.LEARNER)
        await _set_quiz_count(db_session, learner.id, 1)

        unlocked = await evaluate_achievements(db_session, learner.id)
        assert [a.slug for a in unlocked] == ["first_quiz"]
        assert await evaluate_achievements(db_session, learner.id) == []

        count = (
            await db_session.execute(
                select(func.count()).select_from(AchievementUnlock).where(AchievementUnlock.user_id == learner.id)
            )
        ).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_count_thresholds(self, db_session, make_account):
        learner = await make_account(Role.LEARNER)
        await _set_quiz_count(db_session, learner.id, 50)
        unlocked = await evaluate_achievements(db_session, learner.id)
        assert {a.slug for a in unlocked} == {"first_quiz", "ten_quizzes", "fifty_quizzes"}

    @pytest.mark.asyncio
    async def test_perfect_quiz(self, db_session, make_account):
        learner = await make_account(Role.LEARNER)
        await _set_quiz_count(db_session, learner.id, 1)
        await _add_perfect_attempt(db_session, learner)

        unlocked = await evaluate_achievements(db_session, learner.id)
        assert {a.slug for a in unlocked} == {"first_quiz", "perfect_quiz"}

    @pytest.mark.asyncio
    async def test_account_without_leaderboard_row(self, db_session, make_account):
        guardian = await make_account(Role.GUARDIAN)
        assert await evaluate_achievements(db_session, guardian.id) == []

    @pytest.mark.asyncio
    async def test_raced_unlock_keeps_the_others(self, db_session, make_account, monkeypatch):
        learner = await make_account(Role.LEARNER)
        await _set_quiz_count(db_session, learner.id, 10)
        first = (await db_session.execute(select(Achievement).where(Achievement.slug == "first_quiz"))).scalar_one()
        async with unit_of_work(db_session):
            db_session.add(
                AchievementUnlock(user_id=learner.id, achievement_id=first.id, earned_at=datetime.now(timezone.utc))
            )

        # A concurrent completion unlocked first_quiz after this evaluation read the unlocks
        async def _nothing_unlocked(db, account_id):
            return {}

        monkeypatch.setattr("ailesson.achievements.service._unlocked_ids", _nothing_unlocked)
        unlocked = await evaluate_achievements(db_session, learner.id)
        assert [a.slug for a in unlocked] == ["ten_quizzes"]

        slugs = (
            await db_session.execute(
                select(Achievement.slug)
                .join(AchievementUnlock, AchievementUnlock.achievement_id == Achievement.id)
                .where(AchievementUnlock.user_id == learner.id)
            )
        ).scalars().all()
        assert set(slugs) == {"first_quiz", "ten_quizzes"}


class TestProgress:
    @pytest.mark.asyncio
    async def test_progress_and_earned_flags(self, db_session, make_account):
        learner = await make_account(Role.LEARNER)
        await _set_quiz_count(db_session, learner.id, 12)
        await evaluate_achievements(db_session, learner.id)

        items = {i["slug"]: i for i in await list_account_achievements(db_session, learner.id)}
        assert items["first_quiz"]["earned"] is True
        assert items["ten_quizzes"]["earned"] is True
        assert items["ten_quizzes"]["progress"] == 10
        assert items["fifty_quizzes"]["earned"] is False
        assert items["fifty_quizzes"]["progress"] == 12
        assert items["perfect_quiz"]["progress"] == 0
