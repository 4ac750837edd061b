"""Achievement seed data and the idempotent seeding routine."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.db.models import Achievement

logger = logging.getLogger(__name__)

FIRST_QUIZ = "FIRST_QUIZ"
PERFECT_QUIZ = "PERFECT_QUIZ"
QUIZ_COUNT = "QUIZ_COUNT"

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "slug": "first_quiz",
        "name": "First Steps",
        "description": "Complete your first quiz",
        "icon": "\U0001f3af",
        "condition": FIRST_QUIZ,
        "threshold": 1,
        "sort_order": 1,
    },
    {
        "slug": "perfect_quiz",
        "name": "Perfectionist",
        "description": "Answer every question of a quiz correctly",
        "icon": "\U0001f4af",
        "condition": PERFECT_QUIZ,
        "threshold": 1,
        "sort_order": 2,
    },
    {
        "slug": "ten_quizzes",
        "name": "Dedicated Learner",
        "description": "Complete 10 quizzes",
        "icon": "\U0001f51f",
        "condition": QUIZ_COUNT,
        "threshold": 10,
        "sort_order": 3,
    },
    {
        "slug": "fifty_quizzes",
        "name": "Knowledge Seeker",
        "description": "Complete 50 quizzes",
        "icon": "⭐",
        "condition": QUIZ_COUNT,
        "threshold": 50,
        "sort_order": 4,
    },
    {
        "slug": "hundred_quizzes",
        "name": "Quiz Master",
        "description": "Complete 100 quizzes",
        "icon": "\U0001f3c6",
        "condition": QUIZ_COUNT,
        "threshold": 100,
        "sort_order": 5,
    },
]

_SEEDED_FIELDS = ("name", "description", "icon", "condition", "threshold", "sort_order")


async def seed_achievements(db: AsyncSession) -> int:
    """Insert or refresh every achievement definition. Returns the number seeded."""
    existing = {
        a.slug: a for a in (await db.execute(select(Achievement))).scalars().all()
    }
    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        achievement = existing.get(data["slug"])
        if achievement is None:
            db.add(Achievement(**data))
        else:
            for field in _SEEDED_FIELDS:
                setattr(achievement, field, data[field])
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
