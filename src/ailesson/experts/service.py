"""Tutor personas: generation from a learner survey and selection."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.ai.client import TextGenerationService
from ailesson.database import unit_of_work
from ailesson.db.models import Account, Expert
from ailesson.errors import Forbidden, NotFound

logger = structlog.get_logger()


async def generate_expert(
    db: AsyncSession,
    account: Account,
    survey: dict[str, Any],
    generator: TextGenerationService,
) -> Expert:
    """Create a persona for the caller from their survey and make it their selected tutor."""
    draft = await generator.generate_expert(survey)

    async with unit_of_work(db):
        expert = Expert(
            owner_id=account.id,
            name=draft.name,
            personality=draft.personality,
            communication_style=draft.communication_style,
            appearance=draft.appearance,
            created_at=datetime.now(timezone.utc),
        )
        db.add(expert)
        await db.flush()
        account.selected_expert_id = expert.id

    logger.info("expert_generated", expert_id=expert.id, user_id=account.id, appearance=expert.appearance)
    return expert


async def list_experts(db: AsyncSession, owner_id: int) -> list[Expert]:
    result = await db.execute(
        select(Expert).where(Expert.owner_id == owner_id).order_by(Expert.created_at.desc(), Expert.id.desc())
    )
    return list(result.scalars().all())


async def get_expert(db: AsyncSession, expert_id: int) -> Expert:
    expert = await db.get(Expert, expert_id)
    if expert is None:
        msg = "Expert not found"
        raise NotFound(msg)
    return expert


async def select_expert(db: AsyncSession, account: Account, expert_id: int) -> Expert:
    """Make one of the caller's own experts their selected tutor."""
    expert = await get_expert(db, expert_id)
    if expert.owner_id != account.id:
        msg = "You can only select your own experts"
        raise Forbidden(msg)

    async with unit_of_work(db):
        account.selected_expert_id = expert.id
    logger.info("expert_selected", expert_id=expert.id, user_id=account.id)
    return expert


async def get_selected_expert(db: AsyncSession, account: Account) -> Expert | None:
    if account.selected_expert_id is None:
        return None
    return await db.get(Expert, account.selected_expert_id)
