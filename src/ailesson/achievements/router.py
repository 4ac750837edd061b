"""Achievement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.achievements.schemas import AchievementProgress, AchievementsResponse
from ailesson.achievements.service import list_account_achievements
from ailesson.auth.dependencies import get_current_user
from ailesson.database import get_session
from ailesson.db.models import Account

router = APIRouter(prefix="/api/v1/achievements", tags=["Achievements"])


@router.get("", response_model=AchievementsResponse)
async def my_achievements(
    account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AchievementsResponse:
    """All achievements with the caller's progress toward each."""
    items = [AchievementProgress(**a) for a in await list_account_achievements(db, account.id)]
    return AchievementsResponse(
        achievements=items,
        earned=sum(1 for a in items if a.earned),
        total=len(items),
    )
