"""Leaderboard endpoints: standings and the guarded reset trigger."""

from __future__ import annotations

import hmac

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.auth.dependencies import get_current_user
from ailesson.auth.jwt import verify_token
from ailesson.auth.service import get_account_by_id
from ailesson.config import get_settings
from ailesson.database import get_session
from ailesson.db.models import Account
from ailesson.economy.pricing import Role
from ailesson.leaderboard.schemas import LeaderboardResetResponse, LeaderboardResponse, LeaderboardRow
from ailesson.leaderboard.service import get_leaderboard, reset_leaderboard

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])

_optional_bearer = HTTPBearer(auto_error=False)


async def authorize_reset(
    credentials: HTTPAuthorizationCredentials | None = Security(_optional_bearer),
    db: AsyncSession = Depends(get_session),
) -> str:
    """Accept the scheduler's shared secret or an administrator's access token.

    Returns who triggered the reset, for logging.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    secret = get_settings().leaderboard_cron_secret
    if secret and hmac.compare_digest(credentials.credentials.encode(), secret.encode()):
        return "scheduler"

    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail="Unauthorized") from e

    account = await get_account_by_id(db, int(payload["sub"]))
    if account is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if account.role != Role.ADMINISTRATOR.value:
        raise HTTPException(status_code=403, detail="Not permitted for your role")
    return f"admin:{account.id}"


@router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(100, ge=1, le=500),
    _account: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    rows = await get_leaderboard(db, limit)
    return LeaderboardResponse(entries=[LeaderboardRow(**r) for r in rows], total=len(rows))


@router.post("/reset", response_model=LeaderboardResetResponse)
async def reset(
    triggered_by: str = Depends(authorize_reset),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResetResponse:
    """Pay the current leader and zero every learner's counters."""
    logger.info("leaderboard_reset_requested", triggered_by=triggered_by)
    result = await reset_leaderboard(db)
    return LeaderboardResetResponse(
        leader_id=result.leader_id,
        leader_name=result.leader_name,
        leader_score=result.leader_score,
        coins_awarded=result.coins_awarded,
        rows_reset=result.rows_reset,
    )
