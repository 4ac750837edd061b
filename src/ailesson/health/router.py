"""Liveness, readiness and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.achievements.seed import ACHIEVEMENT_SEED_DATA
from ailesson.config import get_settings
from ailesson.database import get_session
from ailesson.db.models import Achievement
from ailesson.redis_client import get_redis, redis_available

router = APIRouter()


def _text_providers_configured() -> list[str]:
    settings = get_settings()
    keys = {"openrouter": settings.openrouter_api_key, "groq": settings.groq_api_key}
    return [name for name in settings.ai_providers if keys.get(name.lower())]


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is up."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe.

    The database and Redis must answer; seeded achievements and configured
    text providers are reported but do not make the service unready.
    """
    checks: dict[str, object] = {}

    try:
        seeded = (await db.execute(select(func.count()).select_from(Achievement))).scalar_one()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"
        seeded = 0

    if not redis_available():
        checks["redis"] = "error: not connected"
    else:
        try:
            await get_redis().ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    ready = checks["database"] == "ok" and checks["redis"] == "ok"
    return {
        "status": "ready" if ready else "degraded",
        "checks": checks,
        "achievements_seeded": seeded == len(ACHIEVEMENT_SEED_DATA),
        "text_providers": _text_providers_configured(),
    }


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
