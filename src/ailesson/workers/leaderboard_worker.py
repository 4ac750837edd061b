"""Leaderboard arq worker: the daily reset, scheduled in UTC.

Runs as a standalone arq process:
    arq ailesson.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.config import get_settings
from ailesson.database import close_db, get_session, init_db
from ailesson.leaderboard.service import reset_leaderboard

logger = logging.getLogger(__name__)


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    async for session in get_session():
        return session
    msg = "Failed to get database session"
    raise RuntimeError(msg)


async def leaderboard_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the database on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("Leaderboard worker started")


async def leaderboard_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Leaderboard worker shut down")


async def daily_leaderboard_reset(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled arq task: pay the day's leader and start a new period.

    Returns the number of rows reset (0 on failure).
    """
    db = await _get_db_session()
    try:
        result = await reset_leaderboard(db)
    except Exception:
        logger.exception("Failed to reset leaderboard")
        return 0
    finally:
        await db.close()

    logger.info(
        "Leaderboard reset: leader=%s score=%s rows=%d",
        result.leader_id, result.leader_score, result.rows_reset,
    )
    return result.rows_reset


class LeaderboardWorkerSettings:
    """arq worker settings for the leaderboard scheduler."""

    functions = [daily_leaderboard_reset]
    cron_jobs = [
        cron(
            daily_leaderboard_reset,
            hour=get_settings().leaderboard_reset_hour_utc,
            minute=0,
            second=0,
            run_at_startup=False,
        ),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    on_startup = leaderboard_startup
    on_shutdown = leaderboard_shutdown
    max_jobs = 1
    job_timeout = 300
