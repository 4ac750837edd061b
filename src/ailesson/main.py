"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ailesson.achievements.router import router as achievements_router
from ailesson.achievements.seed import seed_achievements
from ailesson.admin.router import router as admin_router
from ailesson.auth.router import router as auth_router
from ailesson.chat.router import router as chat_router
from ailesson.config import get_settings
from ailesson.database import close_db, get_session, init_db
from ailesson.economy.pricing import get_pricing_table
from ailesson.economy.router import router as economy_router
from ailesson.experts.router import router as experts_router
from ailesson.health.router import router as health_router
from ailesson.leaderboard.router import router as leaderboard_router
from ailesson.learners.router import router as learners_router
from ailesson.lessons.router import router as lessons_router
from ailesson.middleware import setup_middleware
from ailesson.quiz.router import router as quiz_router
from ailesson.redis_client import close_redis, init_redis
from ailesson.subjects.router import router as subjects_router
from ailesson.uploads.router import router as uploads_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    # Fails fast on an incomplete pricing table
    get_pricing_table()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed achievement definitions (idempotent)
    try:
        async for db in get_session():
            await seed_achievements(db)
            break
    except Exception:
        logger.warning("Achievement seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="AILesson API",
        description="Backend API for AILesson: AI-generated lessons, quizzes and tutors paid in wisdom coins",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(economy_router)
    app.include_router(admin_router)
    app.include_router(subjects_router)
    app.include_router(lessons_router)
    app.include_router(uploads_router)
    app.include_router(quiz_router)
    app.include_router(leaderboard_router)
    app.include_router(achievements_router)
    app.include_router(experts_router)
    app.include_router(chat_router)
    app.include_router(learners_router)

    return app


app = create_app()
