"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from prepquest.config import get_settings
from prepquest.database import close_db, get_session, init_db
from prepquest.health.router import router as health_router
from prepquest.middleware import setup_middleware
from prepquest.notifications.router import router as notifications_router
from prepquest.redis_client import close_redis, init_redis
from prepquest.rewards.router import router as rewards_router
from prepquest.rewards.seed import seed_catalogs

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    logger.info("Starting rewards API %s (%s)", settings.app_version, settings.environment)
    await init_db(settings.database_url)

    # Redis only carries notification pushes; the API works without it
    try:
        await init_redis(settings.redis_url)
    except Exception:
        logger.warning("Redis unavailable, notification push disabled", exc_info=True)

    if settings.seed_catalog_on_startup:
        try:
            async for db in get_session():
                await seed_catalogs(db)
                break
        except Exception:
            logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="PrepQuest Rewards API",
        description="Points, levels, achievements, milestones and daily challenges for PrepQuest quizzes",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(rewards_router)
    app.include_router(notifications_router)

    return app


app = create_app()
