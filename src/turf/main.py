"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from turf.activities.router import router as activities_router
from turf.config import get_settings
from turf.database import Database
from turf.health.router import router as health_router
from turf.leaderboard.router import router as leaderboard_router
from turf.middleware import setup_middleware
from turf.redis_client import close_redis, create_redis
from turf.seasons.router import router as seasons_router
from turf.territory.router import router as territory_router
from turf.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database engine and Redis client, and close them on shutdown.

    A ``Database`` handed to ``create_app`` is connected rather than replaced.
    """
    settings = get_settings()
    if getattr(app.state, "database", None) is None:
        app.state.database = Database(settings.database_url)
    app.state.database.connect()
    if getattr(app.state, "redis", None) is None:
        app.state.redis = create_redis(settings.redis_url)
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    await app.state.database.dispose()
    await close_redis(app.state.redis)
    app.state.redis = None


def create_app(database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Turf API",
        description="Territory claim engine: turn runs, walks and rides into H3 hexagon ownership",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.redis = None

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    for router in (users_router, activities_router, seasons_router, territory_router, leaderboard_router):
        app.include_router(router)

    return app


app = create_app()
