"""Liveness, readiness and version endpoints."""

from typing import Any

import h3
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from turf.config import get_settings
from turf.database import get_session

router = APIRouter()


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.scalar(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        return f"error: {exc}"
    return "ok"


async def _check_redis(redis: Any) -> str:  # noqa: ANN401
    try:
        await redis.ping()
    except (RedisError, OSError) as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    """The process is up."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> JSONResponse:
    """Check the database and, when one is configured, Redis.

    Answers 503 with the per-dependency results when any check fails.
    """
    checks = {"database": await _check_database(db)}
    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        checks["redis"] = await _check_redis(redis)

    ready = all(result == "ok" for result in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "h3": h3.__version__,
    }
