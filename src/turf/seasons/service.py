"""Season lookups and creation."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from turf.db.models import Season
from turf.errors import InputContractError, SeasonNotFoundError
from turf.timeutils import ensure_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100


async def create_season(
    db: AsyncSession,
    name: str,
    start_ts: datetime,
    end_ts: datetime,
    is_active: bool = True,
) -> Season:
    """
    Create a season.

    Raises:
        InputContractError: If the name length is out of range or the window is empty.
    """
    name = name.strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        msg = f"Season name must be {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} characters"
        raise InputContractError(msg)
    if ensure_utc(start_ts) >= ensure_utc(end_ts):
        msg = "End timestamp must be after start timestamp"
        raise InputContractError(msg)

    season = Season(name=name, start_ts=start_ts, end_ts=end_ts, is_active=is_active)
    db.add(season)
    await db.flush()
    logger.info("season_created", season_id=season.id, name=name, is_active=is_active)
    return season


async def get_season(db: AsyncSession, season_id: int) -> Season:
    season = await db.get(Season, season_id)
    if season is None:
        raise SeasonNotFoundError("Season not found", season_id=season_id)
    return season


async def list_seasons(db: AsyncSession, active_only: bool = False) -> list[Season]:
    stmt = select(Season).order_by(Season.start_ts.desc(), Season.id.desc())
    if active_only:
        stmt = stmt.where(Season.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars())
