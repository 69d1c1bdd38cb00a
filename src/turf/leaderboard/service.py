"""Leaderboard of tiles owned per user within one season scope.

Counts come straight from the territory table on every call; there is no
cache. Rows are ordered by tile count descending, then user id ascending,
and truncated to the configured size (50 by default).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from turf.config import get_settings
from turf.db.models import Territory, User, season_scope

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

UNKNOWN_DISPLAY_NAME = "Unknown"
UNKNOWN_COLOR = "#999999"


@dataclass(frozen=True)
class OwnershipCount:
    user_id: int
    tiles_owned: int


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: int
    display_name: str
    color: str
    tiles_owned: int


async def count_ownership(
    db: AsyncSession, season_id: int | None = None, limit: int | None = None
) -> list[OwnershipCount]:
    """Per-owner tile counts for a season scope, highest first."""
    if limit is None:
        limit = get_settings().leaderboard_size
    tiles = func.count(Territory.id).label("tiles_owned")
    result = await db.execute(
        select(Territory.owner_user_id, tiles)
        .where(
            Territory.season_scope == season_scope(season_id),
            Territory.owner_user_id.is_not(None),
        )
        .group_by(Territory.owner_user_id)
        .order_by(tiles.desc(), Territory.owner_user_id.asc())
        .limit(limit)
    )
    return [OwnershipCount(user_id=row.owner_user_id, tiles_owned=row.tiles_owned) for row in result]


async def get_user_display_batch(db: AsyncSession, user_ids: list[int]) -> dict[int, User]:
    """Batch-load users for leaderboard enrichment."""
    if not user_ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(user_ids)))
    return {u.id: u for u in result.scalars()}


async def get_leaderboard(
    db: AsyncSession, season_id: int | None = None, limit: int | None = None
) -> list[LeaderboardEntry]:
    """Top owners for a season scope, joined with display name and color.

    An owner id with no user row is rendered with placeholder fields
    instead of failing the query.
    """
    counts = await count_ownership(db, season_id, limit)
    users = await get_user_display_batch(db, [c.user_id for c in counts])

    entries = []
    for rank, count in enumerate(counts, start=1):
        user = users.get(count.user_id)
        entries.append(
            LeaderboardEntry(
                rank=rank,
                user_id=count.user_id,
                display_name=user.display_name if user else UNKNOWN_DISPLAY_NAME,
                color=user.color if user else UNKNOWN_COLOR,
                tiles_owned=count.tiles_owned,
            )
        )
    return entries


async def count_tiles_owned(db: AsyncSession, user_id: int, season_id: int | None = None) -> int:
    """Tiles a single user owns in a season scope."""
    result = await db.execute(
        select(func.count(Territory.id)).where(
            Territory.owner_user_id == user_id,
            Territory.season_scope == season_scope(season_id),
        )
    )
    return int(result.scalar_one())
