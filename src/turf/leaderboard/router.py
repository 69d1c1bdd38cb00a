"""Leaderboard endpoint."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from turf.auth.dependencies import get_current_user
from turf.database import get_session
from turf.db.models import MAX_ID, User
from turf.leaderboard.schemas import LeaderboardEntryResponse, LeaderboardResponse
from turf.leaderboard.service import get_leaderboard
from turf.seasons.service import get_season

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    season_id: int | None = Query(None, ge=1, le=MAX_ID, description="Omit for season-less ownership"),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Top owners by tiles held in a season scope."""
    if season_id is not None:
        await get_season(db, season_id)
    entries = await get_leaderboard(db, season_id)
    return LeaderboardResponse(
        season_id=season_id,
        entries=[LeaderboardEntryResponse(**asdict(e)) for e in entries],
    )
