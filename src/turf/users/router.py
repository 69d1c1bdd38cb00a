"""User endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from turf.auth.dependencies import get_current_user
from turf.database import get_session
from turf.db.models import MAX_ID, User
from turf.leaderboard.service import count_tiles_owned

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


class MeResponse(BaseModel):
    id: int
    email: str | None = None
    display_name: str
    color: str
    tiles_owned: int
    season_id: int | None = None


@router.get("/me", response_model=MeResponse)
async def get_profile(
    season_id: int | None = Query(None, ge=1, le=MAX_ID),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MeResponse:
    """Own profile with the number of tiles held in a season scope."""
    return MeResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        color=user.color,
        tiles_owned=await count_tiles_owned(db, user.id, season_id),
        season_id=season_id,
    )
