"""Season endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from turf.auth.dependencies import get_current_user
from turf.database import get_session
from turf.db.models import MAX_ID, User
from turf.seasons.service import get_season, list_seasons

router = APIRouter(prefix="/api/v1/seasons", tags=["Seasons"])


class SeasonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    start_ts: datetime
    end_ts: datetime
    is_active: bool


class SeasonListResponse(BaseModel):
    seasons: list[SeasonResponse]


@router.get("", response_model=SeasonListResponse)
async def list_all(
    active: bool = Query(False, description="Only active seasons"),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SeasonListResponse:
    seasons = await list_seasons(db, active_only=active)
    return SeasonListResponse(seasons=[SeasonResponse.model_validate(s) for s in seasons])


@router.get("/{season_id}", response_model=SeasonResponse)
async def get_one(
    season_id: int = Path(..., ge=1, le=MAX_ID),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SeasonResponse:
    return SeasonResponse.model_validate(await get_season(db, season_id))
