"""Activity endpoints: start, end, list and track cells."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from turf.activities.schemas import (
    ActivityCellsResponse,
    ActivityListResponse,
    ActivityResponse,
    EndActivityRequest,
    StartActivityRequest,
)
from turf.activities.service import end_activity, get_activity, list_activities, start_activity
from turf.auth.dependencies import get_current_user
from turf.config import get_settings
from turf.database import get_session
from turf.db.models import MAX_ID, User
from turf.geo.indexer import MAX_RESOLUTION, MIN_RESOLUTION, cells_for_track

router = APIRouter(prefix="/api/v1/activities", tags=["Activities"])


@router.post("", response_model=ActivityResponse, status_code=201)
async def start(
    body: StartActivityRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityResponse:
    """Start a new open activity."""
    activity = await start_activity(db, user.id, body.type, is_private=body.is_private)
    await db.commit()
    return ActivityResponse.model_validate(activity)


@router.post("/{activity_id}/end", response_model=ActivityResponse)
async def end(
    body: EndActivityRequest,
    activity_id: int = Path(..., ge=1, le=MAX_ID),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityResponse:
    """Finish an activity; rejected when its average speed is implausible."""
    activity = await end_activity(
        db,
        user.id,
        activity_id,
        distance_m=body.distance_m,
        duration_s=body.duration_s,
        track=body.track,
        activity_type=body.type,
    )
    await db.commit()
    return ActivityResponse.model_validate(activity)


@router.get("", response_model=ActivityListResponse)
async def list_mine(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityListResponse:
    activities = await list_activities(db, user.id, limit=limit)
    return ActivityListResponse(activities=[ActivityResponse.model_validate(a) for a in activities])


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_one(
    activity_id: int = Path(..., ge=1, le=MAX_ID),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityResponse:
    return ActivityResponse.model_validate(await get_activity(db, user.id, activity_id))


@router.get("/{activity_id}/cells", response_model=ActivityCellsResponse)
async def track_cells(
    activity_id: int = Path(..., ge=1, le=MAX_ID),
    res: int | None = Query(None, ge=MIN_RESOLUTION, le=MAX_RESOLUTION),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityCellsResponse:
    """Cells along the activity's recorded track, ready to pass to a claim."""
    activity = await get_activity(db, user.id, activity_id)
    resolution = get_settings().h3_default_resolution if res is None else res
    cells = sorted(cells_for_track(activity.track, resolution)) if activity.track else []
    return ActivityCellsResponse(activity_id=activity.id, resolution=resolution, cells=cells)
