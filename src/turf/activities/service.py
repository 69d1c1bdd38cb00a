"""Activity lifecycle: start (open), end (closed exactly once, speed-checked)."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from turf.activities.anticheat import check_speed, require_activity_type
from turf.db.models import Activity
from turf.errors import ActivityAlreadyClosedError, ActivityNotFoundError, InputContractError
from turf.geo.indexer import validate_track
from turf.timeutils import ensure_utc, utcnow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_activity(db: AsyncSession, user_id: int, activity_id: int) -> Activity:
    """Fetch an activity owned by ``user_id``.

    Someone else's activity is reported exactly like a missing one.
    """
    result = await db.execute(
        select(Activity).where(Activity.id == activity_id, Activity.user_id == user_id)
    )
    activity = result.scalar_one_or_none()
    if activity is None:
        raise ActivityNotFoundError(activity_id=activity_id)
    return activity


async def list_activities(db: AsyncSession, user_id: int, limit: int = 50) -> list[Activity]:
    result = await db.execute(
        select(Activity)
        .where(Activity.user_id == user_id)
        .order_by(Activity.start_ts.desc(), Activity.id.desc())
        .limit(limit)
    )
    return list(result.scalars())


async def start_activity(
    db: AsyncSession,
    user_id: int,
    activity_type: str,
    is_private: bool = False,
    now: datetime | None = None,
) -> Activity:
    """Open a new activity for ``user_id``."""
    require_activity_type(activity_type)
    activity = Activity(
        user_id=user_id,
        type=activity_type,
        start_ts=now or utcnow(),
        distance_m=0,
        duration_s=0,
        is_private=is_private,
    )
    db.add(activity)
    await db.flush()
    logger.info("activity_started", user_id=user_id, activity_id=activity.id, type=activity_type)
    return activity


async def end_activity(
    db: AsyncSession,
    user_id: int,
    activity_id: int,
    distance_m: float,
    duration_s: float,
    track: dict[str, Any] | None = None,
    activity_type: str | None = None,
    now: datetime | None = None,
) -> Activity:
    """
    Close an open activity.

    The speed check runs against the stored type before anything is written.
    A supplied ``activity_type`` must match the one the activity was started with.

    Raises:
        ActivityNotFoundError: Missing or owned by someone else.
        ActivityAlreadyClosedError: The activity was already ended.
        InputContractError: Type mismatch, bad track, or end not after start.
        AntiCheatError: Average speed above the type's ceiling.
    """
    activity = await get_activity(db, user_id, activity_id)
    if activity.is_closed:
        raise ActivityAlreadyClosedError("Activity has already been ended", activity_id=activity_id)
    if activity_type is not None and activity_type != activity.type:
        require_activity_type(activity_type)
        msg = f"Activity was started as {activity.type}, not {activity_type}"
        raise InputContractError(msg, activity_id=activity_id)

    check_speed(activity.type, distance_m, duration_s)
    if track is not None:
        validate_track(track)

    end_ts = now or utcnow()
    if ensure_utc(end_ts) <= ensure_utc(activity.start_ts):
        msg = "End timestamp must be after start timestamp"
        raise InputContractError(msg, activity_id=activity_id)

    activity.end_ts = end_ts
    activity.distance_m = distance_m
    activity.duration_s = duration_s
    activity.track = track
    activity.validated_at = end_ts
    await db.flush()
    logger.info(
        "activity_ended",
        user_id=user_id,
        activity_id=activity_id,
        type=activity.type,
        distance_m=distance_m,
        duration_s=duration_s,
    )
    return activity
