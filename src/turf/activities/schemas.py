"""Request/response schemas for activity endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StartActivityRequest(BaseModel):
    type: str = Field(..., description="RUN, WALK or RIDE")
    is_private: bool = False


class EndActivityRequest(BaseModel):
    distance_m: float = Field(..., ge=0)
    duration_s: float = Field(..., ge=0)
    track: dict[str, Any] | None = Field(None, description="GeoJSON Feature with LineString/MultiLineString")
    type: str | None = None


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    start_ts: datetime
    end_ts: datetime | None = None
    distance_m: float
    duration_s: float
    is_private: bool
    track: dict[str, Any] | None = None
    validated_at: datetime | None = None


class ActivityListResponse(BaseModel):
    activities: list[ActivityResponse]


class ActivityCellsResponse(BaseModel):
    activity_id: int
    resolution: int
    cells: list[str]
