"""Request/response schemas for territory endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from turf.db.models import MAX_ID


class CellResponse(BaseModel):
    h3_index: str
    resolution: int


class OwnerResponse(BaseModel):
    id: int
    display_name: str
    color: str


class TerritoryCellResponse(BaseModel):
    h3_index: str
    owner: OwnerResponse | None = None
    claimed_at: datetime | None = None
    season_id: int | None = None


class ViewportResponse(BaseModel):
    resolution: int
    season_id: int | None = None
    total: int
    cells: list[TerritoryCellResponse]


class ClaimRequest(BaseModel):
    activity_id: int = Field(..., ge=1, le=MAX_ID)
    season_id: int | None = Field(None, ge=1, le=MAX_ID)
    cells: list[str] = Field(..., description="H3 cell ids, bare or h3:-prefixed")


class ClaimResponse(BaseModel):
    ok: bool = True
    cell_count: int
    season_id: int | None = None
    claimed_at: datetime
