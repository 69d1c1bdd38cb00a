"""Territory endpoints: point lookup, viewport ownership and claims."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from turf.auth.dependencies import get_current_user
from turf.config import get_settings
from turf.database import get_session
from turf.db.models import MAX_ID, User
from turf.geo.indexer import BBox, cell_for_point
from turf.leaderboard.service import UNKNOWN_COLOR, UNKNOWN_DISPLAY_NAME, get_user_display_batch
from turf.territory.claim_service import claim_cells
from turf.territory.schemas import (
    CellResponse,
    ClaimRequest,
    ClaimResponse,
    OwnerResponse,
    TerritoryCellResponse,
    ViewportResponse,
)
from turf.territory.store import TerritoryStore
from turf.territory.viewport import viewport_territories

router = APIRouter(prefix="/api/v1/territory", tags=["Territory"])


@router.get("/cell", response_model=CellResponse)
async def cell_at(
    lat: float = Query(...),
    lng: float = Query(...),
    res: int = Query(...),
    _user: User = Depends(get_current_user),
) -> CellResponse:
    """The cell containing a point."""
    return CellResponse(h3_index=cell_for_point(lat, lng, res), resolution=res)


@router.get("/viewport", response_model=ViewportResponse)
async def viewport(
    north: float = Query(...),
    south: float = Query(...),
    east: float = Query(...),
    west: float = Query(...),
    res: int = Query(...),
    season_id: int | None = Query(None, ge=1, le=MAX_ID),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ViewportResponse:
    """Every cell in the box with its current owner in the season scope."""
    bbox = BBox(north=north, south=south, east=east, west=west)
    cells = await viewport_territories(
        TerritoryStore(db), bbox, res, season_id=season_id, max_cells=get_settings().max_viewport_cells
    )
    owner_ids = sorted({c.owner_user_id for c in cells if c.owner_user_id is not None})
    owners = await get_user_display_batch(db, owner_ids)

    def _owner(owner_id: int | None) -> OwnerResponse | None:
        if owner_id is None:
            return None
        u = owners.get(owner_id)
        return OwnerResponse(
            id=owner_id,
            display_name=u.display_name if u else UNKNOWN_DISPLAY_NAME,
            color=u.color if u else UNKNOWN_COLOR,
        )

    return ViewportResponse(
        resolution=res,
        season_id=season_id,
        total=len(cells),
        cells=[
            TerritoryCellResponse(
                h3_index=c.h3_index,
                owner=_owner(c.owner_user_id),
                claimed_at=c.claimed_at,
                season_id=c.season_id,
            )
            for c in cells
        ],
    )


@router.post("/claim", response_model=ClaimResponse)
async def claim(
    body: ClaimRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ClaimResponse:
    """Claim cells with a finished activity. Later claims on a cell overwrite earlier ones."""
    receipt = await claim_cells(TerritoryStore(db), user.id, body.activity_id, body.season_id, body.cells)
    return ClaimResponse(cell_count=receipt.cell_count, season_id=receipt.season_id, claimed_at=receipt.claimed_at)
