"""Viewport query: cells in a bounding box joined with current ownership."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from turf.geo.indexer import BBox, cells_for_bbox
from turf.territory.store import TerritoryStore


@dataclass(frozen=True)
class CellOwnership:
    h3_index: str
    season_id: int | None
    owner_user_id: int | None
    claimed_at: datetime | None


async def viewport_territories(
    store: TerritoryStore,
    bbox: BBox,
    res: int,
    season_id: int | None = None,
    max_cells: int | None = None,
) -> list[CellOwnership]:
    """Every cell in ``bbox`` with its owner in the season scope, or unclaimed."""
    cells = sorted(cells_for_bbox(bbox, res, max_cells=max_cells))
    rows = await store.ownership_for_cells(cells, season_id)
    result = []
    for cell in cells:
        row = rows.get(cell)
        if row is None:
            result.append(CellOwnership(cell, season_id, None, None))
        else:
            result.append(CellOwnership(cell, row.season_id, row.owner_user_id, row.claimed_at))
    return result
