"""Persistence shapes the claim engine relies on.

The store wraps one ``AsyncSession`` and exposes exactly four kinds of
operation: entity lookups (user, activity, season), batched ownership
upserts keyed by (cell, season scope), ownership lookups by cell set, and
an append-only audit write. Each upsert batch and the audit write are
committed on their own.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from turf.db.models import MAX_ID, Activity, ClaimEvent, Season, Territory, User, season_scope

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _insert_for(dialect: str) -> Any:
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        msg = f"Unsupported database dialect for ownership upserts: {dialect}"
        raise RuntimeError(msg)
    return insert


class TerritoryStore:
    """SQL-backed territory persistence."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Lookups ──
    # Ids outside the key range cannot name a row and are not sent to the database.

    async def get_user(self, user_id: int) -> User | None:
        if not 1 <= user_id <= MAX_ID:
            return None
        return await self.db.get(User, user_id)

    async def get_activity_for_user(self, user_id: int, activity_id: int) -> Activity | None:
        if not 1 <= activity_id <= MAX_ID:
            return None
        result = await self.db.execute(
            select(Activity).where(Activity.id == activity_id, Activity.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_season(self, season_id: int) -> Season | None:
        if not 1 <= season_id <= MAX_ID:
            return None
        return await self.db.get(Season, season_id)

    async def ownership_for_cells(
        self, cells: Sequence[str], season_id: int | None
    ) -> dict[str, Territory]:
        """Current ownership rows for ``cells`` in one season scope."""
        if not cells:
            return {}
        rows: dict[str, Territory] = {}
        scope = season_scope(season_id)
        # Chunked to stay under bind-parameter limits.
        for i in range(0, len(cells), 5000):
            chunk = list(cells[i : i + 5000])
            result = await self.db.execute(
                select(Territory)
                .where(Territory.season_scope == scope, Territory.h3_index.in_(chunk))
                .execution_options(populate_existing=True)
            )
            rows.update({t.h3_index: t for t in result.scalars()})
        return rows

    # ── Writes ──

    async def upsert_ownership(
        self,
        cells: Sequence[str],
        owner_user_id: int,
        season_id: int | None,
        claimed_at: datetime,
    ) -> int:
        """Set ``owner_user_id`` as owner of every cell in one statement and commit.

        Conflicts on (h3_index, season_scope) overwrite the previous owner.
        ``cells`` must not contain duplicates.
        """
        if not cells:
            return 0
        insert = _insert_for(self.db.get_bind().dialect.name)
        scope = season_scope(season_id)
        stmt = insert(Territory).values(
            [
                {
                    "h3_index": cell,
                    "season_scope": scope,
                    "season_id": season_id,
                    "owner_user_id": owner_user_id,
                    "claimed_at": claimed_at,
                }
                for cell in cells
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Territory.h3_index, Territory.season_scope],
            set_={
                "owner_user_id": stmt.excluded.owner_user_id,
                "claimed_at": stmt.excluded.claimed_at,
                "season_id": stmt.excluded.season_id,
            },
        )
        await self.db.execute(stmt)
        await self.db.commit()
        return len(cells)

    async def append_claim_event(
        self,
        user_id: int,
        activity_id: int,
        season_id: int | None,
        cells: Sequence[str],
        created_at: datetime,
    ) -> ClaimEvent:
        event = ClaimEvent(
            user_id=user_id,
            activity_id=activity_id,
            season_id=season_id,
            cell_count=len(cells),
            cells=list(cells),
            created_at=created_at,
        )
        self.db.add(event)
        await self.db.commit()
        return event

    async def rollback(self) -> None:
        await self.db.rollback()
