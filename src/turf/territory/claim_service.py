"""Territory claims: turn a validated activity into cell ownership.

Checks run in a fixed order and each has its own error:

1. caller identity present (``AuthorizationError``)
2. activity exists, is the caller's, is closed and passes the speed ceiling
3. season, when given, exists and is active (``SeasonInactiveError``)
4. cell set non-empty and every id a valid H3 cell

Nothing is written until all four pass. Cells are then upserted in
fixed-size batches, each committed independently; the last write on a
(cell, season) key wins. One ``ClaimEvent`` is appended after every batch
has committed. A failure part-way leaves the committed batches in place
and writes no audit event; the caller gets ``PartialClaimError``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError

from turf.activities.anticheat import check_speed
from turf.config import get_settings
from turf.errors import (
    ActivityNotClosedError,
    ActivityNotFoundError,
    AuthorizationError,
    CollaboratorUnavailableError,
    InputContractError,
    PartialClaimError,
    SeasonInactiveError,
)
from turf.geo.indexer import normalize_cells
from turf.territory.store import TerritoryStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class ClaimReceipt:
    user_id: int
    activity_id: int
    season_id: int | None
    cell_count: int
    claimed_at: datetime


def iter_batches(cells: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    if size < 1:
        msg = "Batch size must be at least 1"
        raise ValueError(msg)
    for i in range(0, len(cells), size):
        yield cells[i : i + size]


async def _check_preconditions(
    store: TerritoryStore,
    user_id: int,
    activity_id: int,
    season_id: int | None,
    cells: Iterable[str],
) -> list[str]:
    if await store.get_user(user_id) is None:
        raise AuthorizationError("User not found")

    activity = await store.get_activity_for_user(user_id, activity_id)
    if activity is None:
        raise ActivityNotFoundError(activity_id=activity_id)
    if not activity.is_closed:
        raise ActivityNotClosedError("Activity must be ended before claiming territory", activity_id=activity_id)
    check_speed(activity.type, activity.distance_m, activity.duration_s)

    if season_id is not None:
        season = await store.get_season(season_id)
        if season is None or not season.is_active:
            raise SeasonInactiveError(season_id=season_id)

    normalized = normalize_cells(cells)
    if not normalized:
        raise InputContractError("Cells array must not be empty")
    return normalized


async def claim_cells(
    store: TerritoryStore,
    user_id: int | None,
    activity_id: int,
    season_id: int | None,
    cells: Iterable[str],
    *,
    batch_size: int | None = None,
    now: datetime | None = None,
) -> ClaimReceipt:
    """Claim ``cells`` for ``user_id`` in ``season_id`` (or the global scope).

    Raises:
        AuthorizationError, ActivityNotFoundError, ActivityNotClosedError,
        AntiCheatError, SeasonInactiveError, InputContractError: before any write.
        PartialClaimError: at least one batch committed, then a write failed.
        CollaboratorUnavailableError: the first write failed; nothing changed.
    """
    if user_id is None:
        raise AuthorizationError("Unauthorized")
    normalized = await _check_preconditions(store, user_id, activity_id, season_id, cells)

    size = get_settings().claim_batch_size if batch_size is None else batch_size
    claimed_at = now or datetime.now(timezone.utc)
    applied = 0
    try:
        for batch in iter_batches(normalized, size):
            applied += await store.upsert_ownership(batch, user_id, season_id, claimed_at)
        await store.append_claim_event(user_id, activity_id, season_id, normalized, claimed_at)
    except (SQLAlchemyError, OSError) as exc:
        try:
            await store.rollback()
        except (SQLAlchemyError, OSError) as rollback_exc:
            logger.warning("claim_rollback_failed", user_id=user_id, error=str(rollback_exc))
        if applied:
            logger.error(
                "claim_partially_applied",
                user_id=user_id,
                activity_id=activity_id,
                season_id=season_id,
                applied=applied,
                total=len(normalized),
                error=str(exc),
            )
            msg = (
                f"Claim failed after {applied} of {len(normalized)} cells were applied; "
                "no audit event was recorded"
            )
            raise PartialClaimError(msg, applied=applied, total=len(normalized)) from exc
        logger.warning("claim_store_unavailable", user_id=user_id, activity_id=activity_id, error=str(exc))
        raise CollaboratorUnavailableError("Territory store unavailable; no cells were claimed") from exc

    logger.info(
        "territory_claimed",
        user_id=user_id,
        activity_id=activity_id,
        season_id=season_id,
        cells=len(normalized),
    )
    return ClaimReceipt(
        user_id=user_id,
        activity_id=activity_id,
        season_id=season_id,
        cell_count=len(normalized),
        claimed_at=claimed_at,
    )
