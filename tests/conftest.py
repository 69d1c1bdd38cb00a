"""Shared test fixtures.

Every test gets its own SQLite database file (via aiosqlite) with the full
schema created from the ORM metadata. No Postgres or Redis is required.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import h3
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from turf.config import get_settings
from turf.database import Database
from turf.db.models import Activity, Season, Territory, User, season_scope

# Tests sign their own HS256 tokens; make sure a stray environment doesn't
# switch the API over to RS256 key files.
os.environ["TURF_JWT_ALGORITHM"] = "HS256"
os.environ["TURF_LOG_FORMAT"] = "console"
get_settings.cache_clear()

from turf.auth.jwt import create_access_token, reset_keys  # noqa: E402
from turf.main import create_app  # noqa: E402

reset_keys()

SF_LAT = 37.7749
SF_LNG = -122.4194
T0 = datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)


def sf_cells(count: int, res: int = 9) -> list[str]:
    """``count`` distinct cells around downtown San Francisco."""
    center = h3.latlng_to_cell(SF_LAT, SF_LNG, res)
    k = 1
    while True:
        disk = sorted(h3.grid_disk(center, k))
        if len(disk) >= count:
            return disk[:count]
        k += 1


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database with all tables."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'turf.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for setup and assertions."""
    async for session in database.sessions():
        yield session


@pytest_asyncio.fixture
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to an app that uses the test database.

    ASGITransport does not run the lifespan, so no Redis client is created
    and rate limiting lets every request through.
    """
    app = create_app(database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Factories ──


async def make_user(
    db: AsyncSession, display_name: str = "Runner One", color: str = "#FF5500", is_active: bool = True
) -> User:
    user = User(display_name=display_name, color=color, is_active=is_active)
    db.add(user)
    await db.commit()
    return user


async def make_season(db: AsyncSession, name: str = "Spring 2026", is_active: bool = True) -> Season:
    season = Season(name=name, start_ts=T0, end_ts=T0 + timedelta(days=90), is_active=is_active)
    db.add(season)
    await db.commit()
    return season


async def make_activity(
    db: AsyncSession,
    user: User,
    activity_type: str = "RUN",
    distance_m: float = 5000,
    duration_s: float = 1800,
    closed: bool = True,
) -> Activity:
    """Insert an activity row directly, bypassing the lifecycle checks."""
    activity = Activity(
        user_id=user.id,
        type=activity_type,
        start_ts=T0,
        end_ts=T0 + timedelta(seconds=duration_s) if closed else None,
        distance_m=distance_m if closed else 0,
        duration_s=duration_s if closed else 0,
    )
    db.add(activity)
    await db.commit()
    return activity


async def give_cells(db: AsyncSession, owner_user_id: int | None, cells: list[str], season_id: int | None = None) -> None:
    """Insert ownership rows directly."""
    for cell in cells:
        db.add(
            Territory(
                h3_index=cell,
                season_scope=season_scope(season_id),
                season_id=season_id,
                owner_user_id=owner_user_id,
                claimed_at=T0,
            )
        )
    await db.commit()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    return await make_user(db_session)


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client authenticated as ``user``."""
    client.headers.update(auth_headers(user))
    return client
