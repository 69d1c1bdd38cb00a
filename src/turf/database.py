"""Async SQLAlchemy engine and session management.

The application owns exactly one :class:`Database`, created in the lifespan
and stored on ``app.state.database``. Request handlers receive sessions from
it through :func:`get_session`; nothing reaches for a module-level engine.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import structlog
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from turf.db import models as _models  # noqa: F401  (registers tables on Base.metadata)
from turf.db.base import Base

logger = structlog.get_logger()


def _sqlite_on_connect(dbapi_connection: Any, _record: Any) -> None:
    # WAL lets a reader and a writer overlap on separate connections.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class Database:
    """Lazily-connected engine plus session factory.

    ``connect()`` may be called any number of times; only the first call
    builds the engine. ``dispose()`` returns the object to its unconnected
    state so it can be connected again.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def _engine_kwargs(self) -> dict[str, Any]:
        if self.url.startswith("sqlite"):
            return {"echo": False}
        return {
            "pool_size": 20,
            "max_overflow": 10,
            "pool_pre_ping": True,
            "echo": False,
            "connect_args": {"statement_cache_size": 0},
        }

    def connect(self) -> AsyncEngine:
        """Build the engine and session factory on first use."""
        if self._engine is None:
            self._engine = create_async_engine(self.url, **self._engine_kwargs())
            if self._engine.dialect.name == "sqlite":
                event.listen(self._engine.sync_engine, "connect", _sqlite_on_connect)
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info("database_connected", dialect=self._engine.dialect.name)
        return self._engine

    @property
    def engine(self) -> AsyncEngine:
        return self.connect()

    async def create_all(self) -> None:
        """Create all tables (tests and local development; production uses Alembic)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Dispose of the engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def sessions(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield one session, closing it afterwards."""
        self.connect()
        if self._session_factory is None:
            msg = "Database session factory was not initialised"
            raise RuntimeError(msg)
        async with self._session_factory() as session:
            yield session


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None:
        msg = "Database not initialized. Set app.state.database first."
        raise RuntimeError(msg)
    async for session in database.sessions():
        yield session
