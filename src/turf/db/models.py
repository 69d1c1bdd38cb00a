"""ORM models for users, activities, seasons, territory ownership and claim audit.

Business rules (speed ceilings, ownership and season checks) are not hooked
into these models. They live in the services and run before any write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    false,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from turf.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigId = BigInteger().with_variant(Integer, "sqlite")
JsonType = JSON().with_variant(JSONB, "postgresql")

# Season scope used for ownership records that belong to no season.
GLOBAL_SCOPE = 0

# Largest value a BIGINT key column can hold.
MAX_ID = 2**63 - 1


def season_scope(season_id: int | None) -> int:
    """Map an optional season id onto the non-null ownership scope key."""
    return GLOBAL_SCOPE if season_id is None else season_id


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    display_name: Mapped[str] = mapped_column(String(50), nullable=False, server_default="Anonymous")
    color: Mapped[str] = mapped_column(String(7), nullable=False, server_default="#888888")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), index=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    activities: Mapped[list[Activity]] = relationship("Activity", back_populates="user")


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


class Activity(Base):
    """A run, walk or ride. Open until ``end_ts`` is set, closed exactly once."""

    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint("distance_m >= 0", name="ck_activities_distance_nonneg"),
        CheckConstraint("duration_s >= 0", name="ck_activities_duration_nonneg"),
        Index("idx_activities_user_start", "user_id", "start_ts"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    start_ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_ts: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    distance_m: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    duration_s: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    track: Mapped[dict[str, Any] | None] = mapped_column(JsonType, nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), index=True)
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="activities")

    @property
    def is_closed(self) -> bool:
        return self.end_ts is not None


# ---------------------------------------------------------------------------
# Seasons
# ---------------------------------------------------------------------------


class Season(Base):
    """A time-boxed competitive period. Overlap between seasons is not enforced."""

    __tablename__ = "seasons"
    __table_args__ = (
        CheckConstraint("start_ts < end_ts", name="ck_seasons_window"),
        Index("idx_seasons_active_start", "is_active", "start_ts"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Territory ownership
# ---------------------------------------------------------------------------


class Territory(Base):
    """Ownership of one H3 cell within one season scope.

    ``season_scope`` is the season id, or ``GLOBAL_SCOPE`` for season-less
    ownership. It exists so the (cell, season) pair can carry a plain unique
    constraint; NULLs would be treated as distinct.
    """

    __tablename__ = "territories"
    __table_args__ = (
        UniqueConstraint("h3_index", "season_scope", name="uq_territories_cell_scope"),
        Index("idx_territories_scope_owner", "season_scope", "owner_user_id"),
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    h3_index: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    season_scope: Mapped[int] = mapped_column(BigInteger, nullable=False, default=GLOBAL_SCOPE)
    season_id: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=True
    )
    owner_user_id: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Claim audit
# ---------------------------------------------------------------------------


class ClaimEvent(Base):
    """Append-only record of one claim batch."""

    __tablename__ = "claim_events"
    __table_args__ = (Index("idx_claim_events_user_season", "user_id", "season_id"),)

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    activity_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    season_id: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=True
    )
    cell_count: Mapped[int] = mapped_column(Integer, nullable=False)
    cells: Mapped[list[str]] = mapped_column(JsonType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
