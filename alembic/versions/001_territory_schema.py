"""Territory schema: users, activities, seasons, territories and claim events.

Revision ID: 001_territory_schema
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001_territory_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_id = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
_json = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=True, unique=True),
        sa.Column("display_name", sa.String(50), nullable=False, server_default="Anonymous"),
        sa.Column("color", sa.String(7), nullable=False, server_default="#888888"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_is_active", "users", ["is_active"])

    # --- Activities ---
    op.create_table(
        "activities",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("user_id", _id, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(8), nullable=False),
        sa.Column("start_ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_ts", sa.DateTime(timezone=True), nullable=True),
        sa.Column("distance_m", sa.Float(), nullable=False, server_default="0"),
        sa.Column("duration_s", sa.Float(), nullable=False, server_default="0"),
        sa.Column("track", _json, nullable=True),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("distance_m >= 0", name="ck_activities_distance_nonneg"),
        sa.CheckConstraint("duration_s >= 0", name="ck_activities_duration_nonneg"),
    )
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_is_private", "activities", ["is_private"])
    op.create_index("idx_activities_user_start", "activities", ["user_id", "start_ts"])

    # --- Seasons ---
    op.create_table(
        "seasons",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("start_ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("start_ts < end_ts", name="ck_seasons_window"),
    )
    op.create_index("idx_seasons_active_start", "seasons", ["is_active", "start_ts"])

    # --- Territories (one owner per cell per season scope) ---
    op.create_table(
        "territories",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("h3_index", sa.String(16), nullable=False),
        sa.Column("season_scope", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("season_id", _id, sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=True),
        sa.Column("owner_user_id", _id, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("h3_index", "season_scope", name="uq_territories_cell_scope"),
    )
    op.create_index("ix_territories_h3_index", "territories", ["h3_index"])
    op.create_index("ix_territories_owner_user_id", "territories", ["owner_user_id"])
    op.create_index("idx_territories_scope_owner", "territories", ["season_scope", "owner_user_id"])

    # --- Claim audit ---
    op.create_table(
        "claim_events",
        sa.Column("id", _id, primary_key=True, autoincrement=True),
        sa.Column("user_id", _id, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("activity_id", _id, sa.ForeignKey("activities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("season_id", _id, sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=True),
        sa.Column("cell_count", sa.Integer(), nullable=False),
        sa.Column("cells", _json, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_claim_events_activity_id", "claim_events", ["activity_id"])
    op.create_index("idx_claim_events_user_season", "claim_events", ["user_id", "season_id"])


def downgrade() -> None:
    op.drop_table("claim_events")
    op.drop_table("territories")
    op.drop_table("seasons")
    op.drop_table("activities")
    op.drop_table("users")
