"""Create economy tables

Revision ID: 5c2e8a1f7d40
Revises:
Create Date: 2026-10-19 09:12:31.418205

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e8a1f7d40'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create event_definitions, event_log, user_points and module_state."""

    # --- event_definitions ---
    op.create_table(
        "event_definitions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("key", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_occurrence", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("points >= 0", name="ck_event_definitions_points"),
        sa.CheckConstraint("max_occurrence >= 0", name="ck_event_definitions_max_occurrence"),
    )

    # --- event_log ---
    op.create_table(
        "event_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "definition_id",
            sa.Integer,
            sa.ForeignKey("event_definitions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("guild_id", sa.String(32), nullable=False),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_event_log_def_guild_user", "event_log", ["definition_id", "guild_id", "user_id"],
    )
    op.create_index("ix_event_log_guild_user", "event_log", ["guild_id", "user_id"])

    # --- user_points ---
    op.create_table(
        "user_points",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.String(32), nullable=False),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("guild_id", "user_id", name="uq_user_points_guild_user"),
        sa.CheckConstraint("points >= 0", name="ck_user_points_points"),
    )
    op.create_index("ix_user_points_guild_points", "user_points", ["guild_id", "points"])

    # --- module_state ---
    op.create_table(
        "module_state",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.String(32), nullable=False),
        sa.Column("module_name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(200), nullable=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("command_flags", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("config", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("guild_id", "module_name", name="uq_module_state_guild_module"),
    )


def downgrade() -> None:
    op.drop_table("module_state")
    op.drop_index("ix_user_points_guild_points", table_name="user_points")
    op.drop_table("user_points")
    op.drop_index("ix_event_log_guild_user", table_name="event_log")
    op.drop_index("ix_event_log_def_guild_user", table_name="event_log")
    op.drop_table("event_log")
    op.drop_table("event_definitions")
