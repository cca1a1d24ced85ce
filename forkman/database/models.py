"""
forkman.database.models — SQLAlchemy 2.0 Data Models
=====================================================

Tables:
- event_definitions  — Global catalog of awardable events
- event_log          — Append-only award journal (one row per award)
- user_points        — Running per-(guild, user) total derived from event_log
- module_state       — Per-guild, per-module enable flag + typed config

Guild and user identifiers are Discord snowflakes stored as decimal strings.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all forkman ORM models."""


# ---------------------------------------------------------------------------
# EventDefinition — catalog entry
# ---------------------------------------------------------------------------
class EventDefinition(Base):
    """A recognized awardable action.

    ``max_occurrence == 0`` means the event can be awarded without limit.
    Rows are seeded once and then only changed by administrators.
    """
    __tablename__ = "event_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_occurrence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    log_entries: Mapped[list[EventLogEntry]] = relationship(
        back_populates="definition", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_event_definitions_points"),
        CheckConstraint("max_occurrence >= 0", name="ck_event_definitions_max_occurrence"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventDefinition key={self.key!r} points={self.points} "
            f"max={self.max_occurrence}>"
        )


# ---------------------------------------------------------------------------
# EventLogEntry — append-only award journal
# ---------------------------------------------------------------------------
class EventLogEntry(Base):
    __tablename__ = "event_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # SET NULL keeps history readable if a definition is ever deleted; such
    # rows count as 0 points.
    definition_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("event_definitions.id", ondelete="SET NULL"),
        nullable=True,
    )
    guild_id: Mapped[str] = mapped_column(String(32), nullable=False)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    definition: Mapped[EventDefinition | None] = relationship(back_populates="log_entries")

    __table_args__ = (
        Index("ix_event_log_def_guild_user", "definition_id", "guild_id", "user_id"),
        Index("ix_event_log_guild_user", "guild_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventLogEntry id={self.id} def={self.definition_id} "
            f"guild={self.guild_id} user={self.user_id}>"
        )


# ---------------------------------------------------------------------------
# UserPoints — aggregate total per (guild, user)
# ---------------------------------------------------------------------------
class UserPoints(Base):
    __tablename__ = "user_points"

    # Autoincrement id doubles as insertion order for leaderboard ties.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(String(32), nullable=False)
    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("guild_id", "user_id", name="uq_user_points_guild_user"),
        CheckConstraint("points >= 0", name="ck_user_points_points"),
        Index("ix_user_points_guild_points", "guild_id", "points"),
    )

    def __repr__(self) -> str:
        return f"<UserPoints guild={self.guild_id} user={self.user_id} points={self.points}>"


# ---------------------------------------------------------------------------
# ModuleState — per-guild module toggle + typed config
# ---------------------------------------------------------------------------
class ModuleState(Base):
    """Enable flag and configuration of one bot module in one guild.

    ``command_flags`` and ``config`` are JSON on disk but always pass
    through the pydantic schema registered for ``module_name`` in
    :mod:`forkman.engine.modules` before being read or written.
    """
    __tablename__ = "module_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(String(32), nullable=False)
    module_name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(String(200), default=None)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    command_flags: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    config: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("guild_id", "module_name", name="uq_module_state_guild_module"),
    )

    def __repr__(self) -> str:
        return (
            f"<ModuleState guild={self.guild_id} module={self.module_name!r} "
            f"enabled={self.enabled}>"
        )
