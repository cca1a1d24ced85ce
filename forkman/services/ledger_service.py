"""
forkman.services.ledger_service — Read Paths over the Ledger
=============================================================

Read-only queries shared by the bot and the dashboard API:

- catalog lookups and listing
- a user's running total and the per-guild leaderboard
- a user's award history
- the ledger-derived total used by reconciliation

Nothing here writes; the award service owns every mutation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from forkman.database.models import EventDefinition, EventLogEntry, UserPoints
from forkman.engine.events import EventInfo, LeaderboardEntry
from forkman.errors import UnknownEvent

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
def find_definition(session: Session, event_key: str) -> EventDefinition:
    """Resolve *event_key* inside an open session.

    Raises
    ------
    UnknownEvent
        If no definition carries that key.
    """
    definition = session.scalar(
        select(EventDefinition).where(EventDefinition.key == event_key)
    )
    if definition is None:
        raise UnknownEvent(event_key)
    return definition


def get_event(engine: Engine, event_key: str) -> EventInfo:
    with Session(engine) as session:
        return EventInfo.from_row(find_definition(session, event_key))


def list_events(engine: Engine) -> list[EventInfo]:
    """Every catalog entry, ordered by key.  Definitions are global, not
    per guild."""
    with Session(engine) as session:
        rows = session.scalars(
            select(EventDefinition).order_by(EventDefinition.key)
        ).all()
        return [EventInfo.from_row(r) for r in rows]


# ---------------------------------------------------------------------------
# Totals & leaderboard
# ---------------------------------------------------------------------------
def get_user_total(engine: Engine, guild_id: str, user_id: str) -> int:
    """The user's running total, or ``0`` if they never earned points."""
    guild_id, user_id = str(guild_id), str(user_id)
    with Session(engine) as session:
        points = session.scalar(
            select(UserPoints.points).where(
                UserPoints.guild_id == guild_id,
                UserPoints.user_id == user_id,
            )
        )
        return points or 0


def get_top_users(engine: Engine, guild_id: str, limit: int) -> list[LeaderboardEntry]:
    """Top *limit* users by points, descending.

    Ties keep the order in which users first earned points, so the board is
    reproducible.

    Raises
    ------
    ValueError
        If *limit* is not a positive integer.
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")
    guild_id = str(guild_id)

    with Session(engine) as session:
        rows = session.execute(
            select(UserPoints.user_id, UserPoints.points)
            .where(UserPoints.guild_id == guild_id)
            .order_by(UserPoints.points.desc(), UserPoints.id)
            .limit(limit)
        ).all()
    return [
        LeaderboardEntry(rank=i, user_id=row.user_id, points=row.points)
        for i, row in enumerate(rows, 1)
    ]


def get_user_rank(engine: Engine, guild_id: str, user_id: str) -> int | None:
    """1-based leaderboard position, or ``None`` for users without a row."""
    guild_id, user_id = str(guild_id), str(user_id)
    with Session(engine) as session:
        row = session.scalar(
            select(UserPoints).where(
                UserPoints.guild_id == guild_id,
                UserPoints.user_id == user_id,
            )
        )
        if row is None:
            return None
        ahead = session.scalar(
            select(func.count()).select_from(UserPoints).where(
                UserPoints.guild_id == guild_id,
                (UserPoints.points > row.points)
                | ((UserPoints.points == row.points) & (UserPoints.id < row.id)),
            )
        ) or 0
        return ahead + 1


# ---------------------------------------------------------------------------
# Ledger-derived views
# ---------------------------------------------------------------------------
def _ledger_rows(session: Session, guild_id: str, user_id: str | None = None):
    """Ledger rows outer-joined to their definition (``None`` when dangling)."""
    stmt = (
        select(EventLogEntry, EventDefinition)
        .outerjoin(EventDefinition, EventDefinition.id == EventLogEntry.definition_id)
        .where(EventLogEntry.guild_id == guild_id)
        .order_by(EventLogEntry.id)
    )
    if user_id is not None:
        stmt = stmt.where(EventLogEntry.user_id == user_id)
    return session.execute(stmt).all()


def compute_ledger_totals(session: Session, guild_id: str) -> tuple[dict[str, int], int]:
    """Sum definition points per user straight from ``event_log``.

    Rows whose definition no longer exists contribute ``0`` and are logged.
    Returns ``(user_id → total, dangling_row_count)``.
    """
    totals: dict[str, int] = {}
    dangling = 0
    for entry, definition in _ledger_rows(session, guild_id):
        if definition is None:
            dangling += 1
            totals.setdefault(entry.user_id, 0)
            continue
        totals[entry.user_id] = totals.get(entry.user_id, 0) + definition.points

    if dangling:
        logger.warning(
            "Guild %s: %d event_log rows reference a missing event definition "
            "and count as 0 points",
            guild_id, dangling,
        )
    return totals, dangling


def compute_ledger_total(session: Session, guild_id: str, user_id: str) -> int:
    """Ledger-derived total for one user (see :func:`compute_ledger_totals`)."""
    total = 0
    for entry, definition in _ledger_rows(session, guild_id, user_id):
        if definition is None:
            logger.warning(
                "event_log row %d (guild %s, user %s) references a missing "
                "event definition; counting 0 points",
                entry.id, guild_id, user_id,
            )
            continue
        total += definition.points
    return total


def get_user_history(engine: Engine, guild_id: str, user_id: str) -> list[dict]:
    """Every award the user received in the guild, oldest first."""
    guild_id, user_id = str(guild_id), str(user_id)
    with Session(engine) as session:
        return [
            {
                "event_key": definition.key if definition else None,
                "event_name": definition.name if definition else None,
                "points": definition.points if definition else 0,
                "created_at": entry.created_at.isoformat() if entry.created_at else None,
            }
            for entry, definition in _ledger_rows(session, guild_id, user_id)
        ]
