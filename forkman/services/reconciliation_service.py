"""
forkman.services.reconciliation_service — Points Reconciliation
================================================================

Weekly job (and admin endpoint) that rebuilds ``user_points`` from the
``event_log`` it is derived from and corrects any drift.

How it works:
    1. Sum definition points per (guild, user) from ``event_log``.  Rows
       whose definition was deleted count as 0 and are logged.
    2. Compare against the stored ``user_points`` row.
    3. Overwrite mismatches, create missing rows, zero orphans.
    4. Log all corrections for audit.

Each guild is reconciled and committed in its own transaction, so awards
in other guilds are never held up by the run.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from forkman.database.engine import dialect_insert, get_session
from forkman.database.models import EventLogEntry, UserPoints
from forkman.services.ledger_service import compute_ledger_totals

logger = logging.getLogger(__name__)


def _locked_rows(session: Session, guild_id: str, user_ids=None) -> dict[str, UserPoints]:
    stmt = (
        select(UserPoints)
        .where(UserPoints.guild_id == guild_id)
        .order_by(UserPoints.id)
        .with_for_update()
    )
    if user_ids is not None:
        stmt = stmt.where(UserPoints.user_id.in_(user_ids))
    return {row.user_id: row for row in session.scalars(stmt).all()}


def _reconcile_guild(session: Session, guild_id: str) -> tuple[int, list[dict], int]:
    """Correct one guild's aggregates.  Returns ``(checked, corrections, dangling)``."""
    corrections: list[dict] = []
    checked = 0

    # Lock before reading the ledger so awards to existing users wait.
    stored = _locked_rows(session, guild_id)
    truth, dangling = compute_ledger_totals(session, guild_id)

    # A user's first award can still commit between the lock and the ledger
    # read.  Missing rows are inserted only if absent; rows that appeared in
    # the meantime are locked and compared like the rest.
    missing = [user_id for user_id in truth if user_id not in stored]
    created: set[str] = set()
    if missing:
        insert = dialect_insert(session)
        for user_id in missing:
            inserted = session.execute(
                insert(UserPoints)
                .values(guild_id=guild_id, user_id=user_id, points=truth[user_id])
                .on_conflict_do_nothing(index_elements=["guild_id", "user_id"])
            )
            if inserted.rowcount:
                created.add(user_id)
        stored.update(_locked_rows(session, guild_id, missing))

    # Ledger users first, in ledger order, so new rows keep the order users
    # first earned points.
    for user_id, actual in truth.items():
        checked += 1
        if user_id in created:
            corrections.append({
                "guild_id": guild_id,
                "user_id": user_id,
                "stored": None,
                "actual": actual,
            })
            continue
        row = stored[user_id]
        if row.points == actual:
            continue
        corrections.append({
            "guild_id": guild_id,
            "user_id": user_id,
            "stored": row.points,
            "actual": actual,
        })
        row.points = actual

    # Aggregates with no ledger rows at all
    for user_id, row in stored.items():
        if user_id in truth:
            continue
        checked += 1
        if row.points != 0:
            corrections.append({
                "guild_id": guild_id,
                "user_id": user_id,
                "stored": row.points,
                "actual": 0,
            })
            row.points = 0

    return checked, corrections, dangling


def reconcile_points(engine: Engine, guild_id: str | None = None) -> dict:
    """Validate every aggregate (or one guild's) against the ledger.

    Returns ``{"checked": N, "corrected": M, "corrections": [...],
    "dangling": D, "timestamp": ...}``.
    """
    if guild_id is not None:
        guild_ids = [str(guild_id)]
    else:
        with get_session(engine) as session:
            guild_ids = sorted(
                set(session.scalars(select(EventLogEntry.guild_id).distinct()).all())
                | set(session.scalars(select(UserPoints.guild_id).distinct()).all())
            )

    corrections: list[dict] = []
    checked = 0
    dangling = 0
    for gid in guild_ids:
        with get_session(engine) as session:
            guild_checked, guild_corrections, guild_dangling = _reconcile_guild(session, gid)
        checked += guild_checked
        corrections.extend(guild_corrections)
        dangling += guild_dangling

    if corrections:
        logger.warning(
            "Points reconciliation: corrected %d/%d totals: %s",
            len(corrections), checked, corrections,
        )
    else:
        logger.info("Points reconciliation: all %d totals match", checked)

    return {
        "checked": checked,
        "corrected": len(corrections),
        "corrections": corrections,
        "dangling": dangling,
        "timestamp": datetime.now(UTC).isoformat(),
    }
