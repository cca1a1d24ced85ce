"""
forkman.services.award_service — The Award Transaction
=======================================================

Shared service module callable by both bot and dashboard.  One call to
:func:`award_event` is one database transaction:

    1. Resolve the event key in the catalog        → UnknownEvent
    2. Lock the (guild, user) ``user_points`` row  (created on first award)
    3. Count the user's ``event_log`` rows for the event
    4. Reject when the occurrence limit is reached → OccurrenceLimitReached
    5. Append the ``event_log`` row
    6. Add the event's points to ``user_points``
    7. Commit and return the new total

Steps 5 and 6 commit together or not at all.  The row lock in step 2 is
what keeps two concurrent awards for the same user from both passing the
limit check: the second waits until the first commits, then counts again.
Locking is left to the database (``INSERT .. ON CONFLICT DO NOTHING`` on
the unique (guild, user) key, then ``SELECT .. FOR UPDATE``) so it holds
across bot and API processes.

Failed transactions are never retried here; a retry after an ambiguous
failure could award twice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from forkman.database.engine import dialect_insert, run_db
from forkman.database.models import EventLogEntry, UserPoints
from forkman.engine.events import AwardResult, BulkAwardResult
from forkman.errors import OccurrenceLimitReached, StoreFailure, UnknownEvent
from forkman.services.ledger_service import find_definition

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Transaction steps
# ---------------------------------------------------------------------------
def _lock_user_points(session: Session, guild_id: str, user_id: str) -> UserPoints:
    """Ensure the aggregate row exists and hold a write lock on it.

    The placeholder row (0 points) disappears with the rollback if the
    award is rejected, so readers never see it.
    """
    insert = dialect_insert(session)
    session.execute(
        insert(UserPoints)
        .values(guild_id=guild_id, user_id=user_id, points=0)
        .on_conflict_do_nothing(index_elements=["guild_id", "user_id"])
    )
    return session.scalars(
        select(UserPoints)
        .where(UserPoints.guild_id == guild_id, UserPoints.user_id == user_id)
        .with_for_update()
    ).one()


def _count_occurrences(
    session: Session, definition_id: int, guild_id: str, user_id: str,
) -> int:
    return session.scalar(
        select(func.count())
        .select_from(EventLogEntry)
        .where(
            EventLogEntry.definition_id == definition_id,
            EventLogEntry.guild_id == guild_id,
            EventLogEntry.user_id == user_id,
        )
    ) or 0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def award_event(engine: Engine, guild_id: str, user_id: str, event_key: str) -> AwardResult:
    """Award *event_key* to *user_id* in *guild_id*.

    Raises
    ------
    UnknownEvent
        The key is not in the catalog.  Nothing was written.
    OccurrenceLimitReached
        The user already has ``max_occurrence`` awards for the event.
        Nothing was written.
    StoreFailure
        The database failed; the transaction was rolled back.
    """
    guild_id, user_id = str(guild_id), str(user_id)
    try:
        with Session(engine, expire_on_commit=False) as session:
            definition = find_definition(session, event_key)
            aggregate = _lock_user_points(session, guild_id, user_id)

            count = _count_occurrences(session, definition.id, guild_id, user_id)
            if definition.max_occurrence > 0 and count >= definition.max_occurrence:
                session.rollback()
                raise OccurrenceLimitReached(event_key, definition.max_occurrence)

            session.add(EventLogEntry(
                definition_id=definition.id,
                guild_id=guild_id,
                user_id=user_id,
            ))
            aggregate.points += definition.points
            session.commit()

            result = AwardResult(
                guild_id=guild_id,
                user_id=user_id,
                event_key=definition.key,
                points_awarded=definition.points,
                new_total=aggregate.points,
                occurrence=count + 1,
            )
    except SQLAlchemyError as exc:
        logger.exception(
            "Award of %s to user %s in guild %s failed",
            event_key, user_id, guild_id,
            extra={"event_key": event_key, "guild_id": guild_id, "user_id": user_id},
        )
        raise StoreFailure(f"Could not record event [{event_key}]") from exc

    logger.info(
        "Awarded %s (+%d) to user %s in guild %s → %d",
        result.event_key, result.points_awarded, user_id, guild_id, result.new_total,
    )
    return result


async def award_event_to_all(
    engine: Engine,
    guild_id: str,
    event_key: str,
    user_ids: Iterable[str],
    *,
    concurrency: int = 5,
) -> BulkAwardResult:
    """Award *event_key* to every candidate, at most *concurrency* at a time.

    Each candidate gets its own :func:`award_event` transaction.  Limit,
    unknown-event and store failures are recorded per user and the batch
    carries on.  Duplicate ids are awarded once.  Filtering candidates (for
    example dropping bot accounts) is the caller's job.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be positive, got {concurrency}")

    candidates = list(dict.fromkeys(str(u) for u in user_ids))
    result = BulkAwardResult(event_key=event_key, attempted=len(candidates))
    semaphore = asyncio.Semaphore(concurrency)

    async def _award_one(user_id: str) -> None:
        async with semaphore:
            try:
                await run_db(award_event, engine, guild_id, user_id, event_key)
            except OccurrenceLimitReached:
                result.limit_reached.append(user_id)
            except UnknownEvent:
                result.unknown_event.append(user_id)
            except StoreFailure:
                result.failed.append(user_id)
            else:
                result.awarded += 1

    await asyncio.gather(*(_award_one(u) for u in candidates))

    logger.info(
        "Mass award %s in guild %s: awarded=%d attempted=%d "
        "limit_reached=%d unknown=%d failed=%d",
        event_key, guild_id, result.awarded, result.attempted,
        len(result.limit_reached), len(result.unknown_event), len(result.failed),
    )
    if result.failed:
        logger.warning(
            "Mass award %s in guild %s: %d store failures: %s",
            event_key, guild_id, len(result.failed), result.failed,
        )
    return result
