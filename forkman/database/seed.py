"""
forkman.database.seed — Built-in Event Catalog Seeder
======================================================

The events every guild can award out of the box.  Seeding runs on every
startup and on every economy module load, but only inserts keys that are
missing, so point values edited by an administrator survive a re-seed.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from forkman.database.engine import dialect_insert
from forkman.database.models import EventDefinition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------
DEFAULT_EVENTS: dict[str, tuple[str, int, int]] = {
    "DAILY": ("Daily Reward", 85, 1),
    "JOIN_SERVER": ("Join the server", 213, 1),
    "FIRST_MESSAGE": ("Send first message", 425, 1),
    "BIRTHDAY_SET": ("Set your birthday", 595, 1),
    "RESPOND_DAILY_ENGAGEMENT": ("Respond to Daily Engagement", 850, 1),
    "VERIFY_ACCOUNT": ("Verify Account", 850, 1),
    "BOOST_SERVER": ("Boost server", 3570, 1),
    "SUBMIT_DEPOSIT": ("Submit enrollment deposit", 34000, 1),
    "SOCIAL_MEDIA_ENGAGEMENT": ("Social Media Engagement", 850, 1),
}
"""Each entry maps ``key`` → ``(name, points, max_occurrence)``."""


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_default_events(
    engine: Engine,
    events: dict[str, tuple[str, int, int]] | None = None,
) -> int:
    """Insert catalog entries whose key doesn't exist yet.

    Returns the number of rows inserted.  Existing rows are never touched,
    and a concurrent seeder inserting the same key is not an error.
    """
    events = DEFAULT_EVENTS if events is None else events
    session = Session(engine)
    inserted = 0
    try:
        insert = dialect_insert(session)
        for key, (name, points, max_occurrence) in events.items():
            result = session.execute(
                insert(EventDefinition)
                .values(key=key, name=name, points=points, max_occurrence=max_occurrence)
                .on_conflict_do_nothing(index_elements=["key"])
            )
            inserted += result.rowcount
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if inserted:
        logger.info("Seeded %d default economy events.", inserted)
    return inserted
