"""
forkman.engine.catalog — In-Memory Event Catalog
=================================================

Event definitions are effectively immutable after seeding, so each process
keeps a read-only copy for listing and slash-command autocomplete.  The
award transaction never trusts this copy: it re-reads the definition inside
its own session so an administrator edit is always honoured.

Usage::

    catalog = EventCatalog(engine)
    catalog.load_all()

    info = catalog.get("DAILY")
    choices = catalog.search("boo")   # → [EventInfo(key="BOOST_SERVER", …)]
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from forkman.database.models import EventDefinition
from forkman.engine.events import EventInfo
from forkman.errors import UnknownEvent

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class EventCatalog:
    """Thread-safe key → :class:`EventInfo` cache over ``event_definitions``."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._events: dict[str, EventInfo] = {}
        self._loaded = False

    # -------------------------------------------------------------------
    # Loading (synchronous — call via run_db from async code)
    # -------------------------------------------------------------------
    def load_all(self) -> int:
        """(Re)load every definition from the DB.  Returns the count."""
        with Session(self._engine) as session:
            rows = session.scalars(
                select(EventDefinition).order_by(EventDefinition.key)
            ).all()
            events = {row.key: EventInfo.from_row(row) for row in rows}
        with self._lock:
            self._events = events
            self._loaded = True
        logger.info("EventCatalog loaded: %d events", len(events))
        return len(events)

    @property
    def loaded(self) -> bool:
        return self._loaded

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def get(self, key: str) -> EventInfo | None:
        with self._lock:
            return self._events.get(key)

    def lookup(self, key: str) -> EventInfo:
        """Like :meth:`get` but raises :class:`UnknownEvent` when absent."""
        info = self.get(key)
        if info is None:
            raise UnknownEvent(key)
        return info

    def all(self) -> list[EventInfo]:
        with self._lock:
            return sorted(self._events.values(), key=lambda e: e.key)

    def search(self, text: str) -> list[EventInfo]:
        """Case-insensitive match on key or display name."""
        needle = text.lower()
        return [
            e for e in self.all()
            if needle in e.key.lower() or needle in e.name.lower()
        ]
