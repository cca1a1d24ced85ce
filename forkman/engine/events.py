"""
forkman.engine.events — Economy Value Objects
==============================================

Plain dataclasses passed between the services, the bot, and the API.
No DB sessions or ORM instances leak past the service layer; callers get
these detached snapshots instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from forkman.database.models import EventDefinition

__all__ = [
    "AwardResult",
    "BulkAwardResult",
    "EventInfo",
    "LeaderboardEntry",
]


# ---------------------------------------------------------------------------
# EventInfo — detached catalog entry
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EventInfo:
    """Read-only copy of an :class:`EventDefinition` row."""

    id: int
    key: str
    name: str
    points: int
    max_occurrence: int

    @property
    def unlimited(self) -> bool:
        return self.max_occurrence == 0

    @classmethod
    def from_row(cls, row: EventDefinition) -> EventInfo:
        return cls(
            id=row.id,
            key=row.key,
            name=row.name,
            points=row.points,
            max_occurrence=row.max_occurrence,
        )

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "points": self.points,
            "max_occurrence": self.max_occurrence,
        }


# ---------------------------------------------------------------------------
# AwardResult — outcome of one successful award
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AwardResult:
    guild_id: str
    user_id: str
    event_key: str
    points_awarded: int
    new_total: int
    occurrence: int  # 1-based count of this event for the user after the award


# ---------------------------------------------------------------------------
# BulkAwardResult — outcome of a fan-out award
# ---------------------------------------------------------------------------
@dataclass
class BulkAwardResult:
    """Per-candidate bookkeeping for :func:`award_event_to_all`.

    ``attempted == awarded + len(limit_reached) + len(unknown_event)
    + len(failed)`` always holds.
    """

    event_key: str
    attempted: int = 0
    awarded: int = 0
    limit_reached: list[str] = field(default_factory=list)
    unknown_event: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "event_key": self.event_key,
            "awarded": self.awarded,
            "attempted": self.attempted,
            "limit_reached": len(self.limit_reached),
            "unknown_event": len(self.unknown_event),
            "failed": len(self.failed),
        }


# ---------------------------------------------------------------------------
# LeaderboardEntry
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    points: int

    def to_dict(self) -> dict:
        return {"rank": self.rank, "user_id": self.user_id, "points": self.points}
