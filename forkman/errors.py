"""
forkman.errors — Economy Error Taxonomy
========================================

Every failure the award engine and module lifecycle can report.  Callers
catch the specific subclass they can render nicely (a limit reached is an
expected outcome, not a crash) and let the rest propagate.
"""

from __future__ import annotations


class EconomyError(Exception):
    """Base class for all economy errors."""


class UnknownEvent(EconomyError):
    """The event key is not in the catalog."""

    def __init__(self, event_key: str) -> None:
        super().__init__(f"Unknown event key [{event_key}]")
        self.event_key = event_key


class OccurrenceLimitReached(EconomyError):
    """The user already triggered the event the maximum number of times."""

    def __init__(self, event_key: str, max_occurrence: int) -> None:
        super().__init__(
            f"MaxOccurrence for event [{event_key}] reached ({max_occurrence})"
        )
        self.event_key = event_key
        self.max_occurrence = max_occurrence


class StoreFailure(EconomyError):
    """The backing store failed.  Nothing from the attempt was committed."""


class ModuleError(EconomyError):
    """Base class for module lifecycle errors."""


class ModuleNotLoaded(ModuleError):
    def __init__(self, guild_id: str, module_name: str) -> None:
        super().__init__(f"Module {module_name!r} is not loaded for guild {guild_id}")
        self.guild_id = guild_id
        self.module_name = module_name


class AlreadyEnabled(ModuleError):
    def __init__(self, module_name: str) -> None:
        super().__init__(f"Module {module_name!r} is already enabled")


class AlreadyDisabled(ModuleError):
    def __init__(self, module_name: str) -> None:
        super().__init__(f"Module {module_name!r} is already disabled")
