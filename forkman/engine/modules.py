"""
forkman.engine.modules — Typed Per-Module Configuration
========================================================

``module_state`` rows are shared by every bot module, but each module
reads and writes its configuration through its own pydantic schema,
registered here under its module name.  Unknown keys in stored JSON are
dropped on read; invalid values are rejected on write.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from forkman.constants import ECONOMY_MODULE


class ModuleConfig(BaseModel):
    """Base schema shared by all modules."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)


class EconomyConfig(ModuleConfig):
    """Per-guild tuning of the economy module."""

    leaderboard_size: int = Field(10, ge=1, le=25)
    giveall_concurrency: int = Field(5, ge=1, le=50)
    giveall_member_limit: int = Field(1000, ge=1, le=100_000)


class CommandFlags(BaseModel):
    """Slash command name → enabled."""

    model_config = ConfigDict(extra="forbid")

    commands: dict[str, bool] = Field(default_factory=dict)

    def reconcile(self, known: tuple[str, ...] | list[str]) -> list[str]:
        """Add *known* commands missing from the map as enabled.

        Returns the names that were added.
        """
        added = [name for name in known if name not in self.commands]
        for name in added:
            self.commands[name] = True
        return added

    def is_enabled(self, name: str) -> bool:
        return self.commands.get(name, False)


MODULE_SCHEMAS: dict[str, type[ModuleConfig]] = {
    ECONOMY_MODULE: EconomyConfig,
}


def schema_for(module_name: str) -> type[ModuleConfig]:
    """Return the config schema for *module_name*.

    Raises
    ------
    KeyError
        If no schema is registered under that name.
    """
    try:
        return MODULE_SCHEMAS[module_name]
    except KeyError:
        raise KeyError(f"No config schema registered for module {module_name!r}") from None
