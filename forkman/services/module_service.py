"""
forkman.services.module_service — Per-Guild Module Lifecycle
=============================================================

Lifecycle of a bot module inside one guild::

    (no row) ──load──▶ enabled ◀──enable / disable──▶ disabled

``load_module`` is called whenever a guild becomes available.  It creates
the ``module_state`` row (enabled) on first sight, seeds the event catalog,
and adds any slash command the module introduced since the last load.

Disabling only flips the flag.  The bot stops routing economy commands
for the guild; ledger rows and totals are left untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from forkman.database.models import ModuleState
from forkman.database.seed import seed_default_events
from forkman.engine.modules import CommandFlags, ModuleConfig, schema_for
from forkman.errors import AlreadyDisabled, AlreadyEnabled, ModuleNotLoaded

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ModuleStatus:
    guild_id: str
    module_name: str
    enabled: bool
    commands: dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "guild_id": self.guild_id,
            "module": self.module_name,
            "enabled": self.enabled,
            "commands": dict(self.commands),
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _get_state(session: Session, guild_id: str, module_name: str) -> ModuleState | None:
    return session.scalar(
        select(ModuleState).where(
            ModuleState.guild_id == guild_id,
            ModuleState.module_name == module_name,
        )
    )


def _require_state(session: Session, guild_id: str, module_name: str) -> ModuleState:
    state = _get_state(session, guild_id, module_name)
    if state is None:
        raise ModuleNotLoaded(guild_id, module_name)
    return state


def _to_status(state: ModuleState) -> ModuleStatus:
    flags = CommandFlags.model_validate({"commands": state.command_flags or {}})
    return ModuleStatus(
        guild_id=state.guild_id,
        module_name=state.module_name,
        enabled=state.enabled,
        commands=dict(flags.commands),
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
def load_module(
    engine: Engine,
    guild_id: str,
    module_name: str,
    commands: tuple[str, ...] | list[str],
    *,
    description: str | None = None,
) -> ModuleStatus:
    """Create or refresh the module row for *guild_id*.

    New rows start enabled with every command enabled and the schema's
    default config.  Existing rows keep their flags; commands missing from
    the stored map are added as enabled.
    """
    guild_id = str(guild_id)
    schema = schema_for(module_name)

    with Session(engine, expire_on_commit=False) as session:
        state = _get_state(session, guild_id, module_name)
        if state is None:
            logger.debug("Module %s not found for guild %s, creating…", module_name, guild_id)
            state = ModuleState(
                guild_id=guild_id,
                module_name=module_name,
                description=description,
                enabled=True,
                command_flags={name: True for name in commands},
                config=schema().model_dump(),
            )
            session.add(state)
        else:
            flags = CommandFlags.model_validate({"commands": state.command_flags or {}})
            added = flags.reconcile(commands)
            if added:
                logger.info(
                    "Module %s in guild %s: enabling new commands %s",
                    module_name, guild_id, added,
                )
                # Reassign so the JSON column is flagged dirty.
                state.command_flags = dict(flags.commands)
        session.commit()
        status = _to_status(state)

    seed_default_events(engine)

    logger.debug(
        "Module %s loaded for guild %s (enabled=%s)",
        module_name, guild_id, status.enabled,
    )
    return status


def module_status(engine: Engine, guild_id: str, module_name: str) -> ModuleStatus:
    with Session(engine) as session:
        return _to_status(_require_state(session, str(guild_id), module_name))


def is_enabled(engine: Engine, guild_id: str, module_name: str) -> bool:
    """``False`` for disabled or never-loaded modules."""
    with Session(engine) as session:
        state = _get_state(session, str(guild_id), module_name)
        return bool(state and state.enabled)


def enable_module(engine: Engine, guild_id: str, module_name: str) -> ModuleStatus:
    with Session(engine, expire_on_commit=False) as session:
        state = _require_state(session, str(guild_id), module_name)
        if state.enabled:
            raise AlreadyEnabled(module_name)
        state.enabled = True
        session.commit()
        logger.info("Module %s enabled for guild %s", module_name, guild_id)
        return _to_status(state)


def disable_module(engine: Engine, guild_id: str, module_name: str) -> ModuleStatus:
    with Session(engine, expire_on_commit=False) as session:
        state = _require_state(session, str(guild_id), module_name)
        if not state.enabled:
            raise AlreadyDisabled(module_name)
        state.enabled = False
        session.commit()
        logger.info("Module %s disabled for guild %s", module_name, guild_id)
        return _to_status(state)


def set_command_enabled(
    engine: Engine, guild_id: str, module_name: str, command: str, enabled: bool,
) -> ModuleStatus:
    """Toggle one command.

    Raises
    ------
    KeyError
        If the module doesn't know *command*.
    """
    with Session(engine, expire_on_commit=False) as session:
        state = _require_state(session, str(guild_id), module_name)
        flags = CommandFlags.model_validate({"commands": state.command_flags or {}})
        if command not in flags.commands:
            raise KeyError(f"Unknown command {command!r} for module {module_name!r}")
        flags.commands[command] = enabled
        state.command_flags = dict(flags.commands)
        session.commit()
        return _to_status(state)


# ---------------------------------------------------------------------------
# Typed config
# ---------------------------------------------------------------------------
def get_module_config(engine: Engine, guild_id: str, module_name: str) -> ModuleConfig:
    """Stored config parsed through the module's schema.

    Falls back to schema defaults for guilds that never loaded the module.
    """
    schema = schema_for(module_name)
    with Session(engine) as session:
        state = _get_state(session, str(guild_id), module_name)
        return schema.model_validate(state.config if state and state.config else {})


def update_module_config(
    engine: Engine, guild_id: str, module_name: str, changes: dict[str, Any],
) -> ModuleConfig:
    """Merge *changes* into the stored config and validate the result.

    Raises
    ------
    ValueError
        If *changes* names a key the schema doesn't define.
    pydantic.ValidationError
        If the merged config violates the schema.  Nothing is written.
    """
    schema = schema_for(module_name)
    unknown = sorted(set(changes) - set(schema.model_fields))
    if unknown:
        raise ValueError(f"Unknown config keys for module {module_name!r}: {unknown}")

    with Session(engine, expire_on_commit=False) as session:
        state = _require_state(session, str(guild_id), module_name)
        current = schema.model_validate(state.config or {}).model_dump()
        updated = schema.model_validate({**current, **changes})
        state.config = updated.model_dump()
        session.commit()
    logger.info(
        "Module %s config updated for guild %s: %s",
        module_name, guild_id, sorted(changes),
    )
    return updated
