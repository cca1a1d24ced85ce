"""
forkman.constants — Shared Constants
=====================================

Single source of truth for module names and presentation constants.
Import from here instead of duplicating in cogs, services, and routes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Module identity (``module_state.module_name``)
# ---------------------------------------------------------------------------
ECONOMY_MODULE = "economy"
ECONOMY_DESCRIPTION = "Points & achievements system"

# Slash commands owned by the economy module.  New names added here are
# picked up by ``load_module`` and default to enabled.
ECONOMY_COMMANDS: tuple[str, ...] = (
    "daily",
    "leaderboard",
    "points",
    "events",
    "give",
    "giveall",
)

# ---------------------------------------------------------------------------
# Event keys fired by listeners rather than commands
# ---------------------------------------------------------------------------
DAILY_EVENT = "DAILY"
JOIN_SERVER_EVENT = "JOIN_SERVER"
BOOST_SERVER_EVENT = "BOOST_SERVER"

# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉

# Discord caps autocomplete results at 25.
MAX_AUTOCOMPLETE_CHOICES = 25
