"""
forkman.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for **infrastructure-only** settings (bot identity,
admin role, dashboard port).  Per-guild economy tuning (leaderboard size,
mass-award limits) lives in the ``module_state`` table and is edited with
the admin API.

Usage::

    from forkman.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.bot_name)          # "forkman"
    print(cfg.admin_role_id)     # 1468816181854081229
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object — infrastructure/identity only.
# Per-guild tuning lives in the DB ``module_state`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ForkmanConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    bot_name: str

    # Discord
    bot_prefix: str
    admin_role_id: int  # Discord role required for /give, /giveall, /economy

    # Dashboard
    dashboard_port: int = 8000

    # Scheduling
    reconcile_interval_hours: int = 168


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> ForkmanConfig:
    """Read *path* and return a :class:`ForkmanConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return ForkmanConfig(
        bot_name=raw["bot_name"],
        bot_prefix=raw.get("bot_prefix", "!"),
        admin_role_id=int(raw["admin_role_id"]),
        dashboard_port=int(raw.get("dashboard_port", 8000)),
        reconcile_interval_hours=int(raw.get("reconcile_interval_hours", 168)),
    )
