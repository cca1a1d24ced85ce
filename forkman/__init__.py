"""
forkman — Points & Achievements Economy for Discord Guilds
============================================================
Awards points to members for defined events (daily claims, boosting the
server, submitting a deposit, ...), enforces per-event occurrence limits,
and exposes a per-guild leaderboard.  Each guild can switch the economy
module on or off without losing its ledger.

Package layout::

    forkman/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Module names, rank badges
    ├── errors.py          # Economy error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # ORM models (4 tables)
    │   └── seed.py        # Built-in event catalog seeder
    ├── engine/
    │   ├── events.py      # Award / leaderboard result dataclasses
    │   ├── catalog.py     # Read-only in-memory event catalog
    │   └── modules.py     # Typed per-module configuration schemas
    ├── services/
    │   ├── award_service.py          # The award transaction + fan-out
    │   ├── ledger_service.py         # Totals, leaderboard, history
    │   ├── module_service.py         # Enable / disable / status
    │   ├── reconciliation_service.py # Rebuild totals from the ledger
    │   └── embeds.py                 # Discord embed builders
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader, per-guild module load
    │   └── cogs/
    │       ├── economy.py # Economy slash commands + join / boost hooks
    │       ├── admin.py   # /economy status|enable|disable|command
    │       └── tasks.py   # Catalog refresh + points reconciliation
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config, JWT admin guard
        └── routes/        # Public + admin economy endpoints
"""

__version__ = "0.1.0"
