"""
forkman.bot.cogs.tasks — Periodic Background Tasks
====================================================

Scheduled jobs that run on ``discord.ext.tasks`` loops:

- **Catalog refresh** — hourly, reloads the in-memory event catalog so
  definitions edited directly in the database show up in autocomplete.
- **Points reconciliation** — every ``reconcile_interval_hours`` (default
  weekly), rebuilds user_points totals from the event log and corrects
  drift.

Both run via ``run_db()`` so they never block the event loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from forkman.database.engine import run_db
from forkman.services.reconciliation_service import reconcile_points

if TYPE_CHECKING:
    from forkman.bot.core import ForkmanBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for scheduled background maintenance tasks."""

    def __init__(self, bot: ForkmanBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.reconciliation_loop.change_interval(hours=self.bot.cfg.reconcile_interval_hours)
        self.catalog_loop.start()
        self.reconciliation_loop.start()

    async def cog_unload(self) -> None:
        self.catalog_loop.cancel()
        self.reconciliation_loop.cancel()

    # -------------------------------------------------------------------
    # Catalog refresh — runs every hour
    # -------------------------------------------------------------------
    @tasks.loop(hours=1)
    async def catalog_loop(self):
        try:
            count = await run_db(self.bot.catalog.load_all)
            logger.debug("Catalog refreshed: %d events", count)
        except Exception:
            logger.exception("Catalog refresh failed", extra={"task": "catalog"})

    @catalog_loop.before_loop
    async def _wait_catalog(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Points reconciliation
    # -------------------------------------------------------------------
    @tasks.loop(hours=168)
    async def reconciliation_loop(self):
        """Validate user_points totals against the event log and fix drift."""
        try:
            result = await run_db(reconcile_points, self.bot.engine)
            logger.info(
                "Reconciliation task complete: checked=%d corrected=%d",
                result["checked"], result["corrected"],
            )
        except Exception:
            logger.exception("Reconciliation task failed", extra={"task": "reconciliation"})

    @reconciliation_loop.before_loop
    async def _wait_reconciliation(self):
        await self.bot.wait_until_ready()


async def setup(bot: ForkmanBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
