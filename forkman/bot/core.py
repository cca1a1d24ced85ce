"""
forkman.bot.core — Bot Instance & Cog Loader
=============================================

Defines :class:`ForkmanBot`, a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``), DB engine (``bot.engine``) and
   event catalog cache (``bot.catalog``) so every Cog can reach them.
2. Loads every Cog listed in :data:`EXTENSIONS`.
3. Syncs the slash-command tree on startup (guild-scoped for dev, global
   otherwise — controlled by the ``DEV_GUILD_ID`` env var).
4. Loads the economy module for every guild it can see, and for guilds it
   joins later.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from forkman.config import ForkmanConfig
from forkman.constants import ECONOMY_COMMANDS, ECONOMY_DESCRIPTION, ECONOMY_MODULE
from forkman.database.engine import run_db
from forkman.engine.catalog import EventCatalog
from forkman.services.module_service import load_module

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "forkman.bot.cogs.economy",
    "forkman.bot.cogs.admin",
    "forkman.bot.cogs.tasks",
]


class ForkmanBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state."""

    def __init__(self, cfg: ForkmanConfig, engine: Engine, catalog: EventCatalog) -> None:
        intents = discord.Intents.default()
        intents.members = True      # Privileged: join / boost tracking, /giveall
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.bot_name} — {ECONOMY_DESCRIPTION}",
        )

        self.cfg = cfg
        self.engine = engine
        self.catalog = catalog

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all Cog extensions and warm the catalog.

        A broken Cog is logged and skipped rather than taking the bot down.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        if not self.catalog.loaded:
            await run_db(self.catalog.load_all)

    async def on_ready(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        for guild in self.guilds:
            await self.load_economy(guild)

    async def on_guild_join(self, guild: discord.Guild) -> None:
        logger.info("Joined guild %s (ID: %d)", guild.name, guild.id)
        await self.load_economy(guild)

    # -----------------------------------------------------------------------
    # Module loading
    # -----------------------------------------------------------------------
    async def load_economy(self, guild: discord.Guild) -> None:
        """Create or refresh the economy module row for *guild*."""
        try:
            status = await run_db(
                load_module,
                self.engine,
                str(guild.id),
                ECONOMY_MODULE,
                ECONOMY_COMMANDS,
                description=ECONOMY_DESCRIPTION,
            )
        except Exception:
            logger.exception("Failed to load economy module for guild %s", guild.id)
            return

        if not status.enabled:
            logger.debug("Economy module disabled for guild %s, commands inactive", guild.name)
            return
        logger.info("Economy module loaded for guild %s", guild.name)
