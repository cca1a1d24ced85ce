"""
forkman.bot.cogs.admin — Economy Module Lifecycle Commands
===========================================================

``/economy status|enable|disable|command`` for server admins.  Disabling
hides the economy from members of this guild; the ledger is kept.

All commands require the configured admin_role_id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from forkman.constants import ECONOMY_COMMANDS, ECONOMY_MODULE
from forkman.database.engine import run_db
from forkman.errors import AlreadyDisabled, AlreadyEnabled, ModuleNotLoaded
from forkman.services.module_service import (
    disable_module,
    enable_module,
    module_status,
    set_command_enabled,
)

if TYPE_CHECKING:
    from forkman.bot.core import ForkmanBot

logger = logging.getLogger(__name__)


def is_admin():
    """Decorator that checks if the user has the configured admin role."""
    async def predicate(interaction: discord.Interaction) -> bool:
        bot: ForkmanBot = interaction.client  # type: ignore[assignment]
        if not interaction.user or not hasattr(interaction.user, "roles"):
            return False
        admin_role_id = bot.cfg.admin_role_id
        return any(role.id == admin_role_id for role in interaction.user.roles)
    return app_commands.check(predicate)


class Admin(commands.GroupCog, group_name="economy", group_description="Manage the economy module."):
    """Enable, disable and inspect the economy module for this guild."""

    def __init__(self, bot: ForkmanBot) -> None:
        self.bot = bot
        super().__init__()

    @app_commands.command(name="status", description="Show whether the economy module is enabled.")
    @is_admin()
    async def status(self, interaction: discord.Interaction) -> None:
        try:
            state = await run_db(
                module_status, self.bot.engine, str(interaction.guild_id), ECONOMY_MODULE,
            )
        except ModuleNotLoaded:
            await interaction.response.send_message(
                "The economy module has not been loaded for this server yet.", ephemeral=True,
            )
            return

        flags = "\n".join(
            f"{'✅' if on else '❌'} /{name}" for name, on in sorted(state.commands.items())
        )
        embed = discord.Embed(
            title="Economy Module",
            description=f"Status: **{'enabled' if state.enabled else 'disabled'}**\n\n{flags}",
            color=discord.Color.green() if state.enabled else discord.Color.red(),
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="enable", description="Enable the economy module.")
    @is_admin()
    async def enable(self, interaction: discord.Interaction) -> None:
        try:
            await run_db(enable_module, self.bot.engine, str(interaction.guild_id), ECONOMY_MODULE)
        except AlreadyEnabled:
            await interaction.response.send_message("Module already enabled!", ephemeral=True)
            return
        except ModuleNotLoaded:
            await interaction.response.send_message(
                "The economy module has not been loaded for this server yet.", ephemeral=True,
            )
            return
        logger.info("Economy enabled in guild %s by %s", interaction.guild_id, interaction.user.id)
        await interaction.response.send_message("✅ Economy module enabled.", ephemeral=True)

    @app_commands.command(name="disable", description="Disable the economy module (points are kept).")
    @is_admin()
    async def disable(self, interaction: discord.Interaction) -> None:
        try:
            await run_db(disable_module, self.bot.engine, str(interaction.guild_id), ECONOMY_MODULE)
        except AlreadyDisabled:
            await interaction.response.send_message("Module already disabled!", ephemeral=True)
            return
        except ModuleNotLoaded:
            await interaction.response.send_message(
                "The economy module has not been loaded for this server yet.", ephemeral=True,
            )
            return
        logger.info("Economy disabled in guild %s by %s", interaction.guild_id, interaction.user.id)
        await interaction.response.send_message("✅ Economy module disabled.", ephemeral=True)

    @app_commands.command(name="command", description="Turn a single economy command on or off.")
    @app_commands.describe(name="Command to toggle", enabled="Turn on (True) or off (False)")
    @app_commands.choices(name=[
        app_commands.Choice(name=f"/{cmd}", value=cmd) for cmd in ECONOMY_COMMANDS
    ])
    @is_admin()
    async def toggle_command(
        self, interaction: discord.Interaction, name: str, enabled: bool,
    ) -> None:
        try:
            await run_db(
                set_command_enabled,
                self.bot.engine, str(interaction.guild_id), ECONOMY_MODULE, name, enabled,
            )
        except (KeyError, ModuleNotLoaded) as exc:
            await interaction.response.send_message(f"❌ {exc}", ephemeral=True)
            return
        state = "enabled" if enabled else "disabled"
        await interaction.response.send_message(f"✅ /{name} {state}.", ephemeral=True)

    # -------------------------------------------------------------------
    # Error handler for missing admin role
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            await interaction.response.send_message(
                "🔒 You need the Admin role to manage the economy module.",
                ephemeral=True,
            )
        else:
            raise error


async def setup(bot: ForkmanBot) -> None:
    await bot.add_cog(Admin(bot))
