"""
forkman.bot.cogs.economy — Economy Slash Commands & Award Hooks
================================================================

Member commands:
- /daily — claim the DAILY event
- /leaderboard — top members by points
- /points — your (or another member's) total and rank
- /events — the event catalog

Admin commands:
- /give — award one event to one member
- /giveall — award one event to every non-bot member

Listeners award JOIN_SERVER when a member joins and BOOST_SERVER when a
member starts boosting.  Nothing here runs for guilds whose economy module
is disabled, and each command also honours its own per-guild flag.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from forkman.bot.cogs.admin import is_admin
from forkman.constants import (
    BOOST_SERVER_EVENT,
    DAILY_EVENT,
    ECONOMY_MODULE,
    JOIN_SERVER_EVENT,
    MAX_AUTOCOMPLETE_CHOICES,
)
from forkman.database.engine import run_db
from forkman.engine.modules import EconomyConfig
from forkman.errors import (
    ModuleNotLoaded,
    OccurrenceLimitReached,
    StoreFailure,
    UnknownEvent,
)
from forkman.services import ledger_service
from forkman.services.award_service import award_event, award_event_to_all
from forkman.services.embeds import (
    build_award_embed,
    build_bulk_award_embed,
    build_daily_embed,
    build_error_embed,
    build_events_embed,
    build_leaderboard_embed,
    build_points_embed,
)
from forkman.services.module_service import get_module_config, module_status

if TYPE_CHECKING:
    from forkman.bot.core import ForkmanBot

logger = logging.getLogger(__name__)


class Economy(commands.Cog, name="Economy"):
    """Points, leaderboard and event awards."""

    def __init__(self, bot: ForkmanBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # Gating
    # -------------------------------------------------------------------
    async def _available(self, guild_id: int | None, command: str | None = None) -> bool:
        """True when the module, and *command* if given, are enabled."""
        if guild_id is None:
            return False
        try:
            state = await run_db(module_status, self.bot.engine, str(guild_id), ECONOMY_MODULE)
        except ModuleNotLoaded:
            return False
        if not state.enabled:
            return False
        return command is None or state.commands.get(command, False)

    async def _refuse(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(
            "The economy is not enabled on this server.", ephemeral=True,
        )

    async def _config(self, guild_id: int) -> EconomyConfig:
        return await run_db(get_module_config, self.bot.engine, str(guild_id), ECONOMY_MODULE)

    # -------------------------------------------------------------------
    # /daily
    # -------------------------------------------------------------------
    @app_commands.command(name="daily", description="Claim your daily reward")
    @app_commands.guild_only()
    async def daily(self, interaction: discord.Interaction) -> None:
        if not await self._available(interaction.guild_id, "daily"):
            await self._refuse(interaction)
            return

        try:
            result = await run_db(
                award_event,
                self.bot.engine,
                str(interaction.guild_id),
                str(interaction.user.id),
                DAILY_EVENT,
            )
        except OccurrenceLimitReached:
            await interaction.response.send_message(
                embed=build_error_embed(
                    "Daily Reward",
                    "You have already claimed your daily reward.",
                ),
                ephemeral=True,
            )
            return
        except (UnknownEvent, StoreFailure):
            await interaction.response.send_message(
                embed=build_error_embed(
                    "Daily Reward Error",
                    "Something went wrong while claiming your reward. Try again later.",
                ),
                ephemeral=True,
            )
            return

        await interaction.response.send_message(embed=build_daily_embed(result))

    # -------------------------------------------------------------------
    # /leaderboard
    # -------------------------------------------------------------------
    @app_commands.command(name="leaderboard", description="Show the top server members by points")
    @app_commands.guild_only()
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        if not await self._available(interaction.guild_id, "leaderboard"):
            await self._refuse(interaction)
            return

        cfg = await self._config(interaction.guild_id)
        rows = await run_db(
            ledger_service.get_top_users,
            self.bot.engine,
            str(interaction.guild_id),
            cfg.leaderboard_size,
        )
        if not rows:
            await interaction.response.send_message(
                embed=build_error_embed("Leaderboard", "No leaderboard data found!"),
            )
            return
        await interaction.response.send_message(
            embed=build_leaderboard_embed(rows, footer=self.bot.cfg.bot_name),
        )

    # -------------------------------------------------------------------
    # /points
    # -------------------------------------------------------------------
    @app_commands.command(name="points", description="Show your (or another member's) points")
    @app_commands.describe(member="The member to look up (defaults to you)")
    @app_commands.guild_only()
    async def points(
        self, interaction: discord.Interaction, member: discord.Member | None = None,
    ) -> None:
        if not await self._available(interaction.guild_id, "points"):
            await self._refuse(interaction)
            return

        target = member or interaction.user
        guild_id = str(interaction.guild_id)
        total = await run_db(
            ledger_service.get_user_total, self.bot.engine, guild_id, str(target.id),
        )
        rank = await run_db(
            ledger_service.get_user_rank, self.bot.engine, guild_id, str(target.id),
        )
        await interaction.response.send_message(
            embed=build_points_embed(
                target.display_name, target.display_avatar.url, total, rank,
            ),
            ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /events
    # -------------------------------------------------------------------
    @app_commands.command(name="events", description="List the events that award points")
    @app_commands.guild_only()
    async def events(self, interaction: discord.Interaction) -> None:
        if not await self._available(interaction.guild_id, "events"):
            await self._refuse(interaction)
            return
        await interaction.response.send_message(
            embed=build_events_embed(self.bot.catalog.all()), ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /give
    # -------------------------------------------------------------------
    @app_commands.command(name="give", description="Give an event-based reward to a user")
    @app_commands.describe(user="Select a user to reward", event="Which event key to award?")
    @app_commands.guild_only()
    @is_admin()
    async def give(
        self, interaction: discord.Interaction, user: discord.Member, event: str,
    ) -> None:
        if not await self._available(interaction.guild_id, "give"):
            await self._refuse(interaction)
            return

        try:
            result = await run_db(
                award_event, self.bot.engine, str(interaction.guild_id), str(user.id), event,
            )
        except UnknownEvent:
            await interaction.response.send_message(
                embed=build_error_embed("Unknown Event", f"No event with key `{event}`."),
                ephemeral=True,
            )
            return
        except OccurrenceLimitReached as exc:
            await interaction.response.send_message(
                embed=build_error_embed(
                    "Limit Reached",
                    f"{user.display_name} already received `{event}` "
                    f"{exc.max_occurrence} time(s).",
                ),
                ephemeral=True,
            )
            return
        except StoreFailure:
            await interaction.response.send_message(
                embed=build_error_embed("Award Failed", "Could not record the award."),
                ephemeral=True,
            )
            return

        info = self.bot.catalog.get(result.event_key)
        await interaction.response.send_message(
            embed=build_award_embed(
                result,
                info.name if info else result.event_key,
                interaction.user.display_name,
            ),
        )

    @give.autocomplete("event")
    async def _event_autocomplete(
        self, interaction: discord.Interaction, current: str,
    ) -> list[app_commands.Choice[str]]:
        return [
            app_commands.Choice(name=f"{e.name} ({e.points:,})", value=e.key)
            for e in self.bot.catalog.search(current)
        ][:MAX_AUTOCOMPLETE_CHOICES]

    # -------------------------------------------------------------------
    # /giveall
    # -------------------------------------------------------------------
    @app_commands.command(
        name="giveall", description="Give an event-based reward to everyone in the server",
    )
    @app_commands.describe(event="Which event key to award?")
    @app_commands.guild_only()
    @is_admin()
    async def giveall(self, interaction: discord.Interaction, event: str) -> None:
        if not await self._available(interaction.guild_id, "giveall"):
            await self._refuse(interaction)
            return
        if self.bot.catalog.get(event) is None:
            await interaction.response.send_message(
                embed=build_error_embed("Unknown Event", f"No event with key `{event}`."),
                ephemeral=True,
            )
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        cfg = await self._config(interaction.guild_id)

        guild = interaction.guild
        try:
            user_ids = [
                str(m.id)
                async for m in guild.fetch_members(limit=cfg.giveall_member_limit)
                if not m.bot
            ]
        except discord.HTTPException:
            logger.exception("Could not fetch members of guild %s", guild.id)
            await interaction.followup.send(
                embed=build_error_embed(
                    "Error Retrieving Guild Members",
                    "Could not fetch guild members. Try again later?",
                ),
                ephemeral=True,
            )
            return

        result = await award_event_to_all(
            self.bot.engine,
            str(guild.id),
            event,
            user_ids,
            concurrency=cfg.giveall_concurrency,
        )
        await interaction.followup.send(embed=build_bulk_award_embed(result), ephemeral=True)

    giveall.autocomplete("event")(_event_autocomplete)

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            await interaction.response.send_message(
                "🔒 You need the Admin role to award events.", ephemeral=True,
            )
        else:
            raise error

    # -------------------------------------------------------------------
    # Award hooks
    # -------------------------------------------------------------------
    async def _hook_award(self, member: discord.Member, event_key: str) -> None:
        if member.bot or not await self._available(member.guild.id):
            return
        try:
            await run_db(
                award_event, self.bot.engine, str(member.guild.id), str(member.id), event_key,
            )
        except OccurrenceLimitReached:
            logger.debug("%s already awarded to %s", event_key, member.id)
        except (UnknownEvent, StoreFailure):
            logger.exception(
                "Hook award %s failed for %s", event_key, member.id,
                extra={"event_key": event_key, "user_id": member.id},
            )

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        await self._hook_award(member, JOIN_SERVER_EVENT)

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        if before.premium_since is None and after.premium_since is not None:
            await self._hook_award(after, BOOST_SERVER_EVENT)


async def setup(bot: ForkmanBot) -> None:
    await bot.add_cog(Economy(bot))
