"""
forkman.services.embeds — Discord embed builders for economy replies
=====================================================================

All embed construction lives here so the cogs only supply data.
"""

from __future__ import annotations

import discord

from forkman.constants import RANK_BADGES
from forkman.engine.events import AwardResult, BulkAwardResult, EventInfo, LeaderboardEntry


def build_error_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(title=title, description=description, color=discord.Color.red())


def build_daily_embed(result: AwardResult) -> discord.Embed:
    return discord.Embed(
        title="Daily Reward Claimed!",
        description=(
            f"You claimed your daily reward!\n"
            f"Your new total is **{result.new_total:,}** points."
        ),
        color=discord.Color.green(),
    )


def build_award_embed(result: AwardResult, event_name: str, admin_name: str) -> discord.Embed:
    """Confirmation for /give, with @mention of the recipient."""
    embed = discord.Embed(
        title="\U0001f381 Event Awarded",
        description=(
            f"<@{result.user_id}> received **{event_name}** "
            f"(+{result.points_awarded:,} points).\n"
            f"New total: **{result.new_total:,}** points."
        ),
        color=discord.Color.green(),
    )
    embed.set_footer(text=f"Awarded by {admin_name}")
    return embed


def build_bulk_award_embed(result: BulkAwardResult) -> discord.Embed:
    lines = [f"Event [{result.event_key}] awarded to **{result.awarded}** of {result.attempted} members!"]
    if result.limit_reached:
        lines.append(f"{len(result.limit_reached)} already had it.")
    if result.failed:
        lines.append(f"{len(result.failed)} failed — check the bot logs.")
    return discord.Embed(
        title="Mass Award Complete",
        description="\n".join(lines),
        color=discord.Color.orange() if result.failed else discord.Color.green(),
    )


def build_leaderboard_embed(rows: list[LeaderboardEntry], footer: str) -> discord.Embed:
    lines = []
    for row in rows:
        badge = RANK_BADGES[row.rank - 1] if row.rank <= len(RANK_BADGES) else f"**{row.rank}.**"
        lines.append(f"{badge} <@{row.user_id}> — {row.points:,} points")
    embed = discord.Embed(
        title=f"\U0001f3c6 Top {len(rows)} Leaderboard",
        description="\n".join(lines),
        color=discord.Color.gold(),
    )
    embed.set_footer(text=footer)
    return embed


def build_points_embed(
    display_name: str, avatar_url: str, total: int, rank: int | None,
) -> discord.Embed:
    embed = discord.Embed(
        title=f"{display_name}'s Points",
        description=f"**{total:,}** points",
        color=discord.Color.purple(),
    )
    embed.set_thumbnail(url=avatar_url)
    embed.add_field(name="Rank", value=f"#{rank}" if rank else "Unranked", inline=True)
    return embed


def build_events_embed(events: list[EventInfo]) -> discord.Embed:
    lines = [
        f"`{e.key}` — {e.name}: **{e.points:,}** pts "
        + ("(unlimited)" if e.unlimited else f"(max {e.max_occurrence})")
        for e in events
    ]
    return discord.Embed(
        title="Economy Events",
        description="\n".join(lines) or "No events defined.",
        color=discord.Color.blurple(),
    )
