"""
discord_utils.py
================

Stateless Discord helpers shared by the command cogs: guild and permission
checks, cooldown enforcement and error replies.
"""

from __future__ import annotations

from typing import Optional

import discord

from boostrole.expiry.coordinator import ExpiryCoordinator
from boostrole.ui.embeds import error_embed
from boostrole.util.logger import get_logger
from boostrole.util.time_format import format_wait_message

logger = get_logger("discord_utils")


def has_permission(member: Optional[discord.abc.Snowflake], name: str) -> bool:
    """True when ``member`` has the guild permission ``name`` (e.g. ``"manage_roles"``)."""
    if member is None:
        return False
    permissions = getattr(member, "guild_permissions", None)
    return bool(getattr(permissions, name, False))


async def respond_error(ctx: discord.ApplicationContext, title: str, description: str) -> None:
    """Send an ephemeral error embed, as a followup if the interaction was already answered."""
    embed = error_embed(title, description)
    try:
        if ctx.interaction.response.is_done():
            await ctx.followup.send(embed=embed, ephemeral=True)
        else:
            await ctx.respond(embed=embed, ephemeral=True)
    except discord.HTTPException as exc:
        logger.warning("[DISCORD UTILS] Could not send error reply: %s", exc)


async def ensure_guild_context(ctx: discord.ApplicationContext) -> bool:
    if ctx.guild is None or not isinstance(ctx.author, discord.Member):
        await ctx.respond("This command can only be used in a server.", ephemeral=True)
        return False
    return True


async def require_permission(ctx: discord.ApplicationContext, name: str, label: str) -> bool:
    """Reply with an error and return False when the invoker lacks ``name``."""
    if not await ensure_guild_context(ctx):
        return False
    if not has_permission(ctx.author, name):
        await respond_error(ctx, "Missing Permission", f"You need the **{label}** permission to use this command.")
        return False
    return True


async def enforce_cooldown(
    ctx: discord.ApplicationContext,
    coordinator: ExpiryCoordinator,
    action_key: str,
    window_seconds: float,
    command_name: str,
) -> bool:
    """
    Stamp the invoker's cooldown for ``action_key``.

    Returns True when the command may run. Otherwise the invoker gets an
    ephemeral wait message and False is returned.
    """
    outcome = coordinator.check_and_stamp(ctx.author.id, action_key, window_seconds)
    if outcome.allowed:
        return True

    logger.debug(
        "[DISCORD UTILS] %s blocked on %s for %ss", ctx.author.id, action_key, outcome.seconds_remaining
    )
    await ctx.respond(format_wait_message(outcome.seconds_remaining, command_name), ephemeral=True)
    return False
