"""
Embed builders shared by commands, listeners and the activity log.

Each builder returns a plain :class:`discord.Embed` stamped with the current
UTC time, so callers can keep adding fields.
"""

import datetime

import discord

from boostrole.util.time_format import format_duration

COLOR_SUCCESS = discord.Colour(0x57F287)
COLOR_ERROR = discord.Colour(0xED4245)
COLOR_WARNING = discord.Colour(0xFEE75C)
COLOR_INFO = discord.Colour(0x5865F2)
COLOR_TEST_ROLE = discord.Colour(0x7289DA)
COLOR_BOOST = discord.Colour(0xF47FFF)
COLOR_LOGS = discord.Colour(0x2B2D31)


def build_embed(emoji: str, title: str, description: str, color: discord.Colour = COLOR_LOGS) -> discord.Embed:
    """Base embed: ``"<emoji> <title>"`` heading, description and timestamp."""
    return discord.Embed(
        title=f"{emoji} {title}",
        description=description,
        color=color,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )


def success_embed(title: str, description: str) -> discord.Embed:
    return build_embed("✅", title, description, COLOR_SUCCESS)


def error_embed(title: str, description: str) -> discord.Embed:
    return build_embed("❌", title, description, COLOR_ERROR)


def warning_embed(title: str, description: str) -> discord.Embed:
    return build_embed("⚠️", title, description, COLOR_WARNING)


def info_embed(title: str, description: str) -> discord.Embed:
    return build_embed("ℹ️", title, description, COLOR_INFO)


def temporary_role_embed(title: str, description: str) -> discord.Embed:
    return build_embed("🎯", title, description, COLOR_TEST_ROLE)


def boost_embed(title: str, description: str) -> discord.Embed:
    return build_embed("🚀", title, description, COLOR_BOOST)


def logs_embed(title: str, description: str) -> discord.Embed:
    return build_embed("📝", title, description, COLOR_LOGS)


def settings_embed(title: str, description: str) -> discord.Embed:
    return build_embed("⚙️", title, description, COLOR_INFO)


def role_list_embed(title: str, description: str) -> discord.Embed:
    return build_embed("👥", title, description, COLOR_INFO)


def leaderboard_embed(title: str, description: str) -> discord.Embed:
    return build_embed("🏆", title, description, COLOR_BOOST)


def add_duration_field(embed: discord.Embed, seconds: float, *, inline: bool = True) -> discord.Embed:
    embed.add_field(name="⏱️ Duration", value=format_duration(seconds), inline=inline)
    return embed


def add_expiry_field(embed: discord.Embed, expires_at: datetime.datetime, *, inline: bool = True) -> discord.Embed:
    """Discord renders ``<t:...:R>`` as a live countdown in the reader's locale."""
    embed.add_field(name="⌛ Ends", value=discord.utils.format_dt(expires_at, style="R"), inline=inline)
    return embed
