"""
Guild activity log: SQLite history plus an embed in the guild's log channel.

``ActivityLog.log`` is the fire-and-forget logging collaborator handed to the
task scheduler and used by every cog. It never raises; persistence and
channel delivery run in a background task and their failures only reach
the module logger.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

import discord

from boostrole.database.db_connection import ConnectionManager
from boostrole.datatypes.discord_datatypes import ChannelID, GuildID
from boostrole.datatypes.role_datatypes import ActivityLogEntry, LogEvent
from boostrole.repositories.activity_log_repo import activity_log_repo
from boostrole.repositories.guild_settings_repo import guild_settings_repo
from boostrole.ui.embeds import logs_embed
from boostrole.util.logger import get_logger
from boostrole.util.time_format import format_timestamp

logger = get_logger("activity_log")

LOG_TITLES: Dict[str, str] = {
    LogEvent.BOT_STARTUP.value: "Bot Started",
    LogEvent.BOOST_START.value: "New Booster",
    LogEvent.BOOST_END.value: "Boost Ended",
    LogEvent.ROLE_CREATE.value: "Custom Role Created",
    LogEvent.ROLE_UPDATE.value: "Role Updated",
    LogEvent.ROLE_DELETE.value: "Custom Role Removed",
    LogEvent.TEST_ROLE_CREATE.value: "Test Role Created",
    LogEvent.TEST_ROLE_EXPIRE.value: "Test Role Expired",
    LogEvent.SETTINGS_UPDATE.value: "Settings Updated",
    LogEvent.COMMAND_EXECUTE.value: "Command Executed",
    LogEvent.ACTION_FAILURE.value: "Scheduled Action Failed",
    LogEvent.ERROR.value: "Error",
}

_HIDDEN_KEYS = {"guild_id", "timestamp", "type"}


def _event_name(event_type: str | Enum) -> str:
    return event_type.value if isinstance(event_type, Enum) else str(event_type)


def log_title(event_type: str | Enum) -> str:
    return LOG_TITLES.get(_event_name(event_type), "Log")


def format_log_details(event_type: str | Enum, details: Mapping[str, Any]) -> str:
    """Render the body of a log embed for one event."""
    event = _event_name(event_type)
    get = details.get

    if event == LogEvent.TEST_ROLE_CREATE.value:
        lines = [f"👤 User: <@{get('target_id')}>", f"🎨 Role: <@&{get('role_id')}>"]
        if get("duration_minutes") is not None:
            lines.append(f"⏱️ Duration: {get('duration_minutes')} minute(s)")
        if get("color"):
            lines.append(f"🎯 Colour: {get('color')}")
        if get("user_id"):
            lines.append(f"🛠️ Issued by: <@{get('user_id')}>")
        return "\n".join(lines)
    if event == LogEvent.TEST_ROLE_EXPIRE.value:
        return f"👤 User: <@{get('user_id')}>\n🎨 Role: `{get('role_name', get('role_id'))}`"
    if event == LogEvent.ROLE_UPDATE.value:
        changes = ", ".join(str(k) for k in (get("changes") or {})) or "none"
        return f"🎨 Role: <@&{get('role_id')}>\n👤 Updated by: <@{get('user_id')}>\n📝 Changed: {changes}"
    if event in (LogEvent.BOOST_START.value, LogEvent.ROLE_CREATE.value):
        return f"👤 User: <@{get('user_id')}>\n🎨 Role: <@&{get('role_id')}>"
    if event == LogEvent.BOT_STARTUP.value:
        return f"🤖 Bot: {get('bot_tag')}\n📊 Servers: {get('total_servers')}\n👥 Users: {get('total_users')}"
    if event in (LogEvent.ERROR.value, LogEvent.ACTION_FAILURE.value):
        kind = get("type") or get("error_type") or get("key") or "unknown"
        return f"❌ Error: {get('error')}\n📄 Type: {kind}"

    return "\n".join(f"{key}: {value}" for key, value in details.items() if key not in _HIDDEN_KEYS) or "-"


def build_log_embed(entry: ActivityLogEntry, timezone: str) -> discord.Embed:
    body = format_log_details(entry.event_type, entry.details)
    stamp = format_timestamp(entry.created_at, timezone)
    return logs_embed(log_title(entry.event_type), f"{body}\n\n⏰ Timestamp: {stamp}")


class ActivityLog:
    """
    Records activity entries and mirrors them to per-guild log channels.

    Args:
        connection: Open database connection manager.
        timezone: IANA zone used for timestamps in log embeds.
    """

    def __init__(self, connection: ConnectionManager, *, timezone: str = "Asia/Jakarta") -> None:
        self._connection = connection
        self._timezone = timezone
        self._bot: Optional[discord.Client] = None
        self._channel_cache: Dict[GuildID, Optional[ChannelID]] = {}
        self._pending: Set[asyncio.Task[None]] = set()

    def set_bot(self, bot: Optional[discord.Client]) -> None:
        """Attach the client used to deliver log embeds; ``None`` disables delivery."""
        self._bot = bot

    # ------------------------------------------------------------------
    # Logging collaborator
    # ------------------------------------------------------------------

    def log(self, event_type: str | Enum, details: Mapping[str, Any]) -> None:
        """Record an event in the background. Never raises."""
        try:
            guild_id = details.get("guild_id")
            entry = ActivityLogEntry(
                event_type=_event_name(event_type),
                details=dict(details),
                guild_id=GuildID(guild_id) if guild_id is not None else None,
            )
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("[ACTIVITY LOG] No running event loop; dropped %s", _event_name(event_type))
            return
        except Exception:
            logger.exception("[ACTIVITY LOG] Could not build entry for %s", _event_name(event_type))
            return

        logger.info("[ACTIVITY LOG] %s %s", entry.event_type, entry.details)
        task = loop.create_task(self.record(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def record(self, entry: ActivityLogEntry) -> None:
        """Persist ``entry`` and post it to the log channel, logging any failure."""
        if self._connection.is_open:
            try:
                async with self._connection.transaction() as conn:
                    entry.entry_id = await activity_log_repo.insert(conn, entry)
            except Exception:
                logger.exception("[ACTIVITY LOG] Failed to persist %s", entry.event_type)

        try:
            await self._send_to_log_channel(entry)
        except Exception:
            logger.exception("[ACTIVITY LOG] Failed to deliver %s to the log channel", entry.event_type)

    async def flush(self) -> None:
        """Wait for every background write started so far."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Queries and settings
    # ------------------------------------------------------------------

    async def recent(self, guild_id: GuildID, limit: int = 10) -> List[ActivityLogEntry]:
        async with self._connection.read() as conn:
            return await activity_log_repo.recent(conn, guild_id, limit)

    async def get_log_channel(self, guild_id: GuildID) -> Optional[ChannelID]:
        if guild_id not in self._channel_cache:
            async with self._connection.read() as conn:
                self._channel_cache[guild_id] = await guild_settings_repo.get_log_channel(conn, guild_id)
        return self._channel_cache[guild_id]

    async def set_log_channel(self, guild_id: GuildID, channel_id: Optional[ChannelID]) -> None:
        async with self._connection.transaction() as conn:
            await guild_settings_repo.set_log_channel(conn, guild_id, channel_id)
        self._channel_cache[guild_id] = channel_id
        logger.info("[ACTIVITY LOG] Log channel for guild %s set to %s", guild_id, channel_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _send_to_log_channel(self, entry: ActivityLogEntry) -> None:
        if entry.guild_id is None or self._bot is None:
            return

        channel_id = await self.get_log_channel(entry.guild_id)
        if channel_id is None:
            return

        channel = self._bot.get_channel(channel_id.to_int())
        if channel is None:
            channel = await self._bot.fetch_channel(channel_id.to_int())
        if not isinstance(channel, discord.abc.Messageable):
            logger.warning("[ACTIVITY LOG] Log channel %s is not messageable", channel_id)
            return

        await channel.send(embed=build_log_embed(entry, self._timezone))
