"""
Repository for the guild_settings table.
"""

from __future__ import annotations

from typing import Optional

import aiosqlite

from boostrole.datatypes.discord_datatypes import ChannelID, GuildID


class GuildSettingsRepository:
    """CRUD for per-guild settings (currently the log channel)."""

    @staticmethod
    async def get_log_channel(conn: aiosqlite.Connection, guild_id: GuildID) -> Optional[ChannelID]:
        async with conn.execute(
            "SELECT log_channel_id FROM guild_settings WHERE guild_id = ?",
            (guild_id.to_int(),),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None or row[0] is None:
            return None
        return ChannelID.from_int(row[0])

    @staticmethod
    async def set_log_channel(
        conn: aiosqlite.Connection, guild_id: GuildID, channel_id: Optional[ChannelID]
    ) -> None:
        """Insert or update the log channel; ``None`` clears it."""
        await conn.execute(
            """
            INSERT INTO guild_settings (guild_id, log_channel_id, updated_at)
            VALUES (?, ?, strftime('%s', 'now'))
            ON CONFLICT(guild_id) DO UPDATE SET
                log_channel_id = excluded.log_channel_id,
                updated_at     = excluded.updated_at
            """,
            (guild_id.to_int(), channel_id.to_int() if channel_id is not None else None),
        )


guild_settings_repo = GuildSettingsRepository()
