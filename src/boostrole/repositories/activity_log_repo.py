"""
Repository for the activity_log table.

``details`` is stored as a JSON object; values that JSON cannot represent
are stringified on the way in.
"""

from __future__ import annotations

import datetime
import json
from typing import List

import aiosqlite

from boostrole.datatypes.discord_datatypes import GuildID
from boostrole.datatypes.role_datatypes import ActivityLogEntry


class ActivityLogRepository:
    """Append-only storage for activity log entries."""

    @staticmethod
    async def insert(conn: aiosqlite.Connection, entry: ActivityLogEntry) -> int:
        cursor = await conn.execute(
            "INSERT INTO activity_log (guild_id, event_type, details, created_at) VALUES (?, ?, ?, ?)",
            (
                entry.guild_id.to_int() if entry.guild_id is not None else None,
                entry.event_type,
                json.dumps(entry.details, default=str),
                int(entry.created_at.timestamp()),
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    async def recent(conn: aiosqlite.Connection, guild_id: GuildID, limit: int = 10) -> List[ActivityLogEntry]:
        """Newest entries of one guild first."""
        async with conn.execute(
            "SELECT id, guild_id, event_type, details, created_at FROM activity_log "
            "WHERE guild_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (guild_id.to_int(), limit),
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            ActivityLogEntry(
                entry_id=row[0],
                guild_id=GuildID.from_int(row[1]),
                event_type=row[2],
                details=json.loads(row[3] or "{}"),
                created_at=datetime.datetime.fromtimestamp(row[4], tz=datetime.timezone.utc),
            )
            for row in rows
        ]


activity_log_repo = ActivityLogRepository()
