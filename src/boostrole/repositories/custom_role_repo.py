"""
Repository for the custom_roles table.

``created_at`` is stored as unix seconds so age checks are plain integer
comparisons.
"""

from __future__ import annotations

import datetime
from typing import List, Optional

import aiosqlite

from boostrole.datatypes.discord_datatypes import GuildID, RoleID, UserID
from boostrole.datatypes.role_datatypes import CustomRoleRecord, RoleKind


def _to_record(row) -> CustomRoleRecord:
    return CustomRoleRecord(
        guild_id=GuildID.from_int(row[0]),
        role_id=RoleID.from_int(row[1]),
        owner_id=UserID.from_int(row[2]),
        kind=RoleKind(row[3]),
        created_at=datetime.datetime.fromtimestamp(row[4], tz=datetime.timezone.utc),
    )


_COLUMNS = "guild_id, role_id, owner_id, kind, created_at"


class CustomRoleRepository:
    """Low-level CRUD for roles created by the bot."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, record: CustomRoleRecord) -> None:
        await conn.execute(
            f"""
            INSERT INTO custom_roles ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(role_id) DO UPDATE SET
                owner_id = excluded.owner_id,
                kind     = excluded.kind
            """,
            (
                record.guild_id.to_int(),
                record.role_id.to_int(),
                record.owner_id.to_int(),
                record.kind.value,
                int(record.created_at.timestamp()),
            ),
        )

    @staticmethod
    async def delete(conn: aiosqlite.Connection, role_id: RoleID) -> None:
        await conn.execute("DELETE FROM custom_roles WHERE role_id = ?", (role_id.to_int(),))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, role_id: RoleID) -> Optional[CustomRoleRecord]:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM custom_roles WHERE role_id = ?", (role_id.to_int(),)
        ) as cursor:
            row = await cursor.fetchone()
        return _to_record(row) if row is not None else None

    @staticmethod
    async def for_owner(
        conn: aiosqlite.Connection,
        guild_id: GuildID,
        owner_id: UserID,
        kind: Optional[RoleKind] = None,
    ) -> List[CustomRoleRecord]:
        query = f"SELECT {_COLUMNS} FROM custom_roles WHERE guild_id = ? AND owner_id = ?"
        params: list = [guild_id.to_int(), owner_id.to_int()]
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind.value)
        async with conn.execute(query + " ORDER BY created_at", params) as cursor:
            rows = await cursor.fetchall()
        return [_to_record(row) for row in rows]

    @staticmethod
    async def for_guild(
        conn: aiosqlite.Connection, guild_id: GuildID, kind: Optional[RoleKind] = None
    ) -> List[CustomRoleRecord]:
        query = f"SELECT {_COLUMNS} FROM custom_roles WHERE guild_id = ?"
        params: list = [guild_id.to_int()]
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind.value)
        async with conn.execute(query + " ORDER BY created_at", params) as cursor:
            rows = await cursor.fetchall()
        return [_to_record(row) for row in rows]


custom_role_repo = CustomRoleRepository()
