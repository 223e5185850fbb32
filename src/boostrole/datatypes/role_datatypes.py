"""
Records for custom roles and the activity log.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from boostrole.datatypes.discord_datatypes import GuildID, RoleID, UserID


class RoleKind(str, Enum):
    """Why a role was handed out."""

    CUSTOM = "custom"   # granted for boosting, lives until the boost ends
    TEST = "test"       # granted by an admin, removed by a scheduled task


class LogEvent(str, Enum):
    """Event types written to the activity log."""

    BOT_STARTUP = "BOT_STARTUP"
    BOOST_START = "BOOST_START"
    BOOST_END = "BOOST_END"
    ROLE_CREATE = "ROLE_CREATE"
    ROLE_UPDATE = "ROLE_UPDATE"
    ROLE_DELETE = "ROLE_DELETE"
    TEST_ROLE_CREATE = "TEST_ROLE_CREATE"
    TEST_ROLE_EXPIRE = "TEST_ROLE_EXPIRE"
    SETTINGS_UPDATE = "SETTINGS_UPDATE"
    COMMAND_EXECUTE = "COMMAND_EXECUTE"
    ACTION_FAILURE = "ACTION_FAILURE"
    ERROR = "ERROR"


@dataclass(slots=True)
class CustomRoleRecord:
    """A role created by the bot and the member it belongs to."""

    guild_id: GuildID
    role_id: RoleID
    owner_id: UserID
    kind: RoleKind = RoleKind.CUSTOM
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )


@dataclass(slots=True)
class ActivityLogEntry:
    """One row of the activity log."""

    event_type: str
    details: Dict[str, Any]
    guild_id: GuildID | None = None
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    entry_id: int | None = None
