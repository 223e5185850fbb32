"""
Container for the long-lived objects every cog needs.

Built once in ``main.create_bot`` and passed to each cog's ``setup``.
"""

from __future__ import annotations

from dataclasses import dataclass

from boostrole.configuration.app_configuration import AppConfig
from boostrole.database.db_connection import ConnectionManager
from boostrole.expiry.coordinator import ExpiryCoordinator
from boostrole.services.activity_log import ActivityLog
from boostrole.services.role_manager import RoleManager


@dataclass(slots=True)
class BotServices:
    config: AppConfig
    connection: ConnectionManager
    coordinator: ExpiryCoordinator
    activity_log: ActivityLog
    role_manager: RoleManager
