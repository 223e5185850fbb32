"""
Pytest configuration and fixtures for Boostrole tests.
"""

import os
import sys
import tempfile
from pathlib import Path

# Keep test runs from writing into the project's logs/ directory
os.environ.setdefault("BOOSTROLE_LOG_DIR", tempfile.mkdtemp(prefix="boostrole-logs-"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import pytest
import pytest_asyncio
import yaml

from boostrole.configuration.app_configuration import AppConfig
from boostrole.database.db_connection import ConnectionManager


@pytest_asyncio.fixture()
async def connection():
    """An open in-memory database with the schema applied."""
    manager = ConnectionManager()
    await manager.open(":memory:")
    yield manager
    await manager.close()


@pytest.fixture()
def make_config(tmp_path):
    """Write a YAML mapping to a temporary file and load it as an AppConfig."""

    def _make(data=None) -> AppConfig:
        path = tmp_path / "app_config.yml"
        path.write_text(yaml.safe_dump(data or {}), encoding="utf-8")
        return AppConfig(path)

    return _make


@pytest_asyncio.fixture()
async def coordinator():
    from boostrole.expiry import ExpiryCoordinator

    coordinator = ExpiryCoordinator()
    yield coordinator
    await coordinator.shutdown()


@pytest.fixture()
def activity_log():
    """Records ``log(event_type, details)`` calls without touching Discord."""
    from unittest.mock import MagicMock

    return MagicMock()


@pytest.fixture()
def services(connection, coordinator, activity_log, make_config):
    """BotServices wired to an in-memory database and default configuration."""
    from boostrole.services.bot_services import BotServices
    from boostrole.services.role_manager import RoleManager

    config = make_config()
    return BotServices(
        config=config,
        connection=connection,
        coordinator=coordinator,
        activity_log=activity_log,
        role_manager=RoleManager(connection, coordinator, activity_log, config),
    )
