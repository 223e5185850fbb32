"""
Boostrole Discord Bot
=====================

A Discord bot that gives server boosters a custom role of their own, lets
staff hand out short-lived test roles, and keeps a per-server activity log.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.
    Resolution order:
    1. BOOSTROLE_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("BOOSTROLE_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from boostrole.configuration.app_configuration import AppConfig, app_config
from boostrole.database.db_connection import ConnectionManager
from boostrole.expiry.coordinator import ExpiryCoordinator
from boostrole.services.activity_log import ActivityLog
from boostrole.services.bot_services import BotServices
from boostrole.services.role_manager import RoleManager
from boostrole.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Returns
    -------
    str
        Discord bot token extracted from the loaded environment.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents Boostrole needs.

    Member updates carry ``premium_since``, so the privileged members
    intent is required for boost detection and the leaderboard.
    """
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


async def build_services(connection: ConnectionManager, config: AppConfig = app_config) -> BotServices:
    """Open the database and wire the services together.

    The activity log is the logging collaborator of the expiry coordinator,
    which in turn drives test role expiry in the role manager.
    """
    await connection.open(config.database_path)
    activity_log = ActivityLog(connection, timezone=config.timezone)
    coordinator = ExpiryCoordinator(log=activity_log.log)
    role_manager = RoleManager(connection, coordinator, activity_log, config)
    return BotServices(
        config=config,
        connection=connection,
        coordinator=coordinator,
        activity_log=activity_log,
        role_manager=role_manager,
    )


def load_cogs(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    """Register all cogs with the provided Discord bot instance."""
    from boostrole.cog.commands import edit_role_cmds, leaderboard_cmds, settings_cmds, test_role_cmds
    from boostrole.cog.listener import boost_listener, events_listener, maintenance_cog

    events_listener.setup(discord_bot_instance, services)
    boost_listener.setup(discord_bot_instance, services)
    maintenance_cog.setup(discord_bot_instance, services)
    test_role_cmds.setup(discord_bot_instance, services)
    edit_role_cmds.setup(discord_bot_instance, services)
    leaderboard_cmds.setup(discord_bot_instance, services)
    settings_cmds.setup(discord_bot_instance, services)

    logger.info("All cogs loaded successfully.")


def create_bot(services: BotServices) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, services)
    services.activity_log.set_bot(bot)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, services: BotServices) -> None:
    """Gracefully stop pending expiry tasks, the bot and the database."""
    try:
        await services.coordinator.shutdown()
    except Exception as exc:
        logger.exception("Error during expiry coordinator shutdown: %s", exc)

    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    services.activity_log.set_bot(None)
    await services.activity_log.flush()

    try:
        await services.connection.close()
    except Exception as exc:
        logger.exception("Error while closing the database: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the services and the bot, returning an exit code."""
    token = load_environment()
    connection = ConnectionManager()

    try:
        logger.info("Initializing database at %s...", app_config.database_path)
        services = await build_services(connection)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    try:
        bot = create_bot(services)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await shutdown_runtime(None, services)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, services)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting Boostrole…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
