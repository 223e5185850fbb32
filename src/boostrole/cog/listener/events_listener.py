"""Event listener Cog for Boostrole.

Handles bot lifecycle and application command events: presence and the
startup entry on ``on_ready``, plus an activity entry for every completed or
failed slash command.
"""

import discord
from discord.ext import commands

from boostrole.datatypes.role_datatypes import LogEvent
from boostrole.services.bot_services import BotServices
from boostrole.util.discord_utils import respond_error
from boostrole.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Handles Discord bot lifecycle and command events."""

    def __init__(self, bot: discord.Bot, services: BotServices) -> None:
        self.bot = bot
        self.services = services
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    # ------------------------------------------------------------------
    # Lifecycle events
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """Set presence and record the startup in every guild's activity log."""
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected; user info not yet available.")
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(type=discord.ActivityType.listening, name="/edit-role"),
        )

        total_users = sum(guild.member_count or 0 for guild in self.bot.guilds)
        logger.info(
            "Bot connected as %s (ID: %s) • %d server(s) • %d user(s)",
            self.bot.user, self.bot.user.id, len(self.bot.guilds), total_users,
        )

        for guild in self.bot.guilds:
            self.services.activity_log.log(
                LogEvent.BOT_STARTUP,
                {
                    "guild_id": guild.id,
                    "bot_tag": str(self.bot.user),
                    "total_servers": len(self.bot.guilds),
                    "total_users": total_users,
                },
            )

    # ------------------------------------------------------------------
    # Application command events
    # ------------------------------------------------------------------

    @commands.Cog.listener(name="on_application_command_completion")
    async def on_application_command_completion(self, ctx: discord.ApplicationContext) -> None:
        self.services.activity_log.log(
            LogEvent.COMMAND_EXECUTE,
            {
                "guild_id": ctx.guild_id,
                "command": ctx.command.qualified_name if ctx.command else None,
                "user_id": ctx.author.id,
            },
        )

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(
        self, ctx: discord.ApplicationContext, error: discord.DiscordException
    ) -> None:
        original = getattr(error, "original", error)
        command = ctx.command.qualified_name if ctx.command else None
        logger.error(
            "[EVENTS LISTENER] /%s failed for %s: %s", command, ctx.author, original, exc_info=original
        )
        self.services.activity_log.log(
            LogEvent.ERROR,
            {
                "guild_id": ctx.guild_id,
                "command": command,
                "user_id": ctx.author.id,
                "type": type(original).__name__,
                "error": str(original),
            },
        )
        await respond_error(ctx, "Error", "Something went wrong while running this command.")


def setup(bot: discord.Bot, services: BotServices) -> None:
    bot.add_cog(EventsListenerCog(bot, services))
