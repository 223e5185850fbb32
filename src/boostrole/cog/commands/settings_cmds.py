"""
Settings cog: /settings.

Opens the admin panel for the log channel, recent activity and the list of
custom roles. Requires the Manage Server permission; the panel is
ephemeral so configuration never leaks into public channels.
"""

import discord
from discord.ext import commands

from boostrole.datatypes.role_datatypes import LogEvent
from boostrole.services.bot_services import BotServices
from boostrole.ui.settings_ui import SettingsPanelView
from boostrole.util.discord_utils import require_permission, respond_error
from boostrole.util.logger import get_logger

logger = get_logger("settings_commands")


class GuildSettingsCog(commands.Cog):
    """Guild-level settings for Boostrole."""

    def __init__(self, discord_bot_instance, services: BotServices):
        self.discord_bot_instance = discord_bot_instance
        self.services = services
        logger.info("[GUILD SETTINGS CMDS] Settings cog loaded")

    @commands.slash_command(
        name="settings",
        description="Open the Boostrole settings panel for this server.",
    )
    async def settings_panel(self, ctx: discord.ApplicationContext):
        """Send the settings panel with its menu buttons."""
        if not await require_permission(ctx, "manage_guild", "Manage Server"):
            return

        try:
            view = SettingsPanelView(ctx.guild, self.services)
            await view.load()
        except Exception as exc:
            logger.exception("[GUILD SETTINGS CMDS] Opening settings for %s failed", ctx.guild_id)
            await respond_error(ctx, "Error", "Could not open the settings panel.")
            self.services.activity_log.log(
                LogEvent.ERROR,
                {"guild_id": ctx.guild_id, "command": "settings", "user_id": ctx.author.id, "error": str(exc)},
            )
            return

        await ctx.respond(embed=view.build_embed(), view=view, ephemeral=True)


def setup(discord_bot_instance, services: BotServices):
    discord_bot_instance.add_cog(GuildSettingsCog(discord_bot_instance, services))
