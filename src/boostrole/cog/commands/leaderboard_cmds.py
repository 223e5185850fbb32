"""
Leaderboard cog: /boost-leaderboard.

Shows the server's boosters ranked by boost age, ten per page.
"""

import discord
from discord.ext import commands

from boostrole.datatypes.role_datatypes import LogEvent
from boostrole.services.bot_services import BotServices
from boostrole.ui.leaderboard_ui import LeaderboardView
from boostrole.util.discord_utils import enforce_cooldown, ensure_guild_context, respond_error
from boostrole.util.logger import get_logger

logger = get_logger("leaderboard_commands")


class LeaderboardCog(commands.Cog):
    """Public booster leaderboard."""

    def __init__(self, discord_bot_instance, services: BotServices):
        self.discord_bot_instance = discord_bot_instance
        self.services = services
        logger.info("[LEADERBOARD CMDS] Leaderboard cog loaded")

    @commands.slash_command(
        name="boost-leaderboard",
        description="Show the server's boosters, longest boosting first.",
    )
    async def boost_leaderboard(self, ctx: discord.ApplicationContext):
        if not await ensure_guild_context(ctx):
            return
        if not await enforce_cooldown(
            ctx,
            self.services.coordinator,
            "boost_leaderboard",
            self.services.config.cooldown_for("default"),
            "boost-leaderboard",
        ):
            return

        await ctx.defer()
        try:
            view = LeaderboardView(ctx.guild, page_size=self.services.config.leaderboard_page_size)
        except Exception as exc:
            logger.exception("[LEADERBOARD CMDS] Building leaderboard for %s failed", ctx.guild_id)
            await respond_error(ctx, "Error", "Could not load the boost leaderboard.")
            self.services.activity_log.log(
                LogEvent.ERROR,
                {"guild_id": ctx.guild_id, "command": "boost-leaderboard", "user_id": ctx.author.id, "error": str(exc)},
            )
            return

        await ctx.followup.send(embed=view.build_embed(), view=view)


def setup(discord_bot_instance, services: BotServices):
    discord_bot_instance.add_cog(LeaderboardCog(discord_bot_instance, services))
