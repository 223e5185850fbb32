"""Boost listener Cog for Boostrole.

Grants a custom role when a member starts boosting and removes it when the
boost ends. Detection compares ``premium_since`` before and after a member
update.
"""

import discord
from discord.ext import commands

from boostrole.datatypes.role_datatypes import LogEvent, RoleKind
from boostrole.services.bot_services import BotServices
from boostrole.ui.embeds import boost_embed, build_embed, COLOR_TEST_ROLE
from boostrole.util.logger import get_logger

logger = get_logger("boost_listener")


def build_welcome_embed(member: discord.Member, role: discord.Role) -> discord.Embed:
    embed = boost_embed(
        "Thanks for Boosting!",
        f"Hi {member.mention}, thank you for boosting **{member.guild.name}**!\n"
        "As a reward you get a custom role you can edit however you like.",
    )
    embed.add_field(
        name="🎨 Custom Role",
        value=f"{role.mention}\nUse `/edit-role` to edit your role.",
        inline=False,
    )
    embed.add_field(
        name="📝 Terms",
        value=(
            "• The role is removed when you stop boosting\n"
            "• You can change its name, colour and icon\n"
            "• The role has no special permissions"
        ),
        inline=False,
    )
    return embed


def build_goodbye_embed(member: discord.Member) -> discord.Embed:
    return build_embed(
        "💫",
        "Boost Ended",
        f"Hi {member.mention}, your boost in **{member.guild.name}** has ended.\n"
        "Your custom role was removed. Boost again to get a new one!",
        COLOR_TEST_ROLE,
    )


class BoostListenerCog(commands.Cog):
    """Reacts to members starting or stopping a server boost."""

    def __init__(self, bot: discord.Bot, services: BotServices) -> None:
        self.bot = bot
        self.services = services
        logger.info("[BOOST LISTENER] Boost listener cog loaded")

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        was_booster = before.premium_since is not None
        is_booster = after.premium_since is not None
        if was_booster == is_booster:
            return

        try:
            if is_booster:
                await self.handle_boost_start(after)
            else:
                await self.handle_boost_end(after)
        except Exception as exc:
            logger.exception("[BOOST LISTENER] Boost handling failed for %s in %s", after, after.guild)
            self.services.activity_log.log(
                LogEvent.ERROR,
                {
                    "guild_id": after.guild.id,
                    "user_id": after.id,
                    "type": "BOOST_HANDLER_ERROR",
                    "error": str(exc),
                },
            )

    async def handle_boost_start(self, member: discord.Member) -> None:
        role = await self.services.role_manager.create_custom_role(member)
        await self._send_dm(member, build_welcome_embed(member, role))
        self.services.activity_log.log(
            LogEvent.BOOST_START,
            {"guild_id": member.guild.id, "user_id": member.id, "role_id": role.id},
        )

    async def handle_boost_end(self, member: discord.Member) -> None:
        await self.services.role_manager.remove_custom_role(member, RoleKind.CUSTOM)
        await self._send_dm(member, build_goodbye_embed(member))
        self.services.activity_log.log(
            LogEvent.BOOST_END,
            {"guild_id": member.guild.id, "user_id": member.id},
        )

    async def _send_dm(self, member: discord.Member, embed: discord.Embed) -> None:
        try:
            await member.send(embed=embed)
        except discord.HTTPException:
            logger.debug("[BOOST LISTENER] Couldn't send DM to %s", member)


def setup(bot: discord.Bot, services: BotServices) -> None:
    bot.add_cog(BoostListenerCog(bot, services))
