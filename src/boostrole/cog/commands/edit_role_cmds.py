"""
Edit role cog: /edit-role.

Owners of a custom role can rename it, recolour it and set its icon. Without
arguments the command opens a modal; an attached image is applied directly
as the role icon.
"""

import discord
from discord import Option
from discord.ext import commands

from boostrole.services.bot_services import BotServices
from boostrole.ui.edit_role_ui import EditRoleModal, build_edit_success_embed
from boostrole.util.discord_utils import enforce_cooldown, ensure_guild_context, respond_error
from boostrole.util.logger import get_logger
from boostrole.util.role_validation import RoleValidationError, validate_icon_attachment

logger = get_logger("edit_role_commands")


class EditRoleCog(commands.Cog):
    """Self-service editing of a booster's custom role."""

    def __init__(self, discord_bot_instance, services: BotServices):
        self.discord_bot_instance = discord_bot_instance
        self.services = services
        logger.info("[EDIT ROLE CMDS] Edit role cog loaded")

    @commands.slash_command(
        name="edit-role",
        description="Change the name, colour or icon of your custom role.",
    )
    async def edit_role(
        self,
        ctx: discord.ApplicationContext,
        icon: Option(discord.Attachment, "PNG or JPEG image to use as the role icon.", default=None),  # type: ignore
    ):
        if not await ensure_guild_context(ctx):
            return

        role_manager = self.services.role_manager
        role = await role_manager.owned_role(ctx.author)
        if role is None:
            await respond_error(ctx, "No Custom Role", "You don't have a custom role. Boost the server to get one!")
            return

        if not await enforce_cooldown(
            ctx,
            self.services.coordinator,
            "edit_role",
            self.services.config.cooldown_for("edit_role"),
            "edit-role",
        ):
            return

        limits = self.services.config.role_limits
        if icon is None:
            await ctx.send_modal(EditRoleModal(role, role_manager, max_name_length=limits.max_name_length))
            return

        await ctx.defer(ephemeral=True)
        try:
            validate_icon_attachment(icon, min_bytes=limits.min_icon_bytes, max_bytes=limits.max_icon_bytes)
            changes = await role_manager.edit_role(role, editor=ctx.author, icon=await icon.read())
        except RoleValidationError as exc:
            await respond_error(ctx, "Invalid Icon", str(exc))
            return
        except discord.Forbidden:
            await respond_error(ctx, "Missing Permission", "I can't edit that role. Is my role above it?")
            return
        except discord.HTTPException as exc:
            logger.error("[EDIT ROLE CMDS] Setting icon on role %s failed: %s", role.id, exc)
            await respond_error(ctx, "Discord Error", "Updating the role failed. Please try again later.")
            return

        await ctx.followup.send(embed=build_edit_success_embed(role, changes), ephemeral=True)


def setup(discord_bot_instance, services: BotServices):
    discord_bot_instance.add_cog(EditRoleCog(discord_bot_instance, services))
