"""
Edit role modal and the embed summarising an applied edit.
"""

from typing import Any, Dict, Optional

import discord

from boostrole.services.role_manager import RoleManager
from boostrole.ui.embeds import error_embed, success_embed
from boostrole.util.logger import get_logger
from boostrole.util.role_validation import RoleValidationError

logger = get_logger("edit_role_ui")

CHANGE_LABELS = {"name": "Name", "colour": "Colour", "icon": "Icon"}


def build_edit_success_embed(role: discord.Role, changes: Dict[str, Any]) -> discord.Embed:
    """Summarize an applied edit."""
    embed = success_embed("Role Updated", f"{role.mention} has been updated.")
    for key, value in changes.items():
        shown = "Updated" if key == "icon" else str(value)
        embed.add_field(name=CHANGE_LABELS.get(key, key.title()), value=shown, inline=True)
    return embed


class EditRoleModal(discord.ui.Modal):
    """Form with the role's name, colour and icon URL. Empty fields are left unchanged."""

    def __init__(self, role: discord.Role, role_manager: RoleManager, *, max_name_length: int = 32):
        super().__init__(title="Edit Custom Role")
        self.role = role
        self.role_manager = role_manager

        self.name_input = discord.ui.InputText(
            label="Role name",
            placeholder=role.name,
            required=False,
            max_length=max_name_length,
        )
        self.color_input = discord.ui.InputText(
            label="Colour (HEX)",
            placeholder="#FF0000",
            required=False,
            max_length=7,
        )
        self.icon_input = discord.ui.InputText(
            label="Icon URL (PNG or JPEG, max 256 KB)",
            placeholder="https://example.com/icon.png",
            required=False,
        )
        self.add_item(self.name_input)
        self.add_item(self.color_input)
        self.add_item(self.icon_input)

    async def apply_changes(
        self,
        editor: discord.abc.User,
        name: Optional[str],
        color: Optional[str],
        icon_url: Optional[str],
    ) -> discord.Embed:
        """Validate and apply the submitted values, returning the reply embed."""
        icon = await self.role_manager.fetch_icon(icon_url) if icon_url and icon_url.strip() else None
        changes = await self.role_manager.edit_role(self.role, editor=editor, name=name, color=color, icon=icon)
        return build_edit_success_embed(self.role, changes)

    async def callback(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        try:
            embed = await self.apply_changes(
                interaction.user,
                self.name_input.value,
                self.color_input.value,
                self.icon_input.value,
            )
        except RoleValidationError as exc:
            embed = error_embed("Invalid Input", str(exc))
        except discord.Forbidden:
            embed = error_embed("Missing Permission", "I can't edit that role. Is my role above it?")
        except discord.HTTPException as exc:
            logger.error("[EDIT ROLE UI] Editing role %s failed: %s", self.role.id, exc)
            embed = error_embed("Discord Error", "Updating the role failed. Please try again later.")
        await interaction.followup.send(embed=embed, ephemeral=True)
