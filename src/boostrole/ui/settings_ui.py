"""
Admin settings panel opened by /settings.

The panel is a single ephemeral message whose embed and buttons change with
the selected screen: the main menu, recent activity, log channel selection
and the paged list of custom roles.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence, Tuple

import discord

from boostrole.datatypes.discord_datatypes import ChannelID, GuildID
from boostrole.datatypes.role_datatypes import ActivityLogEntry, CustomRoleRecord, LogEvent
from boostrole.services.activity_log import log_title
from boostrole.services.bot_services import BotServices
from boostrole.ui.embeds import logs_embed, role_list_embed, settings_embed
from boostrole.util.logger import get_logger
from boostrole.util.pagination import Page, paginate
from boostrole.util.time_format import format_timestamp

logger = get_logger("settings_ui")

RECENT_LOG_LIMIT = 10
ROLE_PAGE_SIZE = 10

TrackedRole = Tuple[discord.Role, CustomRoleRecord]


class PanelScreen(str, Enum):
    MAIN = "main"
    LOGS = "logs"
    CHANNEL = "channel"
    ROLES = "roles"


def build_settings_embed(log_channel_id: Optional[ChannelID]) -> discord.Embed:
    """Main menu of the panel."""
    embed = settings_embed("Custom Role Settings", "Pick one of the options below.")
    embed.add_field(name="📜 View Logs", value="Recent bot activity", inline=True)
    embed.add_field(name="📌 Set Log Channel", value="Where activity is posted", inline=True)
    embed.add_field(name="👑 List Roles", value="Custom roles in this server", inline=True)
    current = f"<#{log_channel_id}>" if log_channel_id is not None else "Not set"
    embed.add_field(name="Current log channel", value=current, inline=False)
    embed.set_footer(text="Only members with Manage Server can change these settings.")
    return embed


def build_recent_logs_embed(entries: Sequence[ActivityLogEntry], timezone: str) -> discord.Embed:
    if not entries:
        return logs_embed("Recent Activity", "No activity has been recorded yet.")

    lines = []
    for entry in entries:
        stamp = format_timestamp(entry.created_at, timezone)
        actor = entry.details.get("user_id") or entry.details.get("target_id")
        suffix = f" • <@{actor}>" if actor else ""
        lines.append(f"`{stamp}` **{log_title(entry.event_type)}**{suffix}")
    return logs_embed("Recent Activity", "\n".join(lines))


def build_channel_embed(log_channel_id: Optional[ChannelID]) -> discord.Embed:
    current = f"<#{log_channel_id}>" if log_channel_id is not None else "Not set"
    return settings_embed(
        "Set Log Channel",
        f"Current log channel: {current}\nChoose a text channel below.",
    )


def build_role_list_embed(page: Page[TrackedRole]) -> discord.Embed:
    if not page.total_items:
        return role_list_embed("Custom Roles", "There are no custom roles yet.")

    lines = []
    for index, (role, record) in enumerate(page.items, start=page.offset + 1):
        lines.append(
            f"{index}. {role.mention} • owner <@{record.owner_id}> • {record.kind.value} • {len(role.members)} member(s)"
        )
    embed = role_list_embed("Custom Roles", "\n".join(lines))
    embed.set_footer(text=f"Page {page.number}/{page.total_pages} • {page.total_items} role(s)")
    return embed


class SettingsPanelView(discord.ui.View):
    """Interactive settings panel. State lives on the view between button presses."""

    def __init__(self, guild: discord.Guild, services: BotServices, *, timeout_seconds: int = 300):
        super().__init__(timeout=timeout_seconds)
        self.guild = guild
        self.guild_id = GuildID.from_guild(guild)
        self.services = services
        self.screen = PanelScreen.MAIN
        self.log_channel_id: Optional[ChannelID] = None
        self.entries: List[ActivityLogEntry] = []
        self.roles: List[TrackedRole] = []
        self.role_page = 1
        self.refresh_items()

    async def load(self) -> None:
        """Fetch the state shown on the main screen."""
        self.log_channel_id = await self.services.activity_log.get_log_channel(self.guild_id)

    def can_manage(self, member: Optional[discord.abc.Snowflake]) -> bool:
        if member is None:
            return False
        permissions = getattr(member, "guild_permissions", None)
        return bool(getattr(permissions, "manage_guild", False))

    # ------------------------------------------------------------------
    # Screens
    # ------------------------------------------------------------------

    def build_embed(self) -> discord.Embed:
        if self.screen is PanelScreen.LOGS:
            return build_recent_logs_embed(self.entries, self.services.config.timezone)
        if self.screen is PanelScreen.CHANNEL:
            return build_channel_embed(self.log_channel_id)
        if self.screen is PanelScreen.ROLES:
            return build_role_list_embed(paginate(self.roles, self.role_page, ROLE_PAGE_SIZE))
        return build_settings_embed(self.log_channel_id)

    def refresh_items(self) -> None:
        self.clear_items()
        if self.screen is PanelScreen.MAIN:
            self.add_item(ScreenButton(PanelScreen.LOGS, "View Logs", "📜"))
            self.add_item(ScreenButton(PanelScreen.CHANNEL, "Set Log Channel", "📌"))
            self.add_item(ScreenButton(PanelScreen.ROLES, "List Roles", "👑"))
            self.add_item(ClosePanelButton())
            return

        if self.screen is PanelScreen.CHANNEL:
            self.add_item(LogChannelSelect())
        elif self.screen is PanelScreen.ROLES:
            page = paginate(self.roles, self.role_page, ROLE_PAGE_SIZE)
            self.role_page = page.number
            self.add_item(RolePageButton(-1, disabled=not page.has_previous))
            self.add_item(RolePageButton(1, disabled=not page.has_next))
        self.add_item(ScreenButton(PanelScreen.MAIN, "Back", "⬅️", row=2))
        self.add_item(ClosePanelButton())

    async def show(self, screen: PanelScreen) -> None:
        """Switch screens, loading whatever the new screen displays."""
        if screen is PanelScreen.LOGS:
            self.entries = await self.services.activity_log.recent(self.guild_id, RECENT_LOG_LIMIT)
        elif screen is PanelScreen.ROLES:
            self.roles = await self.services.role_manager.list_custom_roles(self.guild)
            self.role_page = 1
        else:
            await self.load()
        self.screen = screen
        self.refresh_items()

    def turn_role_page(self, step: int) -> None:
        self.role_page += step
        self.refresh_items()

    async def set_log_channel(self, channel_id: int, actor_id: int) -> None:
        channel = ChannelID(channel_id)
        await self.services.activity_log.set_log_channel(self.guild_id, channel)
        self.log_channel_id = channel
        self.services.activity_log.log(
            LogEvent.SETTINGS_UPDATE,
            {"guild_id": self.guild_id.to_int(), "user_id": actor_id, "setting": "log_channel", "channel_id": channel_id},
        )

    async def refresh_message(self, interaction: discord.Interaction, *, flash: Optional[str] = None) -> None:
        try:
            await interaction.response.edit_message(content=flash, embed=self.build_embed(), view=self)
        except discord.InteractionResponded:
            try:
                await interaction.edit_original_response(content=flash, embed=self.build_embed(), view=self)
            except discord.HTTPException as exc:
                logger.warning("[SETTINGS UI] Could not update panel: %s", exc)
        except discord.HTTPException as exc:
            logger.warning("[SETTINGS UI] Could not update panel: %s", exc)

    async def reject(self, interaction: discord.Interaction) -> bool:
        """Answer and return True when the user may not use the panel."""
        if self.can_manage(interaction.user):
            return False
        await interaction.response.send_message(
            "You need the Manage Server permission to change settings.",
            ephemeral=True,
        )
        return True

    async def on_timeout(self) -> None:  # pragma: no cover - relies on Discord timers
        self.disable_all_items()
        if self.message is not None:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException:
                pass


class ScreenButton(discord.ui.Button):
    """Switches the panel to another screen."""

    def __init__(self, target: PanelScreen, label: str, emoji: str, *, row: int = 0):
        self.target = target
        super().__init__(label=label, emoji=emoji, style=discord.ButtonStyle.primary, row=row)

    async def callback(self, interaction: discord.Interaction) -> None:
        view: SettingsPanelView = self.view  # type: ignore[assignment]
        if await view.reject(interaction):
            return
        await view.show(self.target)
        await view.refresh_message(interaction)


class RolePageButton(discord.ui.Button):
    def __init__(self, step: int, *, disabled: bool):
        self.step = step
        super().__init__(
            label="Previous" if step < 0 else "Next",
            emoji="◀️" if step < 0 else "▶️",
            style=discord.ButtonStyle.secondary,
            disabled=disabled,
            row=1,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        view: SettingsPanelView = self.view  # type: ignore[assignment]
        view.turn_role_page(self.step)
        await view.refresh_message(interaction)


class LogChannelSelect(discord.ui.Select):
    """Text channel picker for the log channel."""

    def __init__(self):
        super().__init__(
            select_type=discord.ComponentType.channel_select,
            channel_types=[discord.ChannelType.text],
            placeholder="Select a log channel",
            min_values=1,
            max_values=1,
            row=0,
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: SettingsPanelView = self.view  # type: ignore[assignment]
        if await view.reject(interaction):
            return
        channel = self.values[0]
        channel_id = int(getattr(channel, "id", channel))
        await view.set_log_channel(channel_id, interaction.user.id)
        view.screen = PanelScreen.MAIN
        view.refresh_items()
        await view.refresh_message(interaction, flash=f"✅ Log channel set to <#{channel_id}>.")


class ClosePanelButton(discord.ui.Button):
    """Button to close the settings panel and disable controls."""

    def __init__(self):
        super().__init__(label="Close", style=discord.ButtonStyle.danger, row=2, emoji="❌")

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: SettingsPanelView = self.view  # type: ignore[assignment]
        view.disable_all_items()
        view.stop()
        try:
            await interaction.response.edit_message(content="Settings panel closed.", embed=None, view=view)
        except discord.HTTPException as exc:
            logger.debug("[SETTINGS UI] Could not close panel: %s", exc)
