"""Tests for the /settings panel."""

import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from boostrole.cog.commands import settings_cmds
from boostrole.cog.commands.settings_cmds import GuildSettingsCog
from boostrole.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, UserID
from boostrole.datatypes.role_datatypes import ActivityLogEntry, CustomRoleRecord, LogEvent, RoleKind
from boostrole.services.activity_log import ActivityLog
from boostrole.ui.settings_ui import (
    LogChannelSelect,
    PanelScreen,
    SettingsPanelView,
    build_channel_embed,
    build_recent_logs_embed,
    build_role_list_embed,
    build_settings_embed,
)
from boostrole.util.pagination import paginate

from fakes import FakeContext, FakeGuild, FakeMember

ADMIN_PERMISSIONS = discord.Permissions(manage_guild=True)


@pytest.fixture()
def panel_services(services, connection):
    """Services with a real activity log so the panel can read and write settings."""
    services.activity_log = ActivityLog(connection, timezone="UTC")
    return services


@pytest.fixture()
def guild() -> FakeGuild:
    return FakeGuild()


@pytest.fixture()
def admin(guild) -> FakeMember:
    return FakeMember(guild, "Admin", permissions=ADMIN_PERMISSIONS)


def _interaction(user) -> SimpleNamespace:
    return SimpleNamespace(
        user=user,
        response=SimpleNamespace(edit_message=AsyncMock(), send_message=AsyncMock()),
        edit_original_response=AsyncMock(),
    )


class TestEmbeds:
    def test_main_menu(self):
        assert build_settings_embed(None).fields[-1].value == "Not set"
        assert build_settings_embed(ChannelID(5)).fields[-1].value == "<#5>"

    def test_recent_logs(self):
        assert "No activity" in build_recent_logs_embed([], "UTC").description

        entries = [
            ActivityLogEntry(
                "TEST_ROLE_CREATE",
                {"target_id": 9},
                created_at=datetime.datetime(2025, 1, 1, 12, 0, tzinfo=datetime.timezone.utc),
            ),
            ActivityLogEntry("SETTINGS_UPDATE", {"user_id": 3}),
        ]
        lines = build_recent_logs_embed(entries, "UTC").description.splitlines()

        assert lines[0] == "`2025-01-01 12:00:00` **Test Role Created** • <@9>"
        assert "**Settings Updated** • <@3>" in lines[1]

    def test_channel_screen(self):
        assert "Not set" in build_channel_embed(None).description

    def test_role_list(self, guild):
        assert "no custom roles" in build_role_list_embed(paginate([], 1, 10)).description

        role = guild.add_role("[Custom] Alice")
        owner = FakeMember(guild, "Alice")
        owner.roles.append(role)
        record = CustomRoleRecord(GuildID(guild.id), RoleID(role.id), UserID(owner.id), RoleKind.CUSTOM)

        embed = build_role_list_embed(paginate([(role, record)], 1, 10))

        assert embed.description == f"1. <@&{role.id}> • owner <@{owner.id}> • custom • 1 member(s)"
        assert embed.footer.text == "Page 1/1 • 1 role(s)"


class TestSettingsPanelView:
    @pytest.mark.asyncio
    async def test_main_screen(self, panel_services, guild):
        view = SettingsPanelView(guild, panel_services)
        await view.load()

        assert view.screen is PanelScreen.MAIN
        assert [item.label for item in view.children] == ["View Logs", "Set Log Channel", "List Roles", "Close"]
        assert view.build_embed().title == "⚙️ Custom Role Settings"

    @pytest.mark.asyncio
    async def test_channel_screen_and_selection(self, panel_services, guild, admin):
        view = SettingsPanelView(guild, panel_services)

        await view.show(PanelScreen.CHANNEL)
        assert isinstance(view.children[0], LogChannelSelect)

        await view.set_log_channel(77, admin.id)
        await panel_services.activity_log.flush()

        assert view.log_channel_id == ChannelID(77)
        assert await panel_services.activity_log.get_log_channel(GuildID(guild.id)) == ChannelID(77)
        entries = await panel_services.activity_log.recent(GuildID(guild.id))
        assert entries[0].event_type == LogEvent.SETTINGS_UPDATE.value
        assert entries[0].details["channel_id"] == 77

    @pytest.mark.asyncio
    async def test_logs_screen(self, panel_services, guild):
        panel_services.activity_log.log(LogEvent.BOOST_START, {"guild_id": guild.id, "user_id": 1, "role_id": 2})
        await panel_services.activity_log.flush()
        view = SettingsPanelView(guild, panel_services)

        await view.show(PanelScreen.LOGS)

        assert len(view.entries) == 1
        assert "New Booster" in view.build_embed().description

    @pytest.mark.asyncio
    async def test_roles_screen_pages(self, panel_services, guild):
        for index in range(12):
            await panel_services.role_manager.create_custom_role(FakeMember(guild, f"member{index}"))
        view = SettingsPanelView(guild, panel_services)

        await view.show(PanelScreen.ROLES)
        assert len(view.roles) == 12
        previous, following = view.children[:2]
        assert previous.disabled and not following.disabled

        await following.callback(_interaction(None))
        assert view.role_page == 2
        assert view.build_embed().footer.text == "Page 2/2 • 12 role(s)"

    @pytest.mark.asyncio
    async def test_screen_button_switches_screen(self, panel_services, guild, admin):
        view = SettingsPanelView(guild, panel_services)
        interaction = _interaction(admin)

        await view.children[0].callback(interaction)

        assert view.screen is PanelScreen.LOGS
        kwargs = interaction.response.edit_message.await_args.kwargs
        assert kwargs["view"] is view
        assert kwargs["embed"].title == "📝 Recent Activity"

    @pytest.mark.asyncio
    async def test_non_admins_are_rejected(self, panel_services, guild):
        view = SettingsPanelView(guild, panel_services)
        interaction = _interaction(FakeMember(guild, "Member"))

        await view.children[0].callback(interaction)

        assert view.screen is PanelScreen.MAIN
        interaction.response.send_message.assert_awaited_once()
        interaction.response.edit_message.assert_not_awaited()


class TestSettingsCommand:
    def test_setup_adds_cog(self, services):
        captured = {}
        settings_cmds.setup(SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog)), services)
        assert isinstance(captured["cog"], GuildSettingsCog)

    @pytest.mark.asyncio
    async def test_opens_panel(self, panel_services, guild, admin):
        cog = GuildSettingsCog(SimpleNamespace(), panel_services)
        ctx = FakeContext(guild, admin)

        await GuildSettingsCog.settings_panel.callback(cog, ctx)

        kwargs = ctx.respond.await_args.kwargs
        assert kwargs["ephemeral"] is True
        assert isinstance(kwargs["view"], SettingsPanelView)

    @pytest.mark.asyncio
    async def test_requires_manage_guild(self, panel_services, guild):
        cog = GuildSettingsCog(SimpleNamespace(), panel_services)
        ctx = FakeContext(guild, FakeMember(guild, "Member"))

        await GuildSettingsCog.settings_panel.callback(cog, ctx)

        assert ctx.sent_embeds()[0].title == "❌ Missing Permission"
        assert "Manage Server" in ctx.sent_embeds()[0].description

    @pytest.mark.asyncio
    async def test_failure_is_reported_and_logged(self, services, guild, admin, activity_log):
        # the default activity log mock cannot be awaited, so loading the panel fails
        cog = GuildSettingsCog(SimpleNamespace(), services)
        ctx = FakeContext(guild, admin)

        await GuildSettingsCog.settings_panel.callback(cog, ctx)

        assert ctx.sent_embeds()[0].title == "❌ Error"
        assert activity_log.log.call_args.args[0] is LogEvent.ERROR
