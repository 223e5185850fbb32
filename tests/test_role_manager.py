"""Tests for RoleManager against an in-memory database and fake guild objects."""

import asyncio
import datetime
from unittest.mock import MagicMock

import discord
import pytest

from boostrole.datatypes.discord_datatypes import GuildID, RoleID
from boostrole.datatypes.role_datatypes import LogEvent, RoleKind
from boostrole.repositories.custom_role_repo import custom_role_repo
from boostrole.services.role_manager import (
    RoleLimitError,
    RoleManager,
    temporary_role_key,
)
from boostrole.util.role_validation import RoleValidationError

from fakes import FakeGuild, FakeMember, http_error, utcnow


@pytest.fixture()
def manager(connection, coordinator, activity_log, make_config) -> RoleManager:
    return RoleManager(connection, coordinator, activity_log, make_config())


@pytest.fixture()
def guild() -> FakeGuild:
    return FakeGuild(features=["ROLE_ICONS"])


@pytest.fixture()
def member(guild: FakeGuild) -> FakeMember:
    return FakeMember(guild, "Alice")


def _events(activity_log: MagicMock) -> list:
    return [call.args[0] for call in activity_log.log.call_args_list]


async def _stored(connection, role_id: int):
    async with connection.read() as conn:
        return await custom_role_repo.get(conn, RoleID(role_id))


def test_temporary_role_key() -> None:
    assert temporary_role_key(1, "2") == "1:2:test-role"


class TestCustomRoles:
    @pytest.mark.asyncio
    async def test_create_default_role(self, manager, member, guild, connection, activity_log) -> None:
        role = await manager.create_custom_role(member)

        assert role.name == "[Custom] Alice"
        assert role.colour.value == 0xF47FFF
        assert role in member.roles
        assert role.position == 9
        kwargs = guild.create_role.await_args.kwargs
        assert kwargs["permissions"] == discord.Permissions.none()
        assert kwargs["hoist"] is False
        assert kwargs["mentionable"] is False

        record = await _stored(connection, role.id)
        assert record.owner_id == member.id
        assert record.kind is RoleKind.CUSTOM
        assert _events(activity_log) == [LogEvent.ROLE_CREATE]

    @pytest.mark.asyncio
    async def test_generated_name_may_contain_staff_words(self, manager, guild) -> None:
        role = await manager.create_custom_role(FakeMember(guild, "admin"))
        assert role.name == "[Custom] admin"

    @pytest.mark.asyncio
    async def test_chosen_name_is_validated(self, manager, member) -> None:
        with pytest.raises(RoleValidationError):
            await manager.create_custom_role(member, name="Server Admin")

        role = await manager.create_custom_role(member, name="Night <Owl>", color="#00ff00")
        assert role.name == "Night Owl"
        assert role.colour.value == 0x00FF00

    @pytest.mark.asyncio
    async def test_role_limit(self, manager, member, guild) -> None:
        await manager.create_custom_role(member)

        with pytest.raises(RoleLimitError):
            await manager.create_custom_role(member)
        assert guild.create_role.await_count == 1

    @pytest.mark.asyncio
    async def test_position_failure_is_tolerated(self, manager, member, guild) -> None:
        async def create_role(*, name, colour, **kwargs):
            role = guild.add_role(name, colour=colour)
            role.edit.side_effect = http_error(discord.Forbidden, 403)
            return role

        guild.create_role.side_effect = create_role

        role = await manager.create_custom_role(member)
        assert role in member.roles

    @pytest.mark.asyncio
    async def test_chosen_name_cannot_use_bot_prefixes(self, manager, member, guild) -> None:
        with pytest.raises(RoleValidationError, match="cannot start with"):
            await manager.create_custom_role(member, name="[Test] Sparkle")
        guild.create_role.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_grant_deletes_the_new_role(self, manager, member, guild, connection) -> None:
        member.add_roles.side_effect = http_error(discord.Forbidden, 403, "Missing Permissions")

        with pytest.raises(discord.Forbidden):
            await manager.create_custom_role(member)

        assert guild.roles == []
        async with connection.read() as conn:
            assert await custom_role_repo.for_guild(conn, GuildID.from_guild(guild)) == []

    @pytest.mark.asyncio
    async def test_failed_tracking_deletes_the_new_role(self, manager, member, guild, monkeypatch) -> None:
        async def broken_upsert(conn, record):
            raise RuntimeError("disk full")

        monkeypatch.setattr(custom_role_repo, "upsert", broken_upsert)

        with pytest.raises(RuntimeError):
            await manager.create_custom_role(member)

        assert guild.roles == []
        assert member.roles == []

    @pytest.mark.asyncio
    async def test_remove_tracked_and_prefixed_roles(self, manager, member, guild, connection, activity_log) -> None:
        tracked = await manager.create_custom_role(member)
        stray = guild.add_role("[Custom] leftover")
        await member.add_roles(stray)
        unrelated = guild.add_role("Member")
        await member.add_roles(unrelated)

        removed = await manager.remove_custom_role(member)

        assert removed == 2
        assert tracked not in guild.roles and stray not in guild.roles
        assert member.roles == [unrelated]
        assert await _stored(connection, tracked.id) is None
        assert _events(activity_log).count(LogEvent.ROLE_DELETE) == 2

    @pytest.mark.asyncio
    async def test_remove_tolerates_already_deleted_role(self, manager, member, connection) -> None:
        role = await manager.create_custom_role(member)
        role.delete.side_effect = http_error(discord.NotFound, 404)

        assert await manager.remove_custom_role(member) == 0
        assert await _stored(connection, role.id) is None

    @pytest.mark.asyncio
    async def test_owned_role(self, manager, member, guild) -> None:
        assert await manager.owned_role(member) is None

        role = await manager.create_custom_role(member)
        assert await manager.owned_role(member) is role

        other = FakeMember(guild, "Bob")
        legacy = guild.add_role("[Custom] Bob")
        await other.add_roles(legacy)
        assert await manager.owned_role(other) is legacy

    @pytest.mark.asyncio
    async def test_list_custom_roles_highest_first(self, manager, guild) -> None:
        low = await manager.create_custom_role(FakeMember(guild, "Low"))
        high = await manager.create_custom_role(FakeMember(guild, "High"))
        low.position, high.position = 3, 7
        gone = await manager.create_custom_role(FakeMember(guild, "Gone"))
        guild.roles.remove(gone)

        listed = await manager.list_custom_roles(guild)

        assert [role for role, _ in listed] == [high, low]


class TestEditRole:
    @pytest.mark.asyncio
    async def test_name_and_colour(self, manager, member, activity_log) -> None:
        role = await manager.create_custom_role(member)

        changes = await manager.edit_role(role, editor=member, name="Sunset", color="#ff8800")

        assert set(changes) == {"name", "colour"}
        assert role.name == "Sunset"
        assert role.colour.value == 0xFF8800
        assert _events(activity_log)[-1] is LogEvent.ROLE_UPDATE

    @pytest.mark.asyncio
    async def test_cannot_rename_to_a_test_role_name(self, manager, member) -> None:
        role = await manager.create_custom_role(member)

        with pytest.raises(RoleValidationError, match="cannot start with"):
            await manager.edit_role(role, editor=member, name="[Test] Sparkle")
        assert role.name == "[Custom] Alice"

    @pytest.mark.asyncio
    async def test_blank_fields_are_ignored(self, manager, member) -> None:
        role = await manager.create_custom_role(member)

        changes = await manager.edit_role(role, editor=member, name="  ", color="#123")

        assert list(changes) == ["colour"]

    @pytest.mark.asyncio
    async def test_empty_edit_is_rejected(self, manager, member) -> None:
        role = await manager.create_custom_role(member)
        with pytest.raises(RoleValidationError):
            await manager.edit_role(role, editor=member, name="", color=None)

    @pytest.mark.asyncio
    async def test_icon_requires_guild_feature(self, manager) -> None:
        guild = FakeGuild(features=[])
        member = FakeMember(guild, "Carol")
        role = await manager.create_custom_role(member)

        with pytest.raises(RoleValidationError, match="boost level 2"):
            await manager.edit_role(role, editor=member, icon=b"\x89PNG")

    @pytest.mark.asyncio
    async def test_icon_is_passed_through(self, manager, member) -> None:
        role = await manager.create_custom_role(member)

        await manager.edit_role(role, editor=member, icon=b"\x89PNG")

        assert role.edit.await_args.kwargs["icon"] == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_fetch_icon_rejects_non_http_urls(self, manager) -> None:
        with pytest.raises(RoleValidationError, match="http"):
            await manager.fetch_icon("ftp://example.com/icon.png")


class TestTemporaryRoles:
    @pytest.mark.asyncio
    async def test_create_schedules_expiry(self, manager, member, guild, coordinator, connection, activity_log) -> None:
        grant = await manager.create_test_role(member, 120, invoker=member)

        assert grant.role.name == "[Test] Alice"
        assert grant.role.colour.value == 0x007BFF
        assert grant.role in member.roles
        assert not grant.extended
        assert grant.expires_at > utcnow() + datetime.timedelta(seconds=100)

        key = temporary_role_key(guild.id, member.id)
        assert coordinator.is_pending(key)
        assert coordinator.tasks.pending(key).context["role_id"] == grant.role.id
        assert (await _stored(connection, grant.role.id)).kind is RoleKind.TEST

        details = activity_log.log.call_args.args[1]
        assert activity_log.log.call_args.args[0] is LogEvent.TEST_ROLE_CREATE
        assert details["duration_minutes"] == 2
        assert details["extended"] is False

    @pytest.mark.asyncio
    async def test_reissue_extends_existing_role(self, manager, member, guild, coordinator) -> None:
        first = await manager.create_test_role(member, 60)
        handle = coordinator.tasks.pending(temporary_role_key(guild.id, member.id))

        second = await manager.create_test_role(member, 300)

        assert second.extended
        assert second.role is first.role
        assert guild.create_role.await_count == 1
        assert handle.cancelled
        assert coordinator.tasks.pending(temporary_role_key(guild.id, member.id)).seconds_until_due() > 200

    @pytest.mark.asyncio
    async def test_reissue_after_role_vanished_creates_new_one(self, manager, member, guild, connection) -> None:
        first = await manager.create_test_role(member, 60)
        guild.roles.remove(first.role)

        second = await manager.create_test_role(member, 60)

        assert not second.extended
        assert second.role is not first.role
        assert await _stored(connection, first.role.id) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seconds", [30, 3601])
    async def test_duration_range(self, manager, member, seconds) -> None:
        with pytest.raises(RoleValidationError, match="between 1 and 60"):
            await manager.create_test_role(member, seconds)

    @pytest.mark.asyncio
    async def test_expire_removes_role_and_notifies(self, manager, member, guild, connection, activity_log) -> None:
        grant = await manager.create_test_role(member, 60)

        assert await manager.expire_test_role(guild, member.id, grant.role.id)

        assert grant.role not in guild.roles
        assert grant.role not in member.roles
        member.send.assert_awaited_once()
        assert await _stored(connection, grant.role.id) is None
        assert activity_log.log.call_args.args[0] is LogEvent.TEST_ROLE_EXPIRE
        assert activity_log.log.call_args.args[1]["role_name"] == "[Test] Alice"

    @pytest.mark.asyncio
    async def test_expire_missing_role(self, manager, member, guild) -> None:
        assert await manager.expire_test_role(guild, member.id, 424242) is False
        member.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expire_with_closed_dms(self, manager, member, guild) -> None:
        grant = await manager.create_test_role(member, 60)
        member.send.side_effect = http_error(discord.Forbidden, 403)

        assert await manager.expire_test_role(guild, member.id, grant.role.id)
        assert grant.role not in guild.roles

    @pytest.mark.asyncio
    async def test_scheduled_expiry_fires(self, connection, coordinator, activity_log, make_config, guild, member) -> None:
        config = make_config({"test_role": {"min_minutes": 0}})
        manager = RoleManager(connection, coordinator, activity_log, config)

        grant = await manager.create_test_role(member, 0)
        await asyncio.sleep(0.05)
        await coordinator.shutdown()

        assert grant.role not in guild.roles
        assert not coordinator.is_pending(temporary_role_key(guild.id, member.id))

    @pytest.mark.asyncio
    async def test_remove_test_role_cancels_expiry(self, manager, member, guild, coordinator) -> None:
        await manager.create_test_role(member, 60)

        assert await manager.remove_custom_role(member, RoleKind.TEST) == 1
        assert not coordinator.is_pending(temporary_role_key(guild.id, member.id))

    @pytest.mark.asyncio
    async def test_notify(self, manager, member) -> None:
        grant = await manager.create_test_role(member, 60)
        assert await manager.notify_test_role(member, grant)

        member.send.side_effect = http_error(discord.Forbidden, 403)
        assert not await manager.notify_test_role(member, grant)


class TestOrphanSweep:
    @pytest.mark.asyncio
    async def test_old_untracked_test_roles_are_deleted(self, manager, guild) -> None:
        old = utcnow() - datetime.timedelta(minutes=10)
        orphan = guild.add_role("[Test] ghost", created_at=old)
        young = guild.add_role("[Test] fresh")
        other = guild.add_role("Regular", created_at=old)

        assert await manager.sweep_orphan_test_roles(guild) == 1

        assert orphan not in guild.roles
        assert young in guild.roles
        assert other in guild.roles

    @pytest.mark.asyncio
    async def test_pending_roles_are_kept(self, manager, member, guild, connection) -> None:
        grant = await manager.create_test_role(member, 60)
        later = utcnow() + datetime.timedelta(hours=1)

        assert await manager.sweep_orphan_test_roles(guild, now=later) == 0
        assert grant.role in guild.roles
        assert await _stored(connection, grant.role.id) is not None

    @pytest.mark.asyncio
    async def test_roles_left_by_a_restart_are_deleted(self, manager, member, guild, coordinator, connection) -> None:
        grant = await manager.create_test_role(member, 60)
        # a restart loses every pending timer
        coordinator.cancel(temporary_role_key(guild.id, member.id))
        later = utcnow() + datetime.timedelta(hours=1)

        assert await manager.sweep_orphan_test_roles(guild, now=later) == 1
        assert grant.role not in guild.roles
        assert await _stored(connection, grant.role.id) is None

    @pytest.mark.asyncio
    async def test_tracked_custom_roles_survive_with_test_like_names(self, manager, member, guild, connection) -> None:
        role = await manager.create_custom_role(member)
        # renamed outside the bot, e.g. by a server admin
        role.name = "[Test] Sparkle"
        orphan = guild.add_role("[Test] ghost", created_at=utcnow() - datetime.timedelta(minutes=10))
        later = utcnow() + datetime.timedelta(hours=1)

        assert await manager.sweep_orphan_test_roles(guild, now=later) == 1

        assert role in guild.roles
        assert role in member.roles
        assert orphan not in guild.roles
        assert (await _stored(connection, role.id)).kind is RoleKind.CUSTOM

    @pytest.mark.asyncio
    async def test_http_errors_skip_the_role(self, manager, guild) -> None:
        old = utcnow() - datetime.timedelta(minutes=10)
        stuck = guild.add_role("[Test] stuck", created_at=old)
        stuck.delete.side_effect = http_error(discord.Forbidden, 403)

        assert await manager.sweep_orphan_test_roles(guild) == 0
