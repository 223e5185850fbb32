"""Tests for the booster leaderboard UI and /boost-leaderboard."""

import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from boostrole.cog.commands import leaderboard_cmds
from boostrole.cog.commands.leaderboard_cmds import LeaderboardCog
from boostrole.datatypes.role_datatypes import LogEvent
from boostrole.ui.leaderboard_ui import (
    LeaderboardView,
    build_leaderboard_embed,
    collect_boosters,
    position_label,
)
from boostrole.util.pagination import paginate

from fakes import FakeContext, FakeGuild, FakeMember, utcnow

NOW = datetime.datetime(2025, 6, 1, tzinfo=datetime.timezone.utc)


def _guild_with_boosters(count: int) -> FakeGuild:
    guild = FakeGuild(name="Boost Town", premium_tier=2)
    for index in range(count):
        FakeMember(guild, f"booster{index}", premium_since=NOW - datetime.timedelta(days=index + 1))
    FakeMember(guild, "lurker")
    return guild


def _interaction() -> SimpleNamespace:
    return SimpleNamespace(response=SimpleNamespace(edit_message=AsyncMock()))


@pytest.mark.parametrize(("position", "label"), [(1, "🥇"), (2, "🥈"), (3, "🥉"), (4, "4."), (12, "12.")])
def test_position_label(position, label):
    assert position_label(position) == label


def test_collect_boosters_orders_longest_first():
    guild = _guild_with_boosters(3)

    summary = collect_boosters(guild)

    assert summary.guild_name == "Boost Town"
    assert summary.premium_tier == 2
    assert summary.total_boosts == 3
    assert [entry.position for entry in summary.boosters] == [1, 2, 3]
    names = [guild.get_member(entry.member_id).name for entry in summary.boosters]
    assert names == ["booster2", "booster1", "booster0"]


def test_boost_seconds_never_negative():
    entry = collect_boosters(_guild_with_boosters(1)).boosters[0]
    assert entry.boost_seconds(NOW) == 86400
    assert entry.boost_seconds(NOW - datetime.timedelta(days=5)) == 0


def test_embed_lists_page_entries():
    summary = collect_boosters(_guild_with_boosters(3))

    embed = build_leaderboard_embed(summary, paginate(summary.boosters, 1, 10), now=NOW)

    assert embed.title == "🏆 Server Boost Leaderboard"
    assert "**Server Level:** 2️⃣" in embed.description
    assert "**Total Boosts:** 3" in embed.description
    assert len(embed.fields) == 3
    assert embed.fields[0].name.startswith("🥇 <@")
    assert "Boosting for **" in embed.fields[0].value
    assert embed.footer.text == "Page 1/1 • Boost Town"


def test_embed_without_boosters():
    summary = collect_boosters(FakeGuild())

    embed = build_leaderboard_embed(summary, paginate(summary.boosters, 1, 10))

    assert "No one is boosting" in embed.description
    assert not embed.fields


class TestLeaderboardView:
    @pytest.mark.asyncio
    async def test_paging_buttons(self):
        view = LeaderboardView(_guild_with_boosters(12), page_size=5)
        previous, following, refresh, close = view.children

        assert previous.disabled and not following.disabled
        assert len(view.build_embed().fields) == 5

        view.go_to(3)
        previous, following = view.children[:2]
        assert not previous.disabled and following.disabled
        assert len(view.build_embed().fields) == 2

        view.go_to(9)
        assert view.page_number == 3

    @pytest.mark.asyncio
    async def test_next_button_moves_forward(self):
        view = LeaderboardView(_guild_with_boosters(12), page_size=5)
        interaction = _interaction()

        await view.children[1].callback(interaction)

        assert view.page_number == 2
        embed = interaction.response.edit_message.await_args.kwargs["embed"]
        assert embed.footer.text.startswith("Page 2/3")

    @pytest.mark.asyncio
    async def test_refresh_button_reloads_boosters(self):
        guild = _guild_with_boosters(2)
        view = LeaderboardView(guild)
        FakeMember(guild, "newcomer", premium_since=utcnow())

        await view.children[2].callback(_interaction())

        assert len(view.summary.boosters) == 3


class TestLeaderboardCommand:
    def test_setup_adds_cog(self, services):
        captured = {}
        leaderboard_cmds.setup(SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog)), services)
        assert isinstance(captured["cog"], LeaderboardCog)

    @pytest.mark.asyncio
    async def test_sends_leaderboard(self, services):
        guild = _guild_with_boosters(2)
        ctx = FakeContext(guild, FakeMember(guild, "viewer"))
        cog = LeaderboardCog(SimpleNamespace(), services)

        await LeaderboardCog.boost_leaderboard.callback(cog, ctx)

        ctx.defer.assert_awaited_once()
        kwargs = ctx.followup.send.await_args.kwargs
        assert isinstance(kwargs["view"], LeaderboardView)
        assert len(kwargs["embed"].fields) == 2

    @pytest.mark.asyncio
    async def test_cooldown(self, services):
        guild = _guild_with_boosters(1)
        viewer = FakeMember(guild, "viewer")
        cog = LeaderboardCog(SimpleNamespace(), services)
        await LeaderboardCog.boost_leaderboard.callback(cog, FakeContext(guild, viewer))
        ctx = FakeContext(guild, viewer)

        await LeaderboardCog.boost_leaderboard.callback(cog, ctx)

        assert "`/boost-leaderboard`" in ctx.respond.await_args.args[0]

    @pytest.mark.asyncio
    async def test_failure_is_reported_and_logged(self, services, activity_log, monkeypatch):
        def broken_view(*args, **kwargs):
            raise RuntimeError("cache unavailable")

        monkeypatch.setattr(leaderboard_cmds, "LeaderboardView", broken_view)
        guild = _guild_with_boosters(1)
        ctx = FakeContext(guild, FakeMember(guild, "viewer"))
        cog = LeaderboardCog(SimpleNamespace(), services)

        await LeaderboardCog.boost_leaderboard.callback(cog, ctx)

        assert ctx.followup.send.await_args.kwargs["embed"].title == "❌ Error"
        event, details = activity_log.log.call_args.args
        assert event is LogEvent.ERROR
        assert details["error"] == "cache unavailable"
