"""
Booster leaderboard: data collection, embed rendering and the pager view.

Boosters are ranked by how long they have been boosting, longest first.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import List, Optional

import discord

from boostrole.ui.embeds import leaderboard_embed
from boostrole.util.logger import get_logger
from boostrole.util.pagination import Page, paginate
from boostrole.util.time_format import format_coarse_duration

logger = get_logger("leaderboard_ui")

MEDALS = ("🥇", "🥈", "🥉")
TIER_EMOJIS = ("0️⃣", "1️⃣", "2️⃣", "3️⃣")


@dataclass(frozen=True, slots=True)
class BoosterEntry:
    position: int
    member_id: int
    mention: str
    boosting_since: datetime.datetime

    def boost_seconds(self, now: datetime.datetime) -> float:
        return max(0.0, (now - self.boosting_since).total_seconds())


@dataclass(frozen=True, slots=True)
class BoostSummary:
    guild_name: str
    premium_tier: int
    total_boosts: int
    boosters: List[BoosterEntry]


def position_label(position: int) -> str:
    """Medal for the top three, ``"<n>."`` after that."""
    return MEDALS[position - 1] if 1 <= position <= len(MEDALS) else f"{position}."


def collect_boosters(guild: discord.Guild) -> BoostSummary:
    """Snapshot the guild's boosters from the member cache."""
    boosting = [member for member in guild.members if member.premium_since is not None]
    boosting.sort(key=lambda member: member.premium_since)
    entries = [
        BoosterEntry(
            position=index,
            member_id=member.id,
            mention=member.mention,
            boosting_since=member.premium_since,
        )
        for index, member in enumerate(boosting, start=1)
    ]
    return BoostSummary(
        guild_name=guild.name,
        premium_tier=int(guild.premium_tier or 0),
        total_boosts=int(guild.premium_subscription_count or 0),
        boosters=entries,
    )


def build_leaderboard_embed(
    summary: BoostSummary,
    page: Page[BoosterEntry],
    now: Optional[datetime.datetime] = None,
) -> discord.Embed:
    now = now or datetime.datetime.now(datetime.timezone.utc)
    tier = TIER_EMOJIS[summary.premium_tier] if 0 <= summary.premium_tier < len(TIER_EMOJIS) else str(summary.premium_tier)
    lines = [f"**Server Level:** {tier}", f"**Total Boosts:** {summary.total_boosts}"]
    if not summary.boosters:
        lines += ["", "*No one is boosting this server right now.*"]

    embed = leaderboard_embed("Server Boost Leaderboard", "\n".join(lines))
    for entry in page.items:
        embed.add_field(
            name=f"{position_label(entry.position)} {entry.mention}",
            value=(
                f"> Boosting for **{format_coarse_duration(entry.boost_seconds(now))}**\n"
                f"> Since {discord.utils.format_dt(entry.boosting_since, style='R')}"
            ),
            inline=False,
        )
    embed.set_footer(text=f"Page {page.number}/{page.total_pages} • {summary.guild_name}")
    return embed


class LeaderboardView(discord.ui.View):
    """Previous/Next/Refresh/Close controls for one leaderboard message."""

    def __init__(self, guild: discord.Guild, *, page_size: int = 10, timeout_seconds: int = 300):
        super().__init__(timeout=timeout_seconds)
        self.guild = guild
        self.page_size = page_size
        self.page_number = 1
        self.summary = collect_boosters(guild)
        self.refresh_items()

    @property
    def page(self) -> Page[BoosterEntry]:
        return paginate(self.summary.boosters, self.page_number, self.page_size)

    def build_embed(self) -> discord.Embed:
        return build_leaderboard_embed(self.summary, self.page)

    def refresh_items(self) -> None:
        page = self.page
        self.page_number = page.number
        self.clear_items()
        self.add_item(LeaderboardPageButton(-1, disabled=not page.has_previous))
        self.add_item(LeaderboardPageButton(1, disabled=not page.has_next))
        self.add_item(RefreshLeaderboardButton())
        self.add_item(CloseLeaderboardButton())

    def go_to(self, page_number: int) -> None:
        self.page_number = page_number
        self.refresh_items()

    def reload(self) -> None:
        """Re-read boosters from the guild cache, keeping the page when possible."""
        self.summary = collect_boosters(self.guild)
        self.refresh_items()

    async def refresh_message(self, interaction: discord.Interaction) -> None:
        try:
            await interaction.response.edit_message(embed=self.build_embed(), view=self)
        except discord.HTTPException as exc:
            logger.warning("[LEADERBOARD UI] Could not update leaderboard: %s", exc)

    async def on_timeout(self) -> None:  # pragma: no cover - relies on Discord timers
        self.disable_all_items()
        if self.message is not None:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException:
                pass


class LeaderboardPageButton(discord.ui.Button):
    def __init__(self, step: int, *, disabled: bool):
        self.step = step
        super().__init__(
            label="Previous" if step < 0 else "Next",
            emoji="◀️" if step < 0 else "▶️",
            style=discord.ButtonStyle.secondary,
            disabled=disabled,
            row=0,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        view: LeaderboardView = self.view  # type: ignore[assignment]
        view.go_to(view.page_number + self.step)
        await view.refresh_message(interaction)


class RefreshLeaderboardButton(discord.ui.Button):
    def __init__(self):
        super().__init__(label="Refresh", emoji="🔄", style=discord.ButtonStyle.primary, row=0)

    async def callback(self, interaction: discord.Interaction) -> None:
        view: LeaderboardView = self.view  # type: ignore[assignment]
        view.reload()
        await view.refresh_message(interaction)


class CloseLeaderboardButton(discord.ui.Button):
    def __init__(self):
        super().__init__(label="Close", emoji="✖️", style=discord.ButtonStyle.secondary, row=0)

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: LeaderboardView = self.view  # type: ignore[assignment]
        view.stop()
        try:
            await interaction.response.defer()
            await interaction.delete_original_response()
        except discord.HTTPException:
            view.disable_all_items()
            await interaction.edit_original_response(view=view)
