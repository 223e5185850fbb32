"""Background maintenance cogs for Boostrole.

Contains two cogs:
- CooldownSweepCog    – periodically drops expired cooldown records
- OrphanTestRoleCog   – periodically deletes test roles whose expiry task was
                        lost, e.g. across a restart
"""

from __future__ import annotations

import asyncio
from typing import Callable

import discord
from discord.ext import commands, tasks

from boostrole.services.bot_services import BotServices
from boostrole.util.logger import get_logger

logger = get_logger("maintenance_cog")


# ---------------------------------------------------------------------------
# Shared base for interval cogs
# ---------------------------------------------------------------------------

class _IntervalCog(commands.Cog):
    """
    Reusable base for cogs that run one async job on a configured interval.

    Subclasses supply:
        _name          – human-readable tag used in log messages
        _get_interval  – callable(services) returning the interval in seconds
        _run_once      – the async job
    """

    _name: str
    _get_interval: Callable[[BotServices], float]

    def __init__(self, bot: discord.Bot, services: BotServices) -> None:
        self.bot = bot
        self.services = services

    async def _run_once(self) -> None:
        raise NotImplementedError

    @tasks.loop(seconds=1)  # real interval set in on_ready
    async def _interval_task(self) -> None:
        try:
            await self._run_once()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("[%s] Run failed: %s", self._name, exc)

    @_interval_task.before_loop
    async def _before_interval(self) -> None:
        await self.bot.wait_until_ready()

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        interval = self._get_interval(self.services)
        self._interval_task.change_interval(seconds=interval)
        if not self._interval_task.is_running():
            self._interval_task.start()
            logger.info("[%s] Started (interval=%.1fs)", self._name, interval)

    def cog_unload(self) -> None:
        self._interval_task.cancel()
        logger.info("[%s] Stopped", self._name)


# ---------------------------------------------------------------------------
# Cooldown sweep
# ---------------------------------------------------------------------------

class CooldownSweepCog(_IntervalCog):
    """Reclaims memory held by expired cooldown records."""

    _name = "COOLDOWN_SWEEP"
    _get_interval = staticmethod(lambda services: services.config.cooldown_sweep_interval)

    async def _run_once(self) -> None:
        removed = self.services.coordinator.sweep_cooldowns()
        if removed:
            logger.debug("[%s] Dropped %d expired cooldown(s)", self._name, removed)


# ---------------------------------------------------------------------------
# Orphaned test roles
# ---------------------------------------------------------------------------

class OrphanTestRoleCog(_IntervalCog):
    """Deletes ``[Test]`` roles that no pending expiry task covers."""

    _name = "ORPHAN_TEST_ROLES"
    _get_interval = staticmethod(lambda services: services.config.test_role.check_interval_seconds)

    async def _run_once(self) -> None:
        for guild in self.bot.guilds:
            try:
                await self.services.role_manager.sweep_orphan_test_roles(guild)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[%s] Failed to sweep guild %s: %s", self._name, guild.name, exc)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def setup(bot: discord.Bot, services: BotServices) -> None:
    bot.add_cog(CooldownSweepCog(bot, services))
    bot.add_cog(OrphanTestRoleCog(bot, services))
