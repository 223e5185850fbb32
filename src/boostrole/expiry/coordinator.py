"""
Single owner of the bot's cooldowns and pending expiry tasks.

One :class:`ExpiryCoordinator` is built in ``main.create_bot`` and passed to
each cog, so tests can create as many isolated instances as they need.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Hashable, Mapping, Optional

from boostrole.expiry.cooldown_tracker import CooldownOutcome, CooldownTracker
from boostrole.expiry.task_scheduler import EphemeralTaskScheduler, LogCollaborator, TaskAction, TaskHandle


class ExpiryCoordinator:
    """Facade over a :class:`CooldownTracker` and an :class:`EphemeralTaskScheduler`."""

    def __init__(
        self,
        log: Optional[LogCollaborator] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldowns = CooldownTracker(clock=clock)
        self.tasks = EphemeralTaskScheduler(log=log)

    def check_and_stamp(self, subject_id: Hashable, action_key: str, window_seconds: float) -> CooldownOutcome:
        return self.cooldowns.check_and_stamp(subject_id, action_key, window_seconds)

    def schedule(
        self,
        key: str,
        delay_seconds: float,
        action: TaskAction,
        *,
        context: Optional[Mapping[str, Any]] = None,
    ) -> TaskHandle:
        return self.tasks.schedule(key, delay_seconds, action, context=context)

    def cancel(self, key: str) -> bool:
        return self.tasks.cancel(key)

    def is_pending(self, key: str) -> bool:
        return key in self.tasks

    def sweep_cooldowns(self) -> int:
        return self.cooldowns.sweep()

    async def shutdown(self) -> None:
        await self.tasks.shutdown()
