"""
Cooldowns and self-expiring tasks.

This package holds the only stateful timing logic of the bot:

- **cooldown_tracker.py**: per ``(subject, action)`` rate limiting. A call is
  either allowed (and stamped) or blocked with the whole seconds left.
  Expiry is checked against the clock on every query.

- **task_scheduler.py**: one-shot deferred actions keyed by a caller-chosen
  string. Re-scheduling a key replaces the pending task, cancelling is
  idempotent and a failing action is logged rather than raised.

- **coordinator.py**: the object that owns one tracker and one scheduler and
  is handed to every cog at startup.

Nothing here is persisted; a restart clears every cooldown and timer.
"""

from boostrole.expiry.coordinator import ExpiryCoordinator
from boostrole.expiry.cooldown_tracker import CooldownOutcome, CooldownTracker
from boostrole.expiry.errors import ActionFailure, ConfigurationError
from boostrole.expiry.task_scheduler import EphemeralTaskScheduler, TaskHandle, TaskState

__all__ = [
    "ActionFailure",
    "ConfigurationError",
    "CooldownOutcome",
    "CooldownTracker",
    "EphemeralTaskScheduler",
    "ExpiryCoordinator",
    "TaskHandle",
    "TaskState",
]
