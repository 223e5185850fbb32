"""
Per-subject, per-action cooldowns.

A record is stamped only when a call is allowed. Whether a record still
blocks is decided by comparing ``expires_at`` with the clock at query time,
so stale records are harmless; :meth:`CooldownTracker.sweep` only reclaims
memory.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Tuple

from boostrole.expiry.errors import ConfigurationError
from boostrole.util.logger import get_logger

logger = get_logger("cooldown_tracker")

CooldownKey = Tuple[Hashable, str]


@dataclass(slots=True)
class CooldownRecord:
    """The live cooldown of one subject for one action."""

    subject_id: Hashable
    action_key: str
    expires_at: float


@dataclass(frozen=True, slots=True)
class CooldownOutcome:
    """
    Result of :meth:`CooldownTracker.check_and_stamp`.

    Attributes:
        allowed (bool): True when the caller may go ahead.
        seconds_remaining (int): Whole seconds to wait, rounded up. Always 0
            when ``allowed`` is True.
    """

    allowed: bool
    seconds_remaining: int = 0

    @property
    def blocked(self) -> bool:
        return not self.allowed

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = CooldownOutcome(allowed=True)


def blocked(seconds_remaining: int) -> CooldownOutcome:
    """Build a blocked outcome."""
    return CooldownOutcome(allowed=False, seconds_remaining=seconds_remaining)


class CooldownTracker:
    """
    Expiring ``(subject_id, action_key) -> expires_at`` map.

    All methods are synchronous, so on a single event loop a check and its
    stamp can never interleave with another caller's check for the same
    pair.

    Args:
        clock: Monotonic time source in seconds. Tests pass a fake one.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._records: Dict[CooldownKey, CooldownRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def check_and_stamp(self, subject_id: Hashable, action_key: str, window_seconds: float) -> CooldownOutcome:
        """
        Allow and stamp the pair, or report how long it is still blocked.

        Args:
            subject_id: The rate-limited actor (usually a user ID).
            action_key: The action being limited, e.g. ``"edit-role"``.
            window_seconds: Length of the cooldown. ``<= 0`` means no cooldown
                is configured: the call is allowed and nothing is stamped.

        Returns:
            CooldownOutcome: allowed, or blocked with
            ``ceil(expires_at - now)`` seconds remaining.

        Raises:
            ConfigurationError: If ``window_seconds`` is NaN or infinite.
        """
        if not math.isfinite(window_seconds):
            raise ConfigurationError(f"Cooldown window must be finite, got {window_seconds!r}")
        if window_seconds <= 0:
            return ALLOWED

        now = self._clock()
        key = (subject_id, action_key)
        record = self._records.get(key)

        if record is not None and record.expires_at > now:
            return blocked(math.ceil(record.expires_at - now))

        self._records[key] = CooldownRecord(subject_id, action_key, now + window_seconds)
        return ALLOWED

    def remaining(self, subject_id: Hashable, action_key: str) -> int:
        """Whole seconds left on a cooldown without stamping; 0 if none is active."""
        record = self._records.get((subject_id, action_key))
        if record is None:
            return 0
        left = record.expires_at - self._clock()
        return math.ceil(left) if left > 0 else 0

    def reset(self, subject_id: Hashable, action_key: str | None = None) -> int:
        """
        Forget cooldowns for a subject.

        Args:
            subject_id: Subject whose records are dropped.
            action_key: Drop only this action. ``None`` drops every action.

        Returns:
            int: Number of records removed.
        """
        if action_key is not None:
            return 1 if self._records.pop((subject_id, action_key), None) is not None else 0

        doomed = [key for key in self._records if key[0] == subject_id]
        for key in doomed:
            del self._records[key]
        return len(doomed)

    def sweep(self) -> int:
        """Delete records whose window has passed. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, record in self._records.items() if record.expires_at <= now]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug("[COOLDOWN TRACKER] Swept %d expired cooldown(s)", len(expired))
        return len(expired)
