"""
Human-readable times and durations for embeds and replies.

Timestamps are rendered in the configured timezone (``timezone`` in
``app_config.yml``).
"""

from __future__ import annotations

import datetime
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from boostrole.util.logger import get_logger

logger = get_logger("time_format")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_SECOND = 1
_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_MONTH = 30 * _DAY
_YEAR = 12 * _MONTH


@lru_cache(maxsize=8)
def get_zone(name: str) -> datetime.tzinfo:
    """Resolve an IANA zone name, falling back to UTC if it is unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[TIME FORMAT] Unknown timezone %r, using UTC", name)
        return datetime.timezone.utc


def now_local(zone_name: str) -> datetime.datetime:
    return datetime.datetime.now(get_zone(zone_name))


def format_timestamp(moment: datetime.datetime, zone_name: str) -> str:
    """``YYYY-MM-DD HH:MM:SS`` in ``zone_name``. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment.astimezone(get_zone(zone_name)).strftime(TIMESTAMP_FORMAT)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_duration(seconds: float) -> str:
    """
    Spell out a duration down to seconds.

    >>> format_duration(93784)
    '1 day, 2 hours, 3 minutes, 4 seconds'
    >>> format_duration(0)
    '0 seconds'
    """
    remaining = max(0, int(seconds))
    parts = []
    for size, unit in ((_DAY, "day"), (_HOUR, "hour"), (_MINUTE, "minute"), (_SECOND, "second")):
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(_plural(count, unit))
    return ", ".join(parts) or "0 seconds"


def format_coarse_duration(seconds: float) -> str:
    """
    Only the largest unit, with 30-day months and 12-month years.

    >>> format_coarse_duration(100 * 86400)
    '3 months'
    """
    total = max(0, int(seconds))
    for size, unit in ((_YEAR, "year"), (_MONTH, "month"), (_DAY, "day"), (_HOUR, "hour"), (_MINUTE, "minute")):
        if total >= size:
            return _plural(total // size, unit)
    return _plural(total, "second")


def relative_time(moment: datetime.datetime, now: datetime.datetime | None = None) -> str:
    """``"3 hours ago"`` style description of a past moment."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    now = now or datetime.datetime.now(datetime.timezone.utc)
    elapsed = (now - moment).total_seconds()

    if elapsed < _MINUTE:
        return "just now"
    return f"{format_coarse_duration(elapsed)} ago"


def format_wait_message(seconds_remaining: int, command_name: str) -> str:
    """Reply shown to a user who hit a cooldown."""
    return (
        f"⏳ Please wait {format_duration(seconds_remaining)} before using `/{command_name}` again."
    )
