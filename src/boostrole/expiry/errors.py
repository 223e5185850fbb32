"""Exceptions raised by the cooldown tracker and the task scheduler."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """A cooldown window or task delay that cannot be honoured (negative, NaN, inf)."""


class ActionFailure(RuntimeError):
    """
    Wraps an exception raised by a scheduled action.

    The scheduler never raises this; it builds one so the failure can be
    logged with the task key attached.
    """

    def __init__(self, key: str, cause: BaseException) -> None:
        super().__init__(f"Scheduled action {key!r} failed: {cause}")
        self.key = key
        self.cause = cause
