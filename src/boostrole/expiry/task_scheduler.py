"""
One-shot deferred actions keyed by caller-chosen strings.

Each task is armed with ``loop.call_later`` so firing is an ordinary event
loop callback. Cancelling or replacing a task is a synchronous registry
update, which means it always wins against a firing that has not run yet.
"""

from __future__ import annotations

import asyncio
import inspect
import math
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional, Set, Union

from boostrole.expiry.errors import ActionFailure, ConfigurationError
from boostrole.util.logger import get_logger

logger = get_logger("task_scheduler")

TaskAction = Callable[[], Union[None, Awaitable[Any]]]
LogCollaborator = Callable[[str, Mapping[str, Any]], None]


class TaskState(str, Enum):
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"


class TaskHandle:
    """
    Cancellable reference to one scheduled task.

    Cancelling through a handle only ever affects that task; a newer task
    registered under the same key is left alone.
    """

    __slots__ = ("_scheduler", "_timer", "_state", "key", "due_at", "action", "context", "_loop")

    def __init__(
        self,
        scheduler: "EphemeralTaskScheduler",
        loop: asyncio.AbstractEventLoop,
        key: str,
        due_at: float,
        action: TaskAction,
        context: Mapping[str, Any],
    ) -> None:
        self._scheduler = scheduler
        self._loop = loop
        self._timer: Optional[asyncio.TimerHandle] = None
        self._state = TaskState.PENDING
        self.key = key
        self.due_at = due_at
        self.action = action
        self.context = context

    def __repr__(self) -> str:
        return f"TaskHandle(key={self.key!r}, state={self._state.value})"

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is TaskState.PENDING

    @property
    def cancelled(self) -> bool:
        return self._state is TaskState.CANCELLED

    @property
    def fired(self) -> bool:
        return self._state is TaskState.FIRED

    def seconds_until_due(self) -> float:
        """Seconds left before the task fires; 0 once it is no longer pending."""
        if not self.pending:
            return 0.0
        return max(0.0, self.due_at - self._loop.time())

    def cancel(self) -> bool:
        """Cancel this task. Returns False if it already fired or was cancelled."""
        return self._scheduler._cancel_handle(self)


class EphemeralTaskScheduler:
    """
    Registry of pending one-shot tasks, at most one per key.

    Args:
        log: Logging collaborator called as ``log(event_type, details)`` when
            an action fails. Errors raised by the collaborator are swallowed.
    """

    def __init__(self, log: Optional[LogCollaborator] = None) -> None:
        self._log = log
        self._tasks: Dict[str, TaskHandle] = {}
        self._running: Set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def keys(self) -> Iterator[str]:
        return iter(list(self._tasks))

    def pending(self, key: str) -> Optional[TaskHandle]:
        """Return the pending task registered under ``key``, if any."""
        return self._tasks.get(key)

    def schedule(
        self,
        key: str,
        delay_seconds: float,
        action: TaskAction,
        *,
        context: Optional[Mapping[str, Any]] = None,
    ) -> TaskHandle:
        """
        Run ``action`` once after ``delay_seconds``, replacing any task under ``key``.

        Args:
            key: Deduplication key, e.g. ``"1234:5678:test-role"``.
            delay_seconds: Non-negative delay. Zero fires on the next loop
                iteration.
            action: Zero-argument callable. If it returns an awaitable, the
                awaitable is run as a task.
            context: Extra fields included in the failure report, such as
                ``guild_id`` so the activity log can route it.

        Returns:
            TaskHandle: Handle for the new task.

        Raises:
            ConfigurationError: If the delay is negative or not finite.
            RuntimeError: If called without a running event loop.
        """
        if not math.isfinite(delay_seconds) or delay_seconds < 0:
            raise ConfigurationError(f"Task delay must be a finite, non-negative number, got {delay_seconds!r}")

        loop = asyncio.get_running_loop()

        previous = self._tasks.get(key)
        if previous is not None:
            self._cancel_handle(previous)
            logger.debug("[TASK SCHEDULER] Replaced pending task %s", key)

        handle = TaskHandle(self, loop, key, loop.time() + delay_seconds, action, dict(context or {}))
        handle._timer = loop.call_later(delay_seconds, self._fire, handle)
        self._tasks[key] = handle

        logger.debug("[TASK SCHEDULER] Scheduled %s in %.1fs", key, delay_seconds)
        return handle

    def cancel(self, key: str) -> bool:
        """Cancel the pending task under ``key``. Unknown keys are a no-op."""
        handle = self._tasks.get(key)
        if handle is None:
            return False
        return self._cancel_handle(handle)

    async def shutdown(self) -> None:
        """Cancel every pending task and wait for actions that are already running."""
        for handle in list(self._tasks.values()):
            self._cancel_handle(handle)

        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
        logger.info("[TASK SCHEDULER] Shut down")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _cancel_handle(self, handle: TaskHandle) -> bool:
        if handle._state is not TaskState.PENDING:
            return False

        handle._state = TaskState.CANCELLED
        if handle._timer is not None:
            handle._timer.cancel()
            handle._timer = None
        if self._tasks.get(handle.key) is handle:
            del self._tasks[handle.key]

        logger.debug("[TASK SCHEDULER] Cancelled %s", handle.key)
        return True

    def _fire(self, handle: TaskHandle) -> None:
        if handle._state is not TaskState.PENDING:
            return

        # Leave the registry before running so the action may re-schedule its own key
        if self._tasks.get(handle.key) is handle:
            del self._tasks[handle.key]
        handle._state = TaskState.FIRED
        handle._timer = None

        try:
            result = handle.action()
        except Exception as exc:
            self._report_failure(handle, exc)
            return

        if inspect.isawaitable(result):
            task = asyncio.get_running_loop().create_task(
                self._await_action(handle, result), name=f"boostrole-task-{handle.key}"
            )
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _await_action(self, handle: TaskHandle, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._report_failure(handle, exc)

    def _report_failure(self, handle: TaskHandle, exc: Exception) -> None:
        failure = ActionFailure(handle.key, exc)
        logger.error("[TASK SCHEDULER] %s", failure, exc_info=exc)

        if self._log is None:
            return

        details = dict(handle.context)
        details.update(key=handle.key, error=str(exc), error_type=type(exc).__name__)
        try:
            self._log("ACTION_FAILURE", details)
        except Exception:
            logger.exception("[TASK SCHEDULER] Could not report failure of %s", handle.key)
