"""Single-slot debounce timer on the asyncio event loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class DebounceTimer:
    """Delayed trigger that coalesces repeated restarts into one fire.

    restart() pushes the deadline forward instead of scheduling a second
    fire, so at most one callback is ever pending.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None | Awaitable[None]],
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        if not math.isfinite(delay) or delay < 0:
            raise ValueError(f"Debounce delay must be a finite non-negative number: {delay}")
        self._delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self.restart_count = 0
        self.fire_count = 0

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def is_pending(self) -> bool:
        """Whether a fire is currently scheduled."""
        return self._handle is not None

    def restart(self) -> None:
        """(Re)schedule the single pending fire `delay` seconds from now.

        Must be called from the event loop thread.
        """
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._fire)
        self.restart_count += 1
        logger.debug(f"Debounce timer restarted ({self._delay}s)")

    def stop(self) -> None:
        """Cancel the pending fire, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.fire_count += 1
        try:
            result = self._callback()
        except Exception:
            logger.exception("Debounce callback error")
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounce callback error", exc_info=exc)
