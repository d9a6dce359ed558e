"""Trailing-edge debounce for async actions.

Each ``schedule()`` cancels the pending timer and starts a new one, so a
burst of calls collapses into a single action run with the newest value
once the burst settles. Runs never overlap: if the timer fires while a run
is in flight, the newest value is processed right after it finishes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Sentinel value to distinguish "nothing pending" from a pending None
_NOTHING: Any = object()


class Debouncer(Generic[T]):
    """
    Coalesce bursts of values into one deferred ``action(value)`` call.

    Args:
        delay: Quiet period in seconds before the action runs
        action: Async callable receiving the newest value
        on_error: Optional callback for failures of timer-driven runs

    Failures of timer-driven runs are logged and kept in ``last_error``;
    ``flush()`` re-raises the failure of the runs it waited for.
    """

    def __init__(
        self,
        delay: float,
        action: Callable[[T], Awaitable[Any]],
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self.action = action
        self.on_error = on_error
        self.last_error: Exception | None = None
        self.runs = 0
        self._pending: Any = _NOTHING
        self._ready = False
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        """True while a value is waiting for the timer or an in-flight run."""
        return self._pending is not _NOTHING

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, value: T) -> None:
        """Replace the pending value and restart the timer."""
        self._pending = value
        if self._handle is not None:
            self._handle.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop the pending value without running the action."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = _NOTHING
        self._ready = False

    async def flush(self) -> None:
        """
        Run the pending value now and wait for all in-flight runs.

        Raises:
            Exception: The failure of a run this call waited for
        """
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.last_error = None
        if self.pending:
            self._ready = True
            self._start()
        if self._task is not None:
            await self._task
        if self.last_error is not None:
            raise self.last_error

    def _fire(self) -> None:
        self._handle = None
        self._ready = True
        self._start()

    def _start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while self._ready and self.pending:
            self._ready = False
            value, self._pending = self._pending, _NOTHING
            self.runs += 1
            try:
                await self.action(value)
            except Exception as e:
                self.last_error = e
                logger.warning("Debounced action failed: %s", e, exc_info=True)
                if self.on_error is not None:
                    self.on_error(e)
