"""Timer plumbing for the single-threaded event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_repeating(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle:
        """Invoke callback every interval_s seconds until the handle is cancelled."""


class RepeatingTimer:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval_s: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._interval_s = interval_s
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False
        self._arm()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _arm(self) -> None:
        self._handle = self._loop.call_later(self._interval_s, self._tick)

    def _tick(self) -> None:
        if self._cancelled:
            return
        try:
            self._callback()
        finally:
            # re-arm after the callback so ticks never overlap
            if not self._cancelled:
                self._arm()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_repeating(self, interval_s: float, callback: Callable[[], None]) -> RepeatingTimer:
        return RepeatingTimer(self.loop, interval_s, callback)
