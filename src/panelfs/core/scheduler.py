"""Timer abstraction shared by the cache, the reveal loop and the poller.

Components never call asyncio timers directly. They receive a Scheduler,
so cancellation is a single call on a stored handle and tests can drive
time by hand.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock, one-shot timers and cooperative sleep."""

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""
        ...

    async def sleep(self, delay: float) -> None: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio loop."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    async def sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)


class RepeatingTimer:
    """Re-arming timer: calls callback every `interval` seconds until cancelled."""

    def __init__(
        self, scheduler: Scheduler, interval: float, callback: Callable[[], None]
    ) -> None:
        self._scheduler = scheduler
        self._interval = interval
        self._callback = callback
        self._handle: TimerHandle | None = None
        self._cancelled = False

    def start(self) -> RepeatingTimer:
        self._arm()
        return self

    def _arm(self) -> None:
        if not self._cancelled:
            self._handle = self._scheduler.call_later(self._interval, self._tick)

    def _tick(self) -> None:
        self._handle = None
        try:
            self._callback()
        finally:
            self._arm()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
