"""
Cancellable timers for tick-driven components.

Every delayed or self-rescheduling side effect (alarm cycles, turn cooldowns,
announcement debounces, the 1 Hz break timer) is expressed as a ``Timer``
obtained from a ``Scheduler``. Two schedulers are provided:

- ``AsyncioScheduler`` runs callbacks on the running event loop.
- ``ManualScheduler`` keeps a virtual clock that only moves when
  ``advance()`` is called, so tests can step through time deterministically.

Cancellation is synchronous and idempotent for both.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class Timer:
    """Handle for a single scheduled callback."""

    def __init__(
        self,
        due_ms: float,
        callback: Callable[[], None],
        name: str = "",
    ) -> None:
        self.due_ms = due_ms
        self.name = name
        self._callback = callback
        self._cancelled = False
        self._fired = False
        self._handle: asyncio.TimerHandle | None = None

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if not self.active:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def fire(self) -> None:
        if not self.active:
            return
        self._fired = True
        self._handle = None
        self._callback()

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled" if self._cancelled else "fired"
        return f"Timer(name={self.name!r}, due_ms={self.due_ms:.0f}, {state})"


class Scheduler(Protocol):
    """Interface for clocks that can run callbacks later."""

    def now_ms(self) -> float:
        """Current time in epoch milliseconds (virtual for test schedulers)."""
        ...

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        *,
        name: str = "",
    ) -> Timer:
        """Schedule ``callback`` to run once after ``delay_ms``."""
        ...


class ManualScheduler:
    """Virtual-time scheduler; timers only fire inside ``advance()``."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)
        self._queue: list[tuple[float, int, Timer]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        *,
        name: str = "",
    ) -> Timer:
        timer = Timer(self._now + max(0.0, delay_ms), callback, name)
        heapq.heappush(self._queue, (timer.due_ms, next(self._seq), timer))
        return timer

    def advance(self, delta_ms: float) -> int:
        """
        Move the clock forward, firing due timers in order.

        Timers scheduled by callbacks during the advance fire too if they fall
        due before the target time. Returns the number of timers fired.
        """
        target = self._now + delta_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if not timer.active:
                continue
            self._now = max(self._now, due)
            timer.fire()
            fired += 1
        self._now = target
        return fired

    def set_time(self, now_ms: float) -> int:
        """Advance to an absolute time; moving backwards is not allowed."""
        if now_ms < self._now:
            msg = "ManualScheduler cannot move backwards in time"
            raise ValueError(msg)
        return self.advance(now_ms - self._now)

    @property
    def pending(self) -> list[Timer]:
        return sorted(
            (timer for _, _, timer in self._queue if timer.active),
            key=lambda t: t.due_ms,
        )


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later`` with wall-clock timestamps."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> float:
        return time.time() * 1000.0

    def call_later(
        self,
        delay_ms: float,
        callback: Callable[[], None],
        *,
        name: str = "",
    ) -> Timer:
        delay_ms = max(0.0, delay_ms)
        timer = Timer(self.now_ms() + delay_ms, callback, name)
        timer._handle = self._get_loop().call_later(delay_ms / 1000.0, timer.fire)
        return timer


class TimerSlot:
    """
    Holder for at most one pending timer.

    Scheduling into an occupied slot cancels the previous timer first, which
    is how superseding debounces and single-cycle invariants are enforced.
    """

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self._scheduler = scheduler
        self._name = name
        self._timer: Timer | None = None

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.active

    def schedule(self, delay_ms: float, callback: Callable[[], Any]) -> Timer:
        self.cancel()
        self._timer = self._scheduler.call_later(
            delay_ms,
            callback,
            name=self._name,
        )
        return self._timer

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
