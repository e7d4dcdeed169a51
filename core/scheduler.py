"""
AuraLock Scheduler

Timer and deferred-work primitives for the single-threaded collector host.

Collectors never sleep or block: periodic work (blink windows, score
recomputation) is registered on a Scheduler, and persistence writes are
handed to Scheduler.defer as fire-and-forget jobs.

Implementations:
    AsyncioScheduler  -> production, runs on the service event loop
                         (requires a running loop when none is passed)
    ManualScheduler   -> deterministic tests, time advanced explicitly
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)


Callback = Callable[[], None]


def now_ms() -> float:
    """Wall clock in epoch milliseconds."""
    return time.time() * 1000.0


class TimerHandle(Protocol):
    """Handle returned by Scheduler.call_later."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Clock, one-shot timers and fire-and-forget jobs."""

    def now(self) -> float:
        ...

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        ...

    def defer(self, job: Callback, name: str = "job") -> None:
        ...


# =============================================================================
# Asyncio Scheduler
# =============================================================================

class AsyncioScheduler:
    """
    Scheduler bound to an asyncio event loop.

    Timers use loop.call_later, so a cancelled handle never fires.
    Deferred jobs run one at a time, in submission order, on a single
    worker thread; failures are logged and dropped.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="auralock-defer")

    def now(self) -> float:
        return now_ms()

    def call_later(self, delay_ms: float, callback: Callback) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, delay_ms) / 1000.0, callback)

    def defer(self, job: Callback, name: str = "job") -> None:
        future = self._loop.run_in_executor(self._executor, job)

        def _report(done: asyncio.Future) -> None:
            if done.cancelled():
                return
            exc = done.exception()
            if exc is not None:
                logger.error(f"Deferred {name} failed: {exc}")

        future.add_done_callback(_report)

    async def flush(self) -> None:
        """Wait until every job deferred so far has finished."""
        await self._loop.run_in_executor(self._executor, lambda: None)

    def shutdown(self) -> None:
        """Stop the worker after the queued jobs complete."""
        self._executor.shutdown(wait=True)


# =============================================================================
# Manual Scheduler
# =============================================================================

class _ManualTimer:
    """Timer entry owned by ManualScheduler."""

    def __init__(self, due: float, callback: Callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Deterministic scheduler for tests and offline replay.

    Time only moves through advance()/advance_to(); timers due within the
    advanced span fire in due order. Deferred jobs run inline.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = start_ms
        self._queue: List[Tuple[float, int, _ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callback) -> _ManualTimer:
        timer = _ManualTimer(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (timer.due, next(self._sequence), timer))
        return timer

    def defer(self, job: Callback, name: str = "job") -> None:
        try:
            job()
        except Exception as e:
            logger.error(f"Deferred {name} failed: {e}")

    def advance(self, delta_ms: float) -> None:
        """Move the clock forward, firing every timer that falls due."""
        self.advance_to(self._now + delta_ms)

    def advance_to(self, target_ms: float) -> None:
        while self._queue and self._queue[0][0] <= target_ms:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, due)
            timer.callback()
        self._now = max(self._now, target_ms)

    @property
    def pending(self) -> int:
        """Number of live (uncancelled) timers."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)


# =============================================================================
# Recurring Task
# =============================================================================

class RecurringTask:
    """
    Fixed-interval task rescheduled after each run.

    cancel() is synchronous: once it returns the callback will not run
    again, even if a timer was already queued.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        interval_ms: float,
        callback: Callback,
        name: str = "task"
    ) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._scheduler = scheduler
        self._interval_ms = interval_ms
        self._callback = callback
        self._name = name
        self._handle: Optional[TimerHandle] = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def interval_ms(self) -> float:
        return self._interval_ms

    def start(self) -> None:
        """Schedule the first run. No-op when already running."""
        if self._active:
            return
        self._active = True
        self._schedule()

    def cancel(self) -> None:
        self._active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._handle = self._scheduler.call_later(self._interval_ms, self._fire)

    def _fire(self) -> None:
        if not self._active:
            return
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Recurring task '{self._name}' failed: {e}")
        if self._active:
            self._schedule()
