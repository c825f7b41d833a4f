"""Clocks and cancellable timers.

Every wait in the session engine goes through a Clock so that the whole
state machine can run against virtual time in tests. Deadline is the
one-shot silence timer, PeriodicTask the repeating poll loop shared by the
pre-recording buffer, the interrupt monitor, the dictation timeout check
and the wake listener.
"""

import asyncio
import heapq
import inspect
import itertools
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], "Awaitable[None] | None"]


class Clock(Protocol):
    """Source of time and sleeping for the session engine."""

    def now(self) -> float:
        """Return the current time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for the given number of seconds."""
        ...


class MonotonicClock:
    """Clock backed by time.monotonic and asyncio.sleep."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class VirtualClock:
    """Manually advanced clock for deterministic tests.

    Sleepers are woken strictly in deadline order. After each wake-up the
    event loop is given a few turns so the woken task can run and register
    its next sleep before time moves on.
    """

    def __init__(self, start: float = 0.0, settle_rounds: int = 10) -> None:
        """Initialize virtual clock.

        Args:
            start: Initial time in seconds
            settle_rounds: Event loop turns granted after each wake-up
        """
        self._now = start
        self._settle_rounds = settle_rounds
        self._sleepers: list[tuple[float, int, asyncio.Future[None]]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + seconds, next(self._counter), future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking every sleeper whose deadline passes.

        Args:
            seconds: Amount of virtual time to advance
        """
        target = self._now + seconds
        await self._settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            if future.done():
                continue
            self._now = max(self._now, deadline)
            future.set_result(None)
            await self._settle()
        self._now = target
        await self._settle()

    async def run_until(self, predicate: Callable[[], bool], limit: float, step: float = 0.1) -> bool:
        """Advance in steps until predicate holds or limit seconds pass.

        Returns:
            True if the predicate became true within the limit
        """
        end = self._now + limit
        while not predicate():
            if self._now >= end:
                return False
            await self.advance(min(step, end - self._now))
        return True

    @property
    def pending_sleepers(self) -> int:
        """Number of tasks currently sleeping on this clock."""
        return sum(1 for _, _, future in self._sleepers if not future.done())

    async def _settle(self) -> None:
        for _ in range(self._settle_rounds):
            await asyncio.sleep(0)


async def _invoke(callback: Callback) -> None:
    result = callback()
    if inspect.isawaitable(result):
        await result


class Deadline:
    """Cancellable one-shot timer.

    A cancelled or re-armed deadline never invokes its previous callback,
    even if its sleep already completed and the task has not resumed yet.
    """

    def __init__(self, clock: Clock, name: str = "deadline") -> None:
        """Initialize deadline.

        Args:
            clock: Clock used for waiting
            name: Label used in log messages
        """
        self._clock = clock
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self._duration: float | None = None
        self._callback: Callback | None = None
        self._expires_at: float | None = None

    @property
    def is_armed(self) -> bool:
        """Return True if the deadline is counting down."""
        return self._expires_at is not None

    @property
    def expires_at(self) -> float | None:
        """Clock time at which the deadline fires, if armed."""
        return self._expires_at

    def arm(self, seconds: float, callback: Callback) -> None:
        """Start (or restart) the countdown.

        Args:
            seconds: Time until expiry
            callback: Called once on expiry; may be a coroutine function
        """
        self.cancel()
        self._duration = seconds
        self._callback = callback
        self._expires_at = self._clock.now() + seconds
        self._task = asyncio.create_task(self._run(seconds, callback, self._generation))
        logger.debug(f"{self._name} armed for {seconds:.1f}s")

    def reset(self) -> None:
        """Push the deadline forward by its full duration."""
        if self._duration is None or self._callback is None:
            return
        self.arm(self._duration, self._callback)

    def cancel(self) -> None:
        """Stop the countdown without firing."""
        self._generation += 1
        self._expires_at = None
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _run(self, seconds: float, callback: Callback, generation: int) -> None:
        await self._clock.sleep(seconds)
        if generation != self._generation:
            return
        self._task = None
        self._expires_at = None
        logger.debug(f"{self._name} expired")
        await _invoke(callback)


class PeriodicTask:
    """Repeats an action until stopped.

    The action runs, then the task sleeps for the interval, then repeats.
    An interval of zero makes the action pace itself (e.g. a fixed-length
    recording). The action may call stop() on its own task.
    """

    def __init__(
        self,
        action: Callback,
        interval_s: float,
        clock: Clock,
        name: str = "periodic",
        initial_delay: bool = False,
    ) -> None:
        """Initialize periodic task.

        Args:
            action: Work to run each iteration; may be a coroutine function
            interval_s: Pause between iterations in seconds
            clock: Clock used for waiting
            name: Label used in log messages
            initial_delay: Sleep one interval before the first iteration
        """
        self._action = action
        self._interval = interval_s
        self._clock = clock
        self._name = name
        self._initial_delay = initial_delay
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.error: BaseException | None = None

    @property
    def is_running(self) -> bool:
        """Return True while the loop is active."""
        return self._running

    def start(self) -> None:
        """Begin iterating. No-op if already running."""
        if self._running:
            return
        self._running = True
        self.error = None
        self._task = asyncio.create_task(self._loop(), name=self._name)

    def stop(self) -> None:
        """Stop iterating. The action is never invoked after this returns."""
        self._running = False
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def wait(self) -> None:
        """Wait for the loop task to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _loop(self) -> None:
        me = asyncio.current_task()
        try:
            if self._initial_delay:
                await self._clock.sleep(self._interval)
            while self._task is me:
                await _invoke(self._action)
                if self._task is not me:
                    break
                await self._clock.sleep(self._interval)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.error = e
            logger.exception(f"{self._name} loop failed: {e}")
        finally:
            if self._task is me or self._task is None:
                self._running = False
                self._task = None


__all__ = [
    "Clock",
    "Deadline",
    "MonotonicClock",
    "PeriodicTask",
    "VirtualClock",
]
