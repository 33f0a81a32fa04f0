"""
Fixed-rate launch throttle.

Caps the rate at which operations are *started* without capping how many
are in flight: a task is started on each tick and never awaited before the
next one is launched.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Coroutine, Iterable, TypeVar

T = TypeVar("T")


class IntervalTicker:
    """Yields at fixed deadlines ``t0, t0 + interval, t0 + 2 * interval, ...``.

    The first tick returns immediately and fixes ``t0``. Deadlines do not
    drift with the time spent between ticks.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if interval < 0:
            raise ValueError(f"Interval must be >= 0, got {interval}")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._next: float | None = None

    async def tick(self) -> None:
        now = self._clock()
        if self._next is None:
            self._next = now
        delay = self._next - now
        if delay > 0:
            await self._sleep(delay)
        self._next += self.interval


async def launch_throttled(
    factories: Iterable[Callable[[], Coroutine[Any, Any, T]]],
    ticker: IntervalTicker,
) -> list[asyncio.Task[T]]:
    """Start one task per factory, one per tick. Does not await the tasks."""
    tasks: list[asyncio.Task[T]] = []
    for factory in factories:
        await ticker.tick()
        tasks.append(asyncio.create_task(factory()))
    return tasks
