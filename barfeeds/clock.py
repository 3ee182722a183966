"""Fixed-interval tick source.

The clock runs a producer task that sleeps one interval and then hands a
tick over through a single-slot queue. A slow consumer never accumulates a
backlog: at most one tick waits in the slot while the producer is parked on
the handoff.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Tick:
    """One elapsed clock interval. Carries no payload."""


TICK = Tick()


class Clock:
    """Unbounded async iterator of ticks, one per elapsed interval.

    The first tick arrives after one full interval, not at start.
    A closed clock stays closed; build a new one to restart.

    Example:
        >>> async for _ in Clock(5):
        ...     refresh()
    """

    def __init__(self, interval: float, sleep: Optional[SleepFn] = None):
        """Initialize clock.

        Args:
            interval: Seconds between ticks (must be positive).
            sleep: Sleep coroutine, asyncio.sleep by default.
        """
        if interval <= 0:
            raise ValueError(f"Clock interval must be positive, got {interval!r}")
        self.interval = interval
        self._sleep = sleep or asyncio.sleep
        self._slot: asyncio.Queue[Tick] = asyncio.Queue(maxsize=1)
        self._producer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def pending(self) -> int:
        """Ticks produced but not yet taken (0 or 1)."""
        return self._slot.qsize()

    async def _produce(self) -> None:
        while True:
            await self._sleep(self.interval)
            await self._slot.put(TICK)

    def __aiter__(self) -> "Clock":
        return self

    async def __anext__(self) -> Tick:
        if self._closed:
            raise StopAsyncIteration
        if self._producer is None:
            logger.debug("Starting clock with %ss interval", self.interval)
            self._producer = asyncio.create_task(self._produce())

        getter = asyncio.ensure_future(self._slot.get())
        done, _ = await asyncio.wait(
            {getter, self._producer}, return_when=asyncio.FIRST_COMPLETED
        )
        if getter in done:
            return getter.result()

        # Producer ended before handing over a tick
        getter.cancel()
        self._closed = True
        if not self._producer.cancelled() and self._producer.exception():
            raise self._producer.exception()
        raise StopAsyncIteration

    def close(self) -> None:
        """Stop producing ticks."""
        self._closed = True
        if self._producer is not None:
            self._producer.cancel()
