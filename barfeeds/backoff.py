"""Exponential backoff for feeds with unreliable sources.

Phases:
    IDLE → ATTEMPTING: poll timer fired
    ATTEMPTING → IDLE: fetch succeeded, value emitted, delay reset
    ATTEMPTING → COOLING: fetch failed, cooldown armed, delay multiplied
    COOLING → ATTEMPTING: cooldown elapsed

There is no terminal phase; a source that keeps failing is retried
forever.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Optional

from .clock import SleepFn
from .pipeline import Adapter, call_adapter

logger = logging.getLogger(__name__)

DEFAULT_ERROR_DELAY = 15
DEFAULT_MULTIPLIER = 2.0


@dataclass
class BackoffSchedule:
    """Retry delay bookkeeping.

    Attributes:
        initial: First retry delay in seconds
        multiplier: Growth factor per consecutive failure
        max_delay: Upper bound for the delay, None for unbounded growth
        current: Delay the next failure will wait
    """

    initial: float = DEFAULT_ERROR_DELAY
    multiplier: float = DEFAULT_MULTIPLIER
    max_delay: Optional[float] = None
    current: float = field(init=False)

    def __post_init__(self):
        if self.initial <= 0:
            raise ValueError(f"initial delay must be positive, got {self.initial!r}")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {self.multiplier!r}")
        if self.max_delay is not None and self.max_delay < self.initial:
            raise ValueError("max_delay must not be below the initial delay")
        self.current = self.initial

    def failure(self) -> float:
        """Record a failure.

        Returns:
            Seconds to wait before the retry
        """
        delay = self.current
        grown = self.current * self.multiplier
        if self.max_delay is not None:
            grown = min(grown, self.max_delay)
        self.current = grown
        return delay

    def reset(self) -> None:
        """Record a success."""
        self.current = self.initial


class BackoffPhase(str, Enum):
    """Controller phases."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    COOLING = "cooling"


class BackoffController:
    """Polls a fallible fetch, backing off exponentially on failure.

    Iterating the controller yields each successfully fetched value.
    The consumer handles the value before the controller resumes, so the
    base interval sleep starts after the value has been rendered.

    Example:
        >>> controller = BackoffController(fetch, interval=1800, source="weather")
        >>> await pipeline.run(controller, state)
    """

    def __init__(
        self,
        fetch: Adapter,
        interval: float,
        schedule: Optional[BackoffSchedule] = None,
        source: str = "source",
        sleep: Optional[SleepFn] = None,
    ):
        """Initialize controller.

        Args:
            fetch: Source adapter; sync functions run in a worker thread.
            interval: Seconds between polls while the source is healthy.
            schedule: Retry schedule, 15s doubling without a cap by default.
            source: Name used in log messages.
            sleep: Sleep coroutine, asyncio.sleep by default.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self._fetch = fetch
        self.interval = interval
        self.schedule = schedule or BackoffSchedule()
        self.source = source
        self._sleep = sleep or asyncio.sleep

        self.phase = BackoffPhase.IDLE
        self.consecutive_failures = 0

    def __aiter__(self) -> AsyncIterator[Any]:
        return self.values()

    async def values(self) -> AsyncIterator[Any]:
        """Yield fetched values forever."""
        while True:
            self.phase = BackoffPhase.ATTEMPTING
            try:
                value = await call_adapter(self._fetch)
            except Exception as e:
                self.consecutive_failures += 1
                delay = self.schedule.failure()
                self.phase = BackoffPhase.COOLING
                logger.error("Failure in %s fetch: %s", self.source, e)
                logger.warning("Next retry in %g seconds.", delay)
                await self._sleep(delay)
                continue

            if self.consecutive_failures:
                logger.info(
                    "%s recovered after %d failure(s)",
                    self.source,
                    self.consecutive_failures,
                )
            self.consecutive_failures = 0
            self.schedule.reset()
            self.phase = BackoffPhase.IDLE

            yield value
            await self._sleep(self.interval)
