"""Unit tests for backoff schedule and controller."""

import logging

import pytest

from barfeeds.backoff import BackoffController, BackoffPhase, BackoffSchedule
from barfeeds.exceptions import FetchError


def failing_then(values, failures):
    """Fetch that fails `failures` times, then returns values in order."""
    calls = {"n": 0}
    remaining = iter(values)

    def fetch():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise FetchError("test", f"failure {calls['n']}")
        return next(remaining)

    return fetch


class TestBackoffSchedule:
    """Test BackoffSchedule."""

    def test_doubles_on_each_failure(self):
        """Delays double across consecutive failures."""
        schedule = BackoffSchedule(initial=15)

        assert [schedule.failure() for _ in range(4)] == [15, 30, 60, 120]

    def test_reset_returns_to_initial(self):
        """A success resets the delay."""
        schedule = BackoffSchedule(initial=15)
        schedule.failure()
        schedule.failure()
        schedule.reset()

        assert schedule.current == 15
        assert schedule.failure() == 15

    def test_unbounded_by_default(self):
        """Without a cap the delay keeps growing."""
        schedule = BackoffSchedule(initial=1)
        delays = [schedule.failure() for _ in range(20)]

        assert delays[-1] == 2 ** 19

    def test_max_delay_caps_growth(self):
        """With a cap the delay stops growing at the cap."""
        schedule = BackoffSchedule(initial=1, max_delay=30)
        delays = [schedule.failure() for _ in range(8)]

        assert delays == [1, 2, 4, 8, 16, 30, 30, 30]

    def test_non_decreasing_across_failures(self):
        """Consecutive failure delays never shrink."""
        schedule = BackoffSchedule(initial=3, multiplier=1.5, max_delay=50)
        delays = [schedule.failure() for _ in range(12)]

        assert delays == sorted(delays)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"initial": 0},
            {"initial": -5},
            {"initial": 1, "multiplier": 0.5},
            {"initial": 10, "max_delay": 5},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        """Nonsensical schedules are rejected."""
        with pytest.raises(ValueError):
            BackoffSchedule(**kwargs)


class TestBackoffController:
    """Test BackoffController."""

    @pytest.mark.asyncio
    async def test_success_then_interval(self, sleeper):
        """A healthy source is polled at the base interval."""
        controller = BackoffController(failing_then([1, 2], failures=0), interval=1800, sleep=sleeper)
        values = controller.values()

        assert await anext(values) == 1
        assert sleeper.delays == []
        assert await anext(values) == 2
        assert sleeper.delays == [1800]
        await values.aclose()

    @pytest.mark.asyncio
    async def test_three_failures_then_success(self, sleeper):
        """Retries wait 15, 30, 60 and the poll cadence resumes after success."""
        controller = BackoffController(
            failing_then(["v1", "v2"], failures=3),
            interval=1800,
            schedule=BackoffSchedule(initial=15),
            sleep=sleeper,
        )
        values = controller.values()

        assert await anext(values) == "v1"
        assert sleeper.delays == [15, 30, 60]
        assert controller.schedule.current == 15
        assert controller.consecutive_failures == 0

        assert await anext(values) == "v2"
        assert sleeper.delays == [15, 30, 60, 1800]
        await values.aclose()

    @pytest.mark.asyncio
    async def test_phases(self):
        """The controller reports attempting, cooling and idle phases."""
        seen = []

        async def fetch():
            seen.append(("fetch", controller.phase))
            if len(seen) == 1:
                raise FetchError("test", "down")
            return "up"

        async def sleep(delay):
            seen.append(("sleep", controller.phase))

        controller = BackoffController(fetch, interval=60, schedule=BackoffSchedule(initial=5), sleep=sleep)
        assert controller.phase is BackoffPhase.IDLE

        values = controller.values()
        assert await anext(values) == "up"

        assert seen == [
            ("fetch", BackoffPhase.ATTEMPTING),
            ("sleep", BackoffPhase.COOLING),
            ("fetch", BackoffPhase.ATTEMPTING),
        ]
        assert controller.phase is BackoffPhase.IDLE
        await values.aclose()

    @pytest.mark.asyncio
    async def test_failures_are_logged(self, sleeper, caplog):
        """Each failure logs the cause and the retry delay."""
        controller = BackoffController(
            failing_then(["ok"], failures=1),
            interval=60,
            source="weather station KBOS",
            sleep=sleeper,
        )
        values = controller.values()

        with caplog.at_level(logging.INFO, logger="barfeeds"):
            await anext(values)

        assert "Failure in weather station KBOS fetch: test: failure 1" in caplog.text
        assert "Next retry in 15 seconds." in caplog.text
        assert "recovered after 1 failure(s)" in caplog.text
        await values.aclose()

    @pytest.mark.asyncio
    async def test_any_exception_is_transient(self, sleeper):
        """Unexpected adapter errors are retried like fetch errors."""
        calls = []

        def fetch():
            calls.append(1)
            if len(calls) == 1:
                raise KeyError("payload")
            return "ok"

        values = BackoffController(fetch, interval=60, sleep=sleeper).values()

        assert await anext(values) == "ok"
        assert sleeper.delays == [15]
        await values.aclose()

    @pytest.mark.asyncio
    async def test_iterating_controller(self, sleeper, take):
        """The controller itself is an async iterable of values."""
        controller = BackoffController(failing_then([1, 2, 3], failures=0), interval=10, sleep=sleeper)

        assert [v async for v in take(controller, 3)] == [1, 2, 3]

    def test_rejects_non_positive_interval(self):
        """The poll interval must be positive."""
        with pytest.raises(ValueError):
            BackoffController(lambda: None, interval=0)
