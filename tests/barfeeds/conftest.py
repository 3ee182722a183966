"""Pytest configuration and fixtures for status feed tests."""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Callable, Iterable

import pytest


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def sleeper() -> SleepRecorder:
    """Recording sleep function for clock and backoff tests."""
    return SleepRecorder()


@pytest.fixture
def stream() -> Callable[[Iterable], AsyncIterator]:
    """Turn a list into an async event stream."""

    async def _stream(items):
        for item in items:
            yield item

    return _stream


@pytest.fixture
def take() -> Callable[[AsyncIterator, int], AsyncIterator]:
    """Stop an (infinite) async stream after n items."""

    async def _take(events, n):
        count = 0
        async for event in events:
            yield event
            count += 1
            if count == n:
                return

    return _take


@pytest.fixture
def rfkill_dir(tmp_path: Path) -> Callable[..., Path]:
    """Build a fake /sys/class/rfkill tree.

    Usage: rfkill_dir(("wlan", "1"), ("bluetooth", "0"))
    """

    def _build(*entries: tuple[str, str]) -> Path:
        root = tmp_path / "rfkill"
        root.mkdir()
        for i, (kind, state) in enumerate(entries):
            entry = root / f"rfkill{i}"
            entry.mkdir()
            (entry / "type").write_text(f"{kind}\n")
            (entry / "state").write_text(f"{state}\n")
        return root

    return _build


@pytest.fixture
def pactl_outputs() -> dict[str, str]:
    """Mock pactl outputs keyed by subcommand."""
    return {
        "get-sink-mute": "Mute: no\n",
        "get-sink-volume": (
            "Volume: front-left: 49151 /  75% / -7.50 dB,   "
            "front-right: 49151 /  75% / -7.50 dB\n"
            "        balance 0.00\n"
        ),
        "list": "",
    }


@pytest.fixture
def observation_xml() -> bytes:
    """Mock weather.gov current_observation payload."""
    return b"""<?xml version="1.0" encoding="ISO-8859-1"?>
<current_observation version="1.0">
  <credit>NOAA's National Weather Service</credit>
  <location>Boston, Logan International Airport (KBOS)</location>
  <station_id>KBOS</station_id>
  <observation_time_rfc822>Mon, 19 Oct 2026 13:54:00 +0000</observation_time_rfc822>
  <weather>Mostly Cloudy</weather>
  <temperature_string>57.0 F (13.9 C)</temperature_string>
  <temp_f>57.0</temp_f>
  <temp_c>13.9</temp_c>
  <relative_humidity>87</relative_humidity>
  <wind_string>Northeast at 12.7 MPH (11 KT)</wind_string>
  <pressure_string>1016.3 mb</pressure_string>
  <dewpoint_string>53.1 F (11.7 C)</dewpoint_string>
  <visibility_mi>10.00</visibility_mi>
</current_observation>
"""
