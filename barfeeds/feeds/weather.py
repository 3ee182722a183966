"""Weather feed using the weather.gov station observation API.

Polls the latest observation of one station, prints the temperature and
optionally writes a multi-line summary to a side file. Failed downloads
are retried with exponential backoff.
"""

import asyncio
import logging
import math
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional, TextIO

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..alert import Alert
from ..backoff import BackoffController, BackoffSchedule
from ..config import WeatherConfig
from ..exceptions import FetchError, InvariantViolation
from .. import pipeline

logger = logging.getLogger(__name__)

ACCEPT = "application/vnd.noaa.obs+xml"


class CurrentObservation(BaseModel):
    """Latest observation of a station, as served in the NOAA XML format."""

    model_config = ConfigDict(populate_by_name=True)

    dewpoint_string: str
    location: str
    observation_time: datetime = Field(alias="observation_time_rfc822")
    pressure_string: str
    relative_humidity: str
    station_id: str
    temp_f: float
    temperature_string: str
    visibility_mi: float
    weather: str
    wind_string: str

    @field_validator("observation_time", mode="before")
    @classmethod
    def parse_rfc2822(cls, value):
        if isinstance(value, str):
            try:
                parsed = parsedate_to_datetime(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"not an RFC 2822 date: {value!r}") from e
            # "-0000" parses naive but still means UTC
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        return value

    def summary(self, download_time: datetime) -> str:
        """Human-readable multi-line summary for the side file."""
        observed = format_datetime(self.observation_time.astimezone())
        downloaded = format_datetime(download_time.astimezone())
        return (
            f"\n"
            f"{self.location} ({self.station_id})\n"
            f"\n"
            f"{self.weather}\n"
            f"{self.temperature_string}\n"
            f"\n"
            f"humidity   : {self.relative_humidity}%\n"
            f"wind       : {self.wind_string}\n"
            f"pressure   : {self.pressure_string}\n"
            f"dewpoint   : {self.dewpoint_string}\n"
            f"visibility : {self.visibility_mi:g} miles\n"
            f"\n"
            f"observed   : {observed}\n"
            f"downloaded : {downloaded}\n"
        )


def parse_observation(payload: bytes) -> CurrentObservation:
    """Parse a current_observation XML document.

    Raises:
        FetchError: If the payload is not XML or lacks required fields
    """
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        raise FetchError("weather.gov", f"malformed XML: {e}") from e

    fields = {child.tag: (child.text or "").strip() for child in root}
    try:
        return CurrentObservation.model_validate(fields)
    except ValidationError as e:
        raise FetchError("weather.gov", f"unexpected observation: {e}") from e


async def download(session: aiohttp.ClientSession, config: WeatherConfig) -> CurrentObservation:
    """Download and parse the latest observation.

    Raises:
        FetchError: On network errors, timeouts, non-200 responses and
            malformed payloads
    """
    headers = {"Accept": ACCEPT, "User-Agent": str(config.user_agent)}
    timeout = aiohttp.ClientTimeout(total=config.timeout)
    try:
        async with session.get(config.url, headers=headers, timeout=timeout) as resp:
            if resp.status != 200:
                raise FetchError(config.url, f"Error response: {resp.status} {resp.reason}")
            payload = await resp.read()
    except aiohttp.ClientError as e:
        raise FetchError(config.url, f"{type(e).__name__}: {e}") from e
    except asyncio.TimeoutError:
        raise FetchError(config.url, f"timed out after {config.timeout}s") from None
    return parse_observation(payload)


def write_summary(path: Path, observation: CurrentObservation) -> bool:
    """Write the summary side file. Failures are logged, not raised."""
    try:
        path.write_text(observation.summary(datetime.now().astimezone()))
    except OSError as e:
        logger.error("Failed to write summary file %s: %s", path, e)
        return False
    return True


def make_fetch(
    session: aiohttp.ClientSession,
    config: WeatherConfig,
) -> Callable[[], Awaitable[CurrentObservation]]:
    """Bind the adapter to a session and configuration."""

    async def fetch() -> CurrentObservation:
        observation = await download(session, config)
        if config.summary_file is not None:
            write_summary(config.summary_file, observation)
        return observation

    return fetch


class WeatherState:
    """Renders the current temperature, e.g. " 57°F"."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.observation: Optional[CurrentObservation] = None

    def update(self, event: CurrentObservation) -> Optional[list[Alert]]:
        if not math.isfinite(event.temp_f):
            raise InvariantViolation(f"Temperature is not a number: {event.temp_f!r}")
        self.observation = event
        return None

    def display(self, sink: TextIO) -> None:
        if self.observation is None:
            sink.write(f"{self.prefix}---°F\n")
        else:
            sink.write(f"{self.prefix}{self.observation.temp_f:3.0f}°F\n")


async def run(config: WeatherConfig) -> int:
    """Run the weather feed until the process is stopped."""
    logger.info("user_agent: %r", str(config.user_agent))
    logger.info("url: %r", config.url)
    async with aiohttp.ClientSession() as session:
        controller = BackoffController(
            make_fetch(session, config),
            interval=config.interval,
            schedule=BackoffSchedule(initial=config.error_delay, max_delay=config.max_delay),
            source=f"weather station {config.station_id}",
        )
        return await pipeline.run(controller, WeatherState(config.prefix))
