"""Configuration dataclasses for the status feeds.

Built from command-line arguments in __main__. validate() raises
SetupError for anything that would keep a feed from starting.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from . import __version__
from .exceptions import SetupError

RFKILL_DIR = Path("/sys/class/rfkill")
WEATHER_URL = (
    "https://api.weather.gov/stations/{station_id}/observations/latest"
    "?require_qc=false"
)


def _check_interval(name: str, value: float) -> None:
    if value <= 0:
        raise SetupError(f"{name} must be positive, got {value}")


@dataclass
class BluetoothConfig:
    """Bluetooth feed settings."""
    prefix: str = "b "
    interval: int = 5           # Seconds
    rfkill_dir: Path = RFKILL_DIR

    def validate(self) -> None:
        _check_interval("interval", self.interval)


@dataclass
class Symbols:
    """Strings the audio feed renders with."""
    prefix: str = "v "
    mic_on: str = "!"           # Some application is recording
    mic_off: str = " "
    mute: str = "  X  "
    equal: str = "="            # All channels at the same level
    approx: str = "~"           # Channels differ, average shown


@dataclass
class PulseAudioConfig:
    """Audio feed settings."""
    symbols: Symbols = field(default_factory=Symbols)
    alerts: bool = True
    reconnect_delay: float = 1.0
    reconnect_max_delay: float = 30.0

    def validate(self) -> None:
        _check_interval("reconnect_delay", self.reconnect_delay)
        if self.reconnect_max_delay < self.reconnect_delay:
            raise SetupError("reconnect_max_delay must not be below reconnect_delay")


@dataclass
class UserAgent:
    """User-Agent header recommended by weather.gov.

    Renders as: ApplicationName/vX.Y (http://your.app.url/; contact.email@example.com)
    """
    app_name: str = "barfeeds-weather"
    app_version: str = __version__
    app_url: str = "https://github.com/barfeeds/barfeeds"
    admin_email: str = "user-has-not-provided-contact-info"

    def __str__(self) -> str:
        return f"{self.app_name}/{self.app_version} ({self.app_url}; {self.admin_email})"


@dataclass
class WeatherConfig:
    """Weather feed settings."""
    station_id: str
    interval: int = 1800        # Seconds between polls when healthy
    summary_file: Optional[Path] = None
    user_agent: UserAgent = field(default_factory=UserAgent)
    error_delay: int = 15       # First retry delay
    max_delay: Optional[int] = None
    timeout: float = 30.0       # Per-request timeout
    prefix: str = ""
    url_template: str = WEATHER_URL

    @property
    def url(self) -> str:
        return self.url_template.format(station_id=self.station_id)

    def validate(self) -> None:
        if not self.station_id.strip():
            raise SetupError("station id must not be empty")
        _check_interval("interval", self.interval)
        _check_interval("error_delay", self.error_delay)
        _check_interval("timeout", self.timeout)
        if self.max_delay is not None and self.max_delay < self.error_delay:
            raise SetupError("max delay must not be below the error delay")
        if self.summary_file is not None and not self.summary_file.parent.is_dir():
            raise SetupError(
                f"summary file directory does not exist: {self.summary_file.parent}"
            )
