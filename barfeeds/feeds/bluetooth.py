"""Bluetooth radio feed using the kernel rfkill interface.

Device state lookup follows the TLP bluetooth command: find the rfkill
entry whose type is "bluetooth" and read its state byte.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, TextIO

from ..clock import Clock
from ..config import BluetoothConfig
from ..exceptions import FetchError, InvariantViolation
from .. import pipeline

logger = logging.getLogger(__name__)


class DeviceState(Enum):
    """rfkill state of the bluetooth radio."""

    OFF_SOFT = 0
    ON = 1
    OFF_HARD = 2
    NO_DEV = 254

    @classmethod
    def from_byte(cls, b: int) -> "DeviceState":
        """Map an rfkill state byte to a device state.

        Raises:
            InvariantViolation: If the byte is not a known rfkill state
        """
        try:
            return cls(b)
        except ValueError:
            raise InvariantViolation(f"Invalid state byte: {b!r}") from None


def read_device_state(rfkill_dir: Path) -> Optional[DeviceState]:
    """Read the bluetooth radio state from sysfs.

    Args:
        rfkill_dir: rfkill class directory, usually /sys/class/rfkill

    Returns:
        DeviceState of the first bluetooth entry, None if there is none

    Raises:
        FetchError: If sysfs cannot be read or the state is not a number
        InvariantViolation: If the state byte is out of range
    """
    try:
        for entry in sorted(rfkill_dir.iterdir()):
            if (entry / "type").read_text().strip() != "bluetooth":
                continue
            raw = (entry / "state").read_text().strip()
            try:
                state_byte = int(raw)
            except ValueError:
                raise FetchError(str(entry), f"unparsable state {raw!r}") from None
            return DeviceState.from_byte(state_byte)
    except OSError as e:
        raise FetchError(str(rfkill_dir), str(e)) from e
    return None


class BluetoothState:
    """Last known radio state."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.device_state: Optional[DeviceState] = None

    def update(self, event: Optional[DeviceState]) -> None:
        if event is not None and not isinstance(event, DeviceState):
            raise InvariantViolation(f"Not a device state: {event!r}")
        self.device_state = event
        return None

    def symbol(self) -> str:
        # OFF_SOFT and OFF_HARD render the same
        if self.device_state in (None, DeviceState.NO_DEV):
            return "--"
        if self.device_state is DeviceState.ON:
            return "on"
        return "off"

    def display(self, sink: TextIO) -> None:
        sink.write(f"{self.prefix}{self.symbol()}\n")


async def run(config: BluetoothConfig, clock: Optional[Clock] = None) -> int:
    """Run the bluetooth feed until the process is stopped."""
    clock = clock or Clock(config.interval)
    events = pipeline.sample(
        clock,
        lambda: read_device_state(config.rfkill_dir),
        source="bluetooth device state",
    )
    return await pipeline.run(events, BluetoothState(config.prefix))
