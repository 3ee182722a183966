"""Audio feed using pactl (PulseAudio/PipeWire).

Event-driven: the feed reads the default sink once at start and again
whenever `pactl subscribe` reports a change to a sink, a recording stream
or the server (default sink switched).
"""

import asyncio
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, TextIO

from ..alert import Alert, AlertSink, NullSink, Notifier
from ..backoff import BackoffSchedule
from ..clock import TICK, SleepFn, Tick
from ..config import PulseAudioConfig, Symbols
from ..exceptions import FetchError, InvariantViolation
from .. import pipeline

logger = logging.getLogger(__name__)

PACTL_TIMEOUT = 2
RELEVANT_FACILITIES = {"sink", "source-output", "server"}
SUBSCRIBE_EVENT = re.compile(r"^Event '([\w-]+)' on ([\w-]+)")


@dataclass(frozen=True)
class AudioState:
    """Default sink and recording status at one point in time."""

    muted: bool
    volumes: tuple[int, ...]    # Per-channel volume (percent)
    mic_active: bool            # At least one recording stream exists


def _pactl(*args: str) -> str:
    try:
        result = subprocess.run(
            ["pactl", *args],
            capture_output=True,
            text=True,
            timeout=PACTL_TIMEOUT,
            check=True,
        )
    except subprocess.TimeoutExpired:
        raise FetchError("pactl", f"{' '.join(args)} timed out") from None
    except subprocess.CalledProcessError as e:
        raise FetchError("pactl", f"{' '.join(args)} failed: {e.stderr.strip()}") from e
    except FileNotFoundError:
        raise FetchError("pactl", "not found - PulseAudio/PipeWire not installed?") from None
    return result.stdout


def parse_mute(output: str) -> bool:
    match = re.search(r"Mute: (yes|no)", output)
    if not match:
        raise FetchError("pactl", f"unparsable mute state: {output.strip()!r}")
    return match.group(1) == "yes"


def parse_volumes(output: str) -> tuple[int, ...]:
    # Only the first line carries channel volumes, "balance" follows
    first_line = output.strip().splitlines()[0] if output.strip() else ""
    volumes = tuple(int(v) for v in re.findall(r"(\d+)%", first_line))
    if not volumes:
        raise FetchError("pactl", f"unparsable volume: {output.strip()!r}")
    return volumes


def parse_source_outputs(output: str) -> int:
    return sum(1 for line in output.splitlines() if line.strip())


def read_audio_state() -> AudioState:
    """Query the default sink and recording streams via pactl.

    Raises:
        FetchError: If pactl is missing, fails, times out, or its output
            cannot be parsed
    """
    muted = parse_mute(_pactl("get-sink-mute", "@DEFAULT_SINK@"))
    volumes = parse_volumes(_pactl("get-sink-volume", "@DEFAULT_SINK@"))
    recording = parse_source_outputs(_pactl("list", "short", "source-outputs"))
    return AudioState(muted=muted, volumes=volumes, mic_active=recording > 0)


def is_relevant(line: str) -> bool:
    """Whether a `pactl subscribe` line can change the rendered state."""
    match = SUBSCRIBE_EVENT.match(line.strip())
    return bool(match) and match.group(2) in RELEVANT_FACILITIES


async def _spawn_subscribe() -> asyncio.subprocess.Process:
    return await asyncio.create_subprocess_exec(
        "pactl",
        "subscribe",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )


async def subscribe(
    schedule: BackoffSchedule,
    spawn: Callable[[], Awaitable[asyncio.subprocess.Process]] = _spawn_subscribe,
    sleep: Optional[SleepFn] = None,
) -> AsyncIterator[Tick]:
    """Yield a trigger at (re)connect and for every relevant audio event.

    When `pactl subscribe` cannot start or exits, it is restarted after a
    backoff delay. The delay resets only once the restarted process has
    delivered a line; a process that exits silently counts as a failure.
    """
    sleep = sleep or asyncio.sleep
    while True:
        try:
            proc = await spawn()
        except OSError as e:
            logger.error("Failed to start pactl subscribe: %s", e)
        else:
            yield TICK
            async for raw in proc.stdout:
                schedule.reset()
                if is_relevant(raw.decode("utf-8", errors="replace")):
                    yield TICK
            code = await proc.wait()
            logger.error("pactl subscribe exited with status %s", code)

        delay = schedule.failure()
        logger.warning("Reconnecting in %g seconds.", delay)
        await sleep(delay)


class PulseAudioState:
    """Renders mic indicator plus default sink volume or mute symbol.

    Examples with default symbols:
        "v  = 50%"   unmuted, channels equal
        "v !~ 63%"   channels differ, something is recording
        "v    X  "   muted
    """

    def __init__(self, symbols: Symbols):
        self.symbols = symbols
        self.audio: Optional[AudioState] = None

    def update(self, event: AudioState) -> Optional[list[Alert]]:
        if not event.volumes:
            raise InvariantViolation("Audio state without channels")
        if any(v < 0 for v in event.volumes):
            raise InvariantViolation(f"Negative volume: {event.volumes!r}")

        previous = self.audio
        self.audio = event
        if previous is not None and not previous.mic_active and event.mic_active:
            return [Alert(message="Microphone in use")]
        return None

    def body(self) -> str:
        if self.audio is None:
            return "  -  "
        if self.audio.muted:
            return self.symbols.mute
        volumes = self.audio.volumes
        average = round(sum(volumes) / len(volumes))
        relation = self.symbols.equal if len(set(volumes)) == 1 else self.symbols.approx
        return f"{relation}{average:>3}%"

    def display(self, sink: TextIO) -> None:
        mic_active = self.audio is not None and self.audio.mic_active
        mic = self.symbols.mic_on if mic_active else self.symbols.mic_off
        sink.write(f"{self.symbols.prefix}{mic}{self.body()}\n")


async def run(config: PulseAudioConfig, alert_sink: Optional[AlertSink] = None) -> int:
    """Run the audio feed until the process is stopped."""
    if alert_sink is None:
        alert_sink = Notifier(app_name="barfeeds-pulseaudio") if config.alerts else NullSink()
    triggers = subscribe(
        BackoffSchedule(
            initial=config.reconnect_delay,
            max_delay=config.reconnect_max_delay,
        )
    )
    events = pipeline.sample(triggers, read_audio_state, source="pulseaudio")
    # Subscribe events often repeat the current state
    return await pipeline.run(
        events, PulseAudioState(config.symbols), alert_sink=alert_sink, dedup=True
    )
