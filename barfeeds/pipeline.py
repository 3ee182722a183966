"""Update/render pipeline shared by every feed.

A feed is an async stream of events plus one State object. The runner
applies each event to the state, renders the state as one line on stdout
and flushes, so a line-oriented status bar sees the update immediately.

Failure policy:
    - adapter failure: logged, trigger skipped (see sample())
    - update failure: logged, nothing rendered, prior line stays on screen
    - display failure: logged, nothing rendered
"""

import asyncio
import inspect
import io
import logging
import sys
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Optional,
    Protocol,
    TextIO,
    TypeVar,
    Union,
)

from .alert import Alert, AlertSink, NullSink

logger = logging.getLogger(__name__)

E = TypeVar("E")

Adapter = Callable[[], Union[E, Awaitable[E]]]


class State(Protocol):
    """Capability set every feed state provides.

    update() applies one event and may return alerts to raise. It raises
    only when the event itself is invalid, never for I/O problems.

    display() writes exactly one newline-terminated line for the current
    state and must not change the state.
    """

    def update(self, event: Any) -> Optional[list[Alert]]: ...

    def display(self, sink: TextIO) -> None: ...


async def call_adapter(attempt: Adapter) -> Any:
    """Run one adapter attempt.

    Coroutine functions are awaited directly. Plain functions are blocking
    reads and run in a worker thread so the loop stays responsive.
    """
    if inspect.iscoroutinefunction(attempt):
        return await attempt()
    return await asyncio.to_thread(attempt)


async def sample(
    triggers: AsyncIterable[Any],
    attempt: Adapter,
    source: str,
) -> AsyncIterator[Any]:
    """Turn a trigger stream into an event stream.

    Calls the adapter once per trigger. A failed attempt is logged and
    produces no event.

    Args:
        triggers: Clock ticks or any other async trigger stream
        attempt: Source adapter
        source: Name used in log messages
    """
    async for _ in triggers:
        try:
            event = await call_adapter(attempt)
        except Exception as e:
            logger.error("Failed to read %s: %s", source, e)
            continue
        yield event


def render(state: State) -> str:
    """Render a state to a string, checking the one-line contract."""
    buf = io.StringIO()
    state.display(buf)
    line = buf.getvalue()
    if not line.endswith("\n") or line.count("\n") != 1:
        raise ValueError(f"display() must write exactly one line, got {line!r}")
    return line


async def _dispatch(alerts: list[Alert], alert_sink: AlertSink) -> None:
    for alert in alerts:
        try:
            await asyncio.to_thread(alert_sink.send, alert)
        except Exception as e:
            logger.error("Failed to deliver alert %r: %s", alert.message, e)


async def run(
    events: AsyncIterable[Any],
    state: State,
    sink: Optional[TextIO] = None,
    alert_sink: Optional[AlertSink] = None,
    dedup: bool = False,
) -> int:
    """Drive a state from an event stream, one output line per update.

    Runs until the event stream ends, which for clock-driven feeds is
    never.

    Args:
        events: Async stream of feed events
        state: The feed's state, owned by this loop
        sink: Output stream, sys.stdout by default
        alert_sink: Receiver for alerts returned by update()
        dedup: Skip a line identical to the previously written one

    Returns:
        Number of lines written
    """
    out = sink if sink is not None else sys.stdout
    alert_sink = alert_sink or NullSink()
    last_line: Optional[str] = None
    written = 0

    async for event in events:
        try:
            alerts = state.update(event)
        except Exception as e:
            logger.error("Failed to apply event %r: %s", event, e)
            continue

        try:
            line = render(state)
        except Exception as e:
            logger.error("Failed to render state: %s", e)
            line = None

        if line is not None and not (dedup and line == last_line):
            out.write(line)
            out.flush()
            last_line = line
            written += 1

        if alerts:
            await _dispatch(alerts, alert_sink)

    logger.info("Event stream ended after %d line(s)", written)
    return written
