"""Status-bar feeds.

Each feed is a small long-running process that samples one piece of system
or network state and prints a single formatted line to stdout per update,
for a status bar to display.

Architecture:
    - Clock: fixed-interval ticks handed over one at a time
    - Source adapters: one bounded read per trigger (sysfs, pactl, HTTP)
    - State: per-feed update/display pair
    - Pipeline: update -> display -> flush, alerts to a notification sink
    - Backoff: exponential retry delay for unreliable sources

Modules:
    - clock: Tick and Clock
    - pipeline: State protocol and the update/render loop
    - backoff: BackoffSchedule and BackoffController
    - alert: Alert model and desktop notification sink
    - config: Per-feed configuration dataclasses
    - feeds: bluetooth, pulseaudio and weather feeds
"""

import logging
import os

__version__ = "0.3.0"

__all__ = [
    "__version__",
    "configure_logging",
]

DEFAULT_LOG_LEVEL = os.environ.get("BARFEEDS_LOG_LEVEL", "INFO")


def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    format_string: str | None = None,
) -> logging.Logger:
    """Configure package-level logging.

    Log records go to stderr. Stdout belongs to the feed output.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_string: Custom format string. Defaults to standard format
            with timestamp, level, module, and message.

    Returns:
        Configured logger instance for the barfeeds package.

    Example:
        >>> from barfeeds import configure_logging
        >>> logger = configure_logging("DEBUG")
        >>> logger.debug("Starting feed...")
    """
    if format_string is None:
        format_string = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

    logger = logging.getLogger("barfeeds")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(handler)

    return logger
