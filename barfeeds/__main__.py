"""CLI entry point for the status feeds.

Usage:
    python -m barfeeds bluetooth --prefix "b " --interval 5
    python -m barfeeds pulseaudio --symbol-mic-on "!"
    python -m barfeeds --log-level DEBUG weather KBOS --summary-file ~/.weather
"""

import argparse
import asyncio
import sys
from pathlib import Path

from . import DEFAULT_LOG_LEVEL, __version__, configure_logging
from .config import (
    BluetoothConfig,
    PulseAudioConfig,
    Symbols,
    UserAgent,
    WeatherConfig,
)
from .exceptions import SetupError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="barfeeds",
        description="Status-bar feeds: one line of text per update on stdout",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=DEFAULT_LOG_LEVEL.upper(),
        help="Logging level, logs go to stderr (default: %(default)s)",
    )
    feeds = parser.add_subparsers(dest="feed", required=True, metavar="FEED")

    bt = feeds.add_parser("bluetooth", help="Bluetooth radio power (rfkill)")
    bt.add_argument("--prefix", default=BluetoothConfig.prefix)
    bt.add_argument(
        "--interval",
        type=int,
        default=BluetoothConfig.interval,
        metavar="SECONDS",
        help="Seconds between reads (default: %(default)s)",
    )

    pa = feeds.add_parser("pulseaudio", help="Default sink volume and mic usage")
    pa.add_argument("--prefix", default=Symbols.prefix)
    pa.add_argument("--symbol-mic-on", default=Symbols.mic_on)
    pa.add_argument("--symbol-mic-off", default=Symbols.mic_off)
    pa.add_argument(
        "--no-alerts",
        action="store_true",
        help="Do not send a desktop notification when the microphone is in use",
    )

    wx = feeds.add_parser("weather", help="Temperature at a weather.gov station")
    wx.add_argument("station_id", help="Station identifier, e.g. KBOS")
    wx.add_argument(
        "-i",
        "--interval",
        type=int,
        default=1800,
        metavar="SECONDS",
        help="Seconds between downloads (default: %(default)s)",
    )
    wx.add_argument(
        "-s",
        "--summary-file",
        type=Path,
        default=None,
        help="Write a human-readable summary here after each download",
    )
    wx.add_argument(
        "--max-delay",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Cap for the retry delay (default: unbounded)",
    )
    wx.add_argument("--app-name", default=UserAgent.app_name)
    wx.add_argument("--app-version", default=UserAgent.app_version)
    wx.add_argument("--app-url", default=UserAgent.app_url)
    wx.add_argument("--admin-email", default=UserAgent.admin_email)

    return parser


def config_from_args(args: argparse.Namespace):
    """Build the feed configuration selected on the command line."""
    if args.feed == "bluetooth":
        config = BluetoothConfig(prefix=args.prefix, interval=args.interval)
    elif args.feed == "pulseaudio":
        config = PulseAudioConfig(
            symbols=Symbols(
                prefix=args.prefix,
                mic_on=args.symbol_mic_on,
                mic_off=args.symbol_mic_off,
            ),
            alerts=not args.no_alerts,
        )
    else:
        config = WeatherConfig(
            station_id=args.station_id,
            interval=args.interval,
            summary_file=args.summary_file.expanduser() if args.summary_file else None,
            user_agent=UserAgent(
                app_name=args.app_name,
                app_version=args.app_version,
                app_url=args.app_url,
                admin_email=args.admin_email,
            ),
            max_delay=args.max_delay,
        )
    config.validate()
    return config


def feed_runner(feed: str):
    if feed == "bluetooth":
        from .feeds.bluetooth import run
    elif feed == "pulseaudio":
        from .feeds.pulseaudio import run
    else:
        from .feeds.weather import run
    return run


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for clean shutdown, 2 for setup errors).
    """
    args = build_parser().parse_args(argv)
    logger = configure_logging(args.log_level)

    try:
        config = config_from_args(args)
    except SetupError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    logger.info("barfeeds v%s, feed: %s", __version__, args.feed)
    logger.info("config: %r", config)

    try:
        asyncio.run(feed_runner(args.feed)(config))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


# Single-feed console scripts take the log level from BARFEEDS_LOG_LEVEL
def _feed_main(feed: str) -> int:
    return main([feed, *sys.argv[1:]])


def bluetooth_main() -> int:
    return _feed_main("bluetooth")


def pulseaudio_main() -> int:
    return _feed_main("pulseaudio")


def weather_main() -> int:
    return _feed_main("weather")


if __name__ == "__main__":
    sys.exit(main())
