"""Alerts: out-of-band notifications raised alongside a state update.

Alerts never go to stdout. The pipeline hands them to an AlertSink,
by default a Notifier that shells out to notify-send.
"""

import logging
import subprocess
from typing import Literal, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Alert(BaseModel):
    """A user-visible notification request.

    Attributes:
        message: Short notification summary
        body: Optional longer text
        urgency: notify-send urgency level
    """

    message: str
    body: str = ""
    urgency: Literal["low", "normal", "critical"] = "normal"


class AlertSink(Protocol):
    """Anything that can deliver an alert."""

    def send(self, alert: Alert) -> bool: ...


class NullSink:
    """Drops every alert."""

    def send(self, alert: Alert) -> bool:
        logger.debug("Alert dropped: %s", alert.message)
        return True


class Notifier:
    """Send desktop notifications via notify-send.

    Delivery failures are logged and reported through the return value,
    never raised.

    Example:
        >>> notifier = Notifier(app_name="barfeeds-pulseaudio")
        >>> notifier.send(Alert(message="Microphone in use"))
    """

    def __init__(
        self,
        app_name: str = "barfeeds",
        timeout_ms: int = 5000,
        icon: str = "dialog-information",
    ):
        """Initialize notifier.

        Args:
            app_name: Application name shown in notification.
            timeout_ms: Display timeout in milliseconds.
            icon: Icon name or path.
        """
        self.app_name = app_name
        self.timeout_ms = timeout_ms
        self.icon = icon

    def build_command(self, alert: Alert) -> list[str]:
        """Build the notify-send argument list for an alert."""
        cmd = [
            "notify-send",
            "--app-name",
            self.app_name,
            "--urgency",
            alert.urgency,
            "--icon",
            self.icon,
            "--expire-time",
            str(self.timeout_ms),
            alert.message,
        ]
        if alert.body:
            cmd.append(alert.body)
        return cmd

    def send(self, alert: Alert) -> bool:
        """Send a desktop notification.

        Returns:
            True if notification was sent successfully.
        """
        try:
            result = subprocess.run(
                self.build_command(alert),
                capture_output=True,
                text=True,
                timeout=10,
            )

            if result.returncode != 0:
                logger.error("notify-send failed: %s", result.stderr)
                return False

            logger.debug("Notification sent: %s", alert.message)
            return True

        except subprocess.TimeoutExpired:
            logger.error("notify-send timed out")
            return False
        except FileNotFoundError:
            logger.error("notify-send not found")
            return False
        except OSError as e:
            logger.error("Failed to send notification: %s", e)
            return False
