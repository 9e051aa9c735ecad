"""
Logging utilities: console setup for the CLI and a handler that
forwards warnings to the user notification channel.
"""
from __future__ import annotations

import logging
from typing import Optional

from photosheet.notifications import NotificationChannel, NotificationLevel

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_LEVEL_MAP = {
    "WARNING": NotificationLevel.WARNING,
    "ERROR": NotificationLevel.ERROR,
    "CRITICAL": NotificationLevel.ERROR,
}


class NotificationLogHandler(logging.Handler):
    """
    A logging handler that forwards records to a notification channel.

    Used to surface warnings from internal APIs (degraded pages, failed
    writes) to whatever presents notifications.
    """

    def __init__(self, channel: NotificationChannel, level: int = logging.WARNING):
        super().__init__(level)
        self.channel = channel
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            level = _LEVEL_MAP.get(record.levelname, NotificationLevel.INFO)
            self.channel.notify(message, level)
        except Exception:
            self.handleError(record)


def attach_notification_handler(
    channel: NotificationChannel,
    logger_name: Optional[str] = "photosheet",
) -> NotificationLogHandler:
    """
    Attach a NotificationLogHandler to the specified logger.

    Args:
        channel: Channel to forward records to.
        logger_name: Name of logger to attach to. None = root logger.

    Returns:
        The attached handler (for later removal).
    """
    handler = NotificationLogHandler(channel)
    logging.getLogger(logger_name).addHandler(handler)
    return handler


def detach_notification_handler(
    handler: NotificationLogHandler,
    logger_name: Optional[str] = "photosheet",
) -> None:
    """Remove a NotificationLogHandler from the specified logger."""
    logging.getLogger(logger_name).removeHandler(handler)


def configure_logging(verbose: bool = False) -> None:
    """Console logging for command-line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        force=True,
    )
    # Pillow's plugin chatter is noise at DEBUG
    logging.getLogger("PIL").setLevel(logging.INFO)
