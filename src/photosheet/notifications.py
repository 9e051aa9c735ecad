"""
Module: notifications

Purpose:
    User-facing notification channel owned by the application shell and
    injected into the controller and the export pipeline as a
    `notify(message, level)` capability. Presentation (toasts, console)
    subscribes to the channel.

Key Classes:
    - NotificationLevel: INFO / SUCCESS / WARNING / ERROR
    - Notification: One delivered message
    - NotificationChannel: notify + subscribe, bounded history

Used By:
    - editor.controller: Refusals and validation errors
    - export.pipeline: Progress, degraded pages, outcome
    - utils.logging_utils: NotificationLogHandler
    - cli: Prints notifications to stderr
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Protocol, Tuple

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 50


class NotificationLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    message: str
    level: NotificationLevel
    sequence: int


class Notify(Protocol):
    def __call__(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None: ...


NotificationListener = Callable[[Notification], None]


class NotificationChannel:
    """
    Explicit publish/subscribe channel for user notifications.

    Notifications raised while listeners are being called (for example
    a listener that itself notifies) are queued and delivered after the
    current one, in order.

    Example:
        >>> channel = NotificationChannel()
        >>> received = []
        >>> _ = channel.subscribe(received.append)
        >>> channel.notify("Export finished", NotificationLevel.SUCCESS)
        >>> received[0].message
        'Export finished'
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._listeners: List[NotificationListener] = []
        self._history: Deque[Notification] = deque(maxlen=history_size)
        self._pending: Deque[Notification] = deque()
        self._dispatching = False
        self._sequence = 0

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        """Publish a notification to every listener."""
        self._sequence += 1
        notification = Notification(message=message, level=level, sequence=self._sequence)
        self._history.append(notification)
        self._pending.append(notification)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._pending:
                current = self._pending.popleft()
                for listener in list(self._listeners):
                    try:
                        listener(current)
                    except Exception:
                        logger.exception(f"Notification listener failed for: {current.message}")
        finally:
            self._dispatching = False

    __call__ = notify

    @property
    def history(self) -> Tuple[Notification, ...]:
        """Most recent notifications, oldest first."""
        return tuple(self._history)
