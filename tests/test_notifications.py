"""
Tests for the notification channel and the logging bridge.
"""

import logging

from photosheet.notifications import NotificationChannel, NotificationLevel
from photosheet.utils.logging_utils import attach_notification_handler, detach_notification_handler


class TestNotificationChannel:
    """Tests for NotificationChannel."""

    def test_notify_when_subscribed_then_delivered_in_order(self):
        # Arrange
        channel = NotificationChannel()
        received = []
        channel.subscribe(received.append)

        # Act
        channel.notify("first")
        channel("second", NotificationLevel.SUCCESS)

        # Assert
        assert [n.message for n in received] == ["first", "second"]
        assert received[1].level is NotificationLevel.SUCCESS
        assert received[0].sequence < received[1].sequence

    def test_notify_when_listener_notifies_then_queued_after_current(self):
        channel = NotificationChannel()
        order = []

        def echo(notification):
            order.append(notification.message)
            if notification.message == "outer":
                channel.notify("inner")

        channel.subscribe(echo)
        channel.subscribe(lambda n: order.append(f"second:{n.message}"))

        channel.notify("outer")

        assert order == ["outer", "second:outer", "inner", "second:inner"]

    def test_notify_when_listener_raises_then_others_still_called(self, caplog):
        channel = NotificationChannel()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        channel.subscribe(broken)
        channel.subscribe(received.append)

        with caplog.at_level(logging.ERROR, logger="photosheet.notifications"):
            channel.notify("hello")

        assert len(received) == 1
        assert "Notification listener failed" in caplog.text

    def test_history_when_full_then_keeps_most_recent(self):
        channel = NotificationChannel(history_size=2)

        for message in ("a", "b", "c"):
            channel.notify(message)

        assert [n.message for n in channel.history] == ["b", "c"]

    def test_unsubscribe_when_called_then_no_delivery(self):
        channel = NotificationChannel()
        received = []
        unsubscribe = channel.subscribe(received.append)

        unsubscribe()
        channel.notify("x")

        assert received == []


class TestNotificationLogHandler:
    def test_handler_when_warning_logged_then_forwarded(self):
        # Arrange
        channel = NotificationChannel()
        handler = attach_notification_handler(channel)
        log = logging.getLogger("photosheet.test")
        log.setLevel(logging.DEBUG)

        try:
            # Act
            log.info("quiet")
            log.warning("Page 2 rendered without 1 image")
        finally:
            detach_notification_handler(handler)

        # Assert
        assert [n.message for n in channel.history] == ["Page 2 rendered without 1 image"]
        assert channel.history[0].level is NotificationLevel.WARNING
