"""
User-visible notifications.

The update engine reports every accepted mutation through a Notifier.
Views subscribe to render toasts; the history is kept for inspection.
"""

import logging
from collections.abc import Callable

from pokevault.models.notification import Notification, NotificationLevel

logger = logging.getLogger(__name__)

NotificationListener = Callable[[Notification], None]


class Notifier:
    """Records notifications and fans them out to subscribers."""

    def __init__(self, history_size: int = 100) -> None:
        self.history_size = history_size
        self.history: list[Notification] = []
        self._listeners: list[NotificationListener] = []

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, notification: Notification) -> None:
        if notification.is_error:
            logger.warning("%s: %s", notification.title, notification.description)
        else:
            logger.info("%s: %s", notification.title, notification.description)

        self.history.append(notification)
        del self.history[: -self.history_size]

        for listener in list(self._listeners):
            listener(notification)

    def success(self, title: str, description: str = "") -> None:
        self.notify(Notification(title, description, NotificationLevel.SUCCESS))

    def info(self, title: str, description: str = "") -> None:
        self.notify(Notification(title, description, NotificationLevel.INFO))

    def error(self, title: str, description: str = "") -> None:
        self.notify(Notification(title, description, NotificationLevel.ERROR))
