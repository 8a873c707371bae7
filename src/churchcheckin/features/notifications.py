"""Messages for the operator, delivered to whoever subscribes."""

import dataclasses
import enum
import itertools
import logging
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class Severity(enum.Enum):
    """How a notification is displayed."""

    DEFAULT = "information"
    SUCCESS = "success"
    DESTRUCTIVE = "error"


@dataclasses.dataclass
class Notification:
    """A message shown to the operator."""

    title: str
    description: Optional[str] = None
    severity: Severity = Severity.DEFAULT
    duration: float = 5.0
    """Seconds to display the message."""
    notification_id: int = 0


Listener = Callable[[Notification], None]


class NotificationService:
    """Publish/subscribe channel for operator notifications.

    One instance is created by the application and passed to every component
    that emits messages.
    """

    _listeners: list[Listener]
    _ids: "itertools.count[int]"

    def __init__(self) -> None:
        self._listeners = []
        self._ids = itertools.count(1)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(
        self,
        title: str,
        description: Optional[str] = None,
        severity: Severity = Severity.DEFAULT,
        duration: float = 5.0,
    ) -> Notification:
        """Send a notification to all listeners."""
        notification = Notification(
            title, description, severity, duration, next(self._ids)
        )
        logger.info("Notification: %s %s", title, description or "")
        for listener in list(self._listeners):
            listener(notification)
        return notification

    def success(self, title: str, description: Optional[str] = None) -> Notification:
        return self.publish(title, description, Severity.SUCCESS)

    def error(self, title: str, description: Optional[str] = None) -> Notification:
        return self.publish(title, description, Severity.DESTRUCTIVE, duration=10.0)
