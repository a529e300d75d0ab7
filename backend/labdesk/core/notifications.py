"""
Notification sink for human-readable workflow events.

Events such as "Patient Registered" or "Test Assigned Successfully" are
recorded for the surrounding interface to display. They carry no control-flow
meaning: emitting never raises into the caller.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List

from .config import settings

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    title: str
    description: str
    level: NotificationLevel = NotificationLevel.SUCCESS
    created_at: datetime = field(default_factory=datetime.utcnow)


class NotificationSink:
    """Bounded in-memory buffer of the most recent notifications."""

    def __init__(self, maxlen: int = settings.NOTIFICATION_BUFFER_SIZE):
        self._events: Deque[Notification] = deque(maxlen=maxlen)

    def success(self, title: str, description: str = "") -> None:
        self._emit(Notification(title=title, description=description))

    def error(self, title: str, description: str = "") -> None:
        self._emit(Notification(title=title, description=description, level=NotificationLevel.ERROR))

    def _emit(self, notification: Notification) -> None:
        try:
            self._events.append(notification)
            if notification.level == NotificationLevel.ERROR:
                logger.warning("%s: %s", notification.title, notification.description)
            else:
                logger.info("%s: %s", notification.title, notification.description)
        except Exception as exc:
            logger.warning("Notification dropped (%s): %s", notification.title, exc)

    def recent(self, limit: int = 50) -> List[Notification]:
        """Most recent notifications, newest first."""
        return list(reversed(self._events))[:limit]

    def clear(self) -> None:
        self._events.clear()


notification_sink = NotificationSink()
