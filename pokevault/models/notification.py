from dataclasses import dataclass
from enum import Enum


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notification:
    """A transient user-visible message (toast)."""

    title: str
    description: str = ""
    level: NotificationLevel = NotificationLevel.INFO

    @property
    def is_error(self) -> bool:
        return self.level is NotificationLevel.ERROR
