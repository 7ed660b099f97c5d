"""Fire-and-forget toast notifications."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)

DESTRUCTIVE = "destructive"


@dataclass(slots=True, frozen=True)
class Notification:
    title: str
    description: str | None = None
    variant: str = "default"
    duration_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "variant": self.variant,
            "duration_ms": self.duration_ms,
        }


class NotificationCenter:
    """Logs every toast and queues it until the client picks it up."""

    def __init__(self) -> None:
        self._pending: deque[Notification] = deque()
        self._lock = Lock()

    def notify(
        self,
        title: str,
        description: str | None = None,
        *,
        variant: str = "default",
        duration_ms: int | None = None,
    ) -> Notification:
        notification = Notification(
            title=title,
            description=description,
            variant=variant,
            duration_ms=duration_ms,
        )
        level = logging.WARNING if variant == DESTRUCTIVE else logging.INFO
        logger.log(level, "%s%s", title, f": {description}" if description else "")
        with self._lock:
            self._pending.append(notification)
        return notification

    def error(self, title: str, description: str | None = None) -> Notification:
        return self.notify(title, description, variant=DESTRUCTIVE)

    def drain(self) -> list[Notification]:
        with self._lock:
            drained = list(self._pending)
            self._pending.clear()
        return drained
