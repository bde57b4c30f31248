# smartwings/notifications.py
from __future__ import annotations
import logging
from typing import Callable, List, Optional

from .models import Notification

logger = logging.getLogger("SmartWings-Notifications")


class NotificationChannel:
    """Collects user-facing alerts; an optional listener gets each one as it is posted."""

    def __init__(self, listener: Optional[Callable[[Notification], None]] = None):
        self.listener = listener
        self.history: List[Notification] = []

    def post(self, message: str, severity: str = "info") -> Notification:
        note = Notification(severity=severity, message=message)
        self.history.append(note)
        logger.debug(f"[{severity}] {message}")
        if self.listener:
            self.listener(note)
        return note

    def error(self, message: str) -> Notification:
        return self.post(message, "error")

    def success(self, message: str) -> Notification:
        return self.post(message, "success")

    def info(self, message: str) -> Notification:
        return self.post(message, "info")

    @property
    def last(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None
