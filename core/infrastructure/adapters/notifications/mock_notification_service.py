"""
In-memory notification sink.

Default notification service when Telegram is disabled; tests read back
what the event handlers sent.
"""
from typing import Any, Dict, List
import logging

from core.application.interfaces import INotificationService
from core.infrastructure.adapters.notifications import severity_badge


logger = logging.getLogger(__name__)


class MockNotificationService(INotificationService):
    """Keeps every notification as ``{"message", "severity"}`` in send order."""

    def __init__(self):
        self.notifications_sent: List[Dict[str, Any]] = []

    async def notify(self, message: str, severity: int = 50) -> None:
        self.notifications_sent.append({"message": message, "severity": severity})
        logger.info(f"{severity_badge(severity)} notification (severity={severity}): {message}")

    def get_notifications(self, min_severity: int = 0) -> List[Dict[str, Any]]:
        return [n for n in self.notifications_sent if n["severity"] >= min_severity]

    def clear(self) -> None:
        self.notifications_sent.clear()
