"""Log implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class LogChannel:
    """Writes notifications to the application log."""

    @property
    def name(self) -> str:
        return "log"

    async def send(self, title: str, body: str) -> bool:
        logger.info("[Notification] %s: %s", title, body)
        return True
