"""NotificationRouter — fans notifications out to every registered channel."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zaptasks.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Delivers each notification to all registered channels.

    ``notify()`` is fire-and-forget: delivery runs as a background task and
    channel failures are logged, never raised to the caller.
    """

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._pending: set[asyncio.Task] = set()

    def register_channel(self, channel: NotificationChannel) -> None:
        """Register a notification channel. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def get_channel(self, name: str) -> NotificationChannel | None:
        """Look up a channel by name."""
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        """Return names of all registered channels."""
        return list(self._channels.keys())

    def notify(self, title: str, body: str) -> None:
        """Schedule delivery of a notification without waiting for it."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping notification: %s", title)
            return
        task = loop.create_task(self.send(title, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def send(self, title: str, body: str) -> bool:
        """Deliver to every channel. Returns True if at least one succeeded."""
        if not self._channels:
            logger.warning("No notification channels registered (title=%s)", title)
            return False

        delivered = False
        for name, channel in list(self._channels.items()):
            try:
                ok = await channel.send(title, body)
            except Exception:
                logger.exception("Notification channel '%s' raised", name)
                ok = False
            if not ok:
                logger.warning("Notification channel '%s' failed to deliver: %s", name, title)
            delivered = delivered or ok
        return delivered

    async def flush(self) -> None:
        """Wait for all queued notifications to finish."""
        while pending := [t for t in self._pending if not t.done()]:
            await asyncio.gather(*pending, return_exceptions=True)
