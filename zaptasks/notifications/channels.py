"""Notification protocols — what the scheduler notifies and how it is delivered."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all notification channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'log', 'webhook')."""
        ...

    async def send(self, title: str, body: str) -> bool:
        """Deliver a notification. Returns True on success."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Fire-and-forget notification sink used by the scheduler."""

    def notify(self, title: str, body: str) -> None:
        """Queue a notification. Must not block or raise."""
        ...
