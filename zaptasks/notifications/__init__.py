"""Notification channel abstraction layer."""

from zaptasks.notifications.channels import NotificationChannel, Notifier
from zaptasks.notifications.log_channel import LogChannel
from zaptasks.notifications.router import NotificationRouter
from zaptasks.notifications.webhook_channel import WebhookChannel

__all__ = [
    "LogChannel",
    "NotificationChannel",
    "NotificationRouter",
    "Notifier",
    "WebhookChannel",
]
