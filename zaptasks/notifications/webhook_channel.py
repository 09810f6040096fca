"""Webhook implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class WebhookChannel:
    """Posts notifications as ``{"title": ..., "body": ...}`` JSON to a URL.

    Args:
        url: Endpoint receiving the POST (e.g. an ntfy topic or chat webhook).
        timeout: Seconds to wait for the endpoint.
    """

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "webhook"

    async def send(self, title: str, body: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json={"title": title, "body": body})
        except httpx.HTTPError as exc:
            logger.error("Webhook notification failed (network error): %s", exc)
            return False

        if resp.is_success:
            return True
        logger.error(
            "Webhook notification failed: status=%d body=%s", resp.status_code, resp.text[:200]
        )
        return False
