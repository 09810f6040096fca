"""HealthGate — suspends execution while the shell service is unreachable."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from zaptasks.notifications.channels import Notifier

logger = logging.getLogger(__name__)

UNAVAILABLE_TITLE = "Service Unavailable"
UNAVAILABLE_BODY = "The task execution service is currently unreachable."


class HealthGate:
    """Tracks whether the execution backend answers its liveness check.

    The scheduler calls ``probe()`` once per tick; there is no independent
    retry. The owner is notified once each time the backend goes from
    healthy to unhealthy.

    Args:
        url: Liveness URL (``<base_url>/health``). None disables probing and
            the gate stays healthy, as with the local executor.
        notifier: Receives the "Service Unavailable" notification.
        timeout: Seconds to wait for the liveness response.
    """

    def __init__(self, url: str | None, notifier: Notifier, timeout: float = 5.0) -> None:
        self._url = url
        self._notifier = notifier
        self._timeout = timeout
        self._healthy = True

    @property
    def is_healthy(self) -> bool:
        return self._healthy

    async def probe(self) -> bool:
        """Check the backend and update ``is_healthy``. Returns the new state."""
        if self._url is None:
            return self._healthy

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self._url)
            healthy = resp.status_code == 200
            if not healthy:
                logger.warning("Health check returned %d from %s", resp.status_code, self._url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Health check failed for %s: %s", self._url, exc)
            healthy = False

        self._set(healthy)
        return healthy

    def _set(self, healthy: bool) -> None:
        was_healthy = self._healthy
        self._healthy = healthy
        if was_healthy and not healthy:
            logger.error("Execution service is unreachable; suspending task execution")
            self._notifier.notify(UNAVAILABLE_TITLE, UNAVAILABLE_BODY)
        elif not was_healthy and healthy:
            logger.info("Execution service is reachable again; resuming task execution")
