"""ZapTasks service entry point."""

from __future__ import annotations

import asyncio
import logging
import signal

from zaptasks.config import Settings, settings
from zaptasks.notifications import LogChannel, NotificationRouter, WebhookChannel
from zaptasks.scheduler import HealthGate, SchedulerEngine, TaskStore, build_executor

logger = logging.getLogger(__name__)


def build_router(config: Settings) -> NotificationRouter:
    """Create the notification router with the configured channels."""
    router = NotificationRouter()
    router.register_channel(LogChannel())
    if config.notification_webhook_url:
        router.register_channel(WebhookChannel(config.notification_webhook_url))
    return router


def build_engine(config: Settings, router: NotificationRouter) -> SchedulerEngine:
    """Wire store, executor and health gate into a SchedulerEngine."""
    store = TaskStore(db_path=config.database_path)
    health = HealthGate(
        config.health_url(),
        router,
        timeout=config.health_timeout_seconds,
    )
    return SchedulerEngine(
        store=store,
        executor=build_executor(config),
        notifier=router,
        health=health,
        interval_seconds=config.tick_interval_seconds,
        timezone=config.scheduler_timezone or None,
        preview_length=config.notification_preview_length,
    )


async def run(config: Settings, stop_event: asyncio.Event | None = None) -> None:
    """Run the scheduler until SIGINT or SIGTERM (or *stop_event* is set)."""
    router = build_router(config)
    engine = build_engine(config, router)

    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await engine.start()
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await engine.stop()
        await engine.wait_for_inflight()
        await router.flush()


def main() -> None:
    """Start the ZapTasks scheduler service."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    logger.info(
        "Starting ZapTasks (backend=%s, database=%s)",
        settings.execution_backend,
        settings.database_path,
    )
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
