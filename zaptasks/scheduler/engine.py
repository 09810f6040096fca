"""SchedulerEngine — periodic tick, missed-task catch-up, and dispatch."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from zaptasks.scheduler.clock import is_due, next_run
from zaptasks.scheduler.health import HealthGate
from zaptasks.scheduler.models import ExecutionResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from zaptasks.notifications.channels import Notifier
    from zaptasks.scheduler.executor import Executor
    from zaptasks.scheduler.models import Task
    from zaptasks.scheduler.store import ExecutionRepository

logger = logging.getLogger(__name__)

_TICK_JOB_ID = "zaptasks-tick"


def make_clock(timezone: str | None = None) -> Callable[[], datetime]:
    """Return a callable reading "now" in *timezone* (system local time when empty)."""
    if timezone:
        tz = ZoneInfo(timezone)
        return lambda: datetime.now(tz)
    return lambda: datetime.now().astimezone()


def _parse_timestamp(value: str | None, like: datetime) -> datetime | None:
    """Parse a stored ISO timestamp into the same kind of datetime as *like*."""
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring unparsable timestamp: %r", value)
        return None
    if like.tzinfo is None:
        return ts.astimezone().replace(tzinfo=None) if ts.tzinfo else ts
    if ts.tzinfo is None:
        return ts.replace(tzinfo=like.tzinfo)
    return ts.astimezone(like.tzinfo)


class SchedulerEngine:
    """Evaluates every scheduled task once per tick and runs the due ones.

    A single APScheduler interval job drives ``tick()``. Tests (and anything
    else that wants to simulate time) call ``tick()`` and
    ``execute_missed_tasks()`` directly with an injected *clock*.

    Args:
        store: Repository the task list is reloaded from on every tick and
            where execution records are appended.
        executor: Transport that runs the commands.
        notifier: Receives completion and service-health notifications.
        health: Gate consulted before dispatching (default: always healthy).
        clock: Callable returning "now" (default: now in *timezone*).
        interval_seconds: Seconds between ticks.
        timezone: IANA timezone for the default clock and the timer
            (default: system local time).
        preview_length: Characters of command output included in
            completion notifications.
    """

    def __init__(
        self,
        store: ExecutionRepository,
        executor: Executor,
        notifier: Notifier,
        health: HealthGate | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        interval_seconds: float = 60.0,
        timezone: str | None = None,
        preview_length: int = 100,
    ) -> None:
        self._store = store
        self._executor = executor
        self._notifier = notifier
        self._health = health or HealthGate(None, notifier)
        self._timezone = timezone or None
        self._clock = clock or make_clock(self._timezone)
        self._interval = interval_seconds
        self._preview_length = preview_length
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: list[Task] = []
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def is_healthy(self) -> bool:
        return self._health.is_healthy

    @property
    def tasks(self) -> list[Task]:
        """Snapshot of the task list from the last reload."""
        return list(self._tasks)

    @property
    def inflight_task_ids(self) -> set[str]:
        return set(self._inflight)

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Catch up on missed tasks, then start ticking."""
        await self.stop()
        await self._refresh()
        caught_up = await self.execute_missed_tasks()

        if self._timezone:
            scheduler = AsyncIOScheduler(timezone=self._timezone)
        else:
            scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self._tick_job,
            trigger=IntervalTrigger(seconds=self._interval),
            id=_TICK_JOB_ID,
            name="tick",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Scheduler started with %d scheduled task(s), %d caught up (interval=%ss)",
            len(self._tasks),
            caught_up,
            self._interval,
        )

    async def stop(self) -> None:
        """Stop ticking. Commands already dispatched keep running."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped (%d run(s) still in flight)", len(self._inflight))

    async def run_now(self, task_id: str) -> bool:
        """Run a task immediately, whatever its schedule, and wait until it is recorded.

        Returns False if the task does not exist or is already running.
        """
        task = await self._store.get_task(task_id)
        if task is None:
            logger.warning("Cannot run task %s: not found", task_id)
            return False
        if not self._dispatch(task, self._clock()):
            return False
        await self._inflight[task_id]
        return True

    async def wait_for_inflight(self) -> None:
        """Wait until every dispatched run has been recorded."""
        while runs := [t for t in self._inflight.values() if not t.done()]:
            await asyncio.gather(*runs, return_exceptions=True)

    # -- Evaluation ------------------------------------------------------------

    async def tick(self) -> int:
        """Run one evaluation cycle. Returns the number of tasks dispatched."""
        now = self._clock()
        await self._health.probe()
        tasks = await self._refresh()

        if not self._health.is_healthy:
            logger.warning("Service is unhealthy, skipping execution of %d task(s)", len(tasks))
            return 0

        dispatched = 0
        for task in tasks:
            if not task.is_scheduled:
                continue
            try:
                due = self._is_due(task, now)
            except Exception:
                logger.exception("Failed to evaluate task '%s' (%s)", task.name, task.id)
                continue
            if due and self._dispatch(task, now):
                dispatched += 1
        return dispatched

    async def execute_missed_tasks(self) -> int:
        """Run, once each, the tasks whose schedule fired since they last ran.

        A task that never ran is measured from the epoch, so it runs once at
        start. Several missed firings still produce a single run.
        """
        now = self._clock()
        dispatched = 0

        for task in self._tasks:
            if not task.is_scheduled:
                continue
            try:
                missed = self._is_missed(task, now)
            except Exception:
                logger.exception(
                    "Failed to check task '%s' (%s) for missed runs", task.name, task.id
                )
                continue
            if missed and self._dispatch(task, now):
                dispatched += 1

        if dispatched:
            logger.info("Caught up on %d missed task(s)", dispatched)
        return dispatched

    def _is_due(self, task: Task, now: datetime) -> bool:
        schedule = task.parsed_schedule
        if schedule is None:
            logger.warning(
                "Task '%s' (%s) has an invalid schedule: %s", task.name, task.id, task.schedule
            )
            return False
        if is_due(schedule, now):
            logger.info("Task '%s' (%s) is due", task.name, task.id)
            return True
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Task '%s' not due at %s, next run %s",
                task.name,
                now.isoformat(),
                next_run(schedule, now),
            )
        return False

    def _is_missed(self, task: Task, now: datetime) -> bool:
        last_ran = _parse_timestamp(task.last_ran, now)
        never = datetime(1970, 1, 1, tzinfo=now.tzinfo)
        due_at = next_run(task.parsed_schedule, last_ran or never)
        if due_at is None:
            logger.warning(
                "Task '%s' (%s) has an invalid schedule: %s", task.name, task.id, task.schedule
            )
            return False
        if due_at > now:
            return False
        if last_ran is None:
            logger.info("Task '%s' (%s) has never run, executing now", task.name, task.id)
        else:
            logger.info(
                "Missed task '%s' (%s) was due at %s, executing now",
                task.name,
                task.id,
                due_at.isoformat(),
            )
        return True

    # -- Internal --------------------------------------------------------------

    async def _tick_job(self) -> None:
        """Callback invoked by APScheduler."""
        try:
            await self.tick()
        except Exception:
            logger.exception("Scheduler tick failed")

    async def _refresh(self) -> list[Task]:
        try:
            self._tasks = await self._store.load_scheduled_tasks()
        except Exception:
            logger.exception("Failed to load tasks, keeping %d cached task(s)", len(self._tasks))
        return self._tasks

    def _dispatch(self, task: Task, now: datetime) -> bool:
        """Start a run in the background. Returns False if one is already going."""
        if task.id in self._inflight:
            logger.info(
                "Task '%s' (%s) is still running, not dispatching again", task.name, task.id
            )
            return False
        run = asyncio.create_task(self._run_task(task.id, now), name=f"run-{task.id}")
        self._inflight[task.id] = run
        run.add_done_callback(lambda _run, task_id=task.id: self._inflight.pop(task_id, None))
        return True

    async def _run_task(self, task_id: str, dispatched_at: datetime) -> None:
        try:
            task = await self._store.get_task(task_id)
        except Exception:
            logger.exception("Failed to look up task %s, skipping run", task_id)
            return
        if task is None:
            logger.info("Task %s was deleted before it ran, skipping", task_id)
            return

        try:
            await self._store.update_last_ran(task_id, dispatched_at.isoformat())
        except Exception:
            logger.exception("Failed to update last_ran for '%s' (%s)", task.name, task_id)

        try:
            result = await self._executor.execute(task)
        except Exception as exc:
            logger.exception("Executor raised for '%s' (%s)", task.name, task_id)
            result = ExecutionResult(success=False, output=f"Error: {exc}")

        await self._record(task, result)

    async def _record(self, task: Task, result: ExecutionResult) -> None:
        timestamp = self._clock().isoformat()
        try:
            await self._store.append_execution_record(
                task.id, timestamp, result.success, result.output
            )
        except Exception:
            logger.exception("Failed to save execution record for '%s' (%s)", task.name, task.id)

        status = "Completed" if result.success else "Failed"
        logger.info("Task '%s' (%s) %s", task.name, task.id, status.lower())
        self._notifier.notify(f"{task.name} {status}", self._preview(result.output))

    def _preview(self, output: str) -> str:
        if len(output) <= self._preview_length:
            return output
        return output[: self._preview_length] + "..."
