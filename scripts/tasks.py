#!/usr/bin/env python3
"""Manage scheduled tasks and their execution history.

Usage examples:
    # List tasks with their schedule, last run and next run
    python scripts/tasks.py list

    # Back up a directory every day at 02:30
    python scripts/tasks.py add "Backup" "rsync -a ~/docs /mnt/backup" --daily 02:30

    # Run a script in a working directory every 15 minutes
    python scripts/tasks.py add "Sync" "./sync.sh" --every 15 --cwd /srv/app

    # Move a task to Mondays at 08:00
    python scripts/tasks.py edit 3f2a... --weekly Monday 08:00

    # Pause / resume scheduling
    python scripts/tasks.py disable 3f2a...
    python scripts/tasks.py enable 3f2a...

    # Run a task right now, outside its schedule
    python scripts/tasks.py run 3f2a...

    # Last 20 executions of one task
    python scripts/tasks.py history 3f2a... --limit 20
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from zaptasks.config import settings
from zaptasks.main import build_router
from zaptasks.scheduler.clock import next_run
from zaptasks.scheduler.engine import SchedulerEngine, make_clock
from zaptasks.scheduler.executor import Executor, build_executor
from zaptasks.scheduler.models import Task, make_id
from zaptasks.scheduler.schedule import (
    Daily,
    EveryNMinutes,
    Hourly,
    Monthly,
    Schedule,
    Weekly,
    describe,
    serialize,
)
from zaptasks.scheduler.store import TaskStore


def schedule_from_args(args: argparse.Namespace) -> Schedule | None:
    """Build a Schedule from the --daily/--hourly/--weekly/--monthly/--every flags."""
    if args.daily:
        return Daily(time=args.daily)
    if args.hourly is not None:
        return Hourly(minute=args.hourly)
    if args.weekly:
        day, time = args.weekly
        return Weekly(weekday=day.capitalize(), time=time)
    if args.monthly:
        day, time = args.monthly
        return Monthly(day=int(day), time=time)
    if args.every is not None:
        return EveryNMinutes(interval_minutes=args.every)
    return None


def _add_schedule_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--daily", metavar="HH:MM", help="Run every day at HH:MM")
    group.add_argument("--hourly", metavar="MIN", type=int, help="Run every hour at minute MIN")
    group.add_argument("--weekly", nargs=2, metavar=("DAY", "HH:MM"), help="Run weekly on DAY")
    group.add_argument("--monthly", nargs=2, metavar=("DAY", "HH:MM"), help="Run monthly on DAY")
    group.add_argument("--every", metavar="N", type=int, help="Run every N minutes")


def _print_task(task: Task, now: datetime) -> None:
    state = "on " if task.is_scheduled else "off"
    last = task.last_ran or "never"
    upcoming = next_run(task.parsed_schedule, now) if task.is_scheduled else None
    upcoming_text = upcoming.strftime("%Y-%m-%d %H:%M") if upcoming else "-"
    print(f"{task.id}  [{state}]  {task.name}")
    print(f"    {task.schedule_display}  (last ran: {last}, next run: {upcoming_text})")
    where = f"  (in {task.working_directory})" if task.working_directory else ""
    print(f"    $ {task.command}{where}")


async def _run_now(task_id: str, store: TaskStore, executor: Executor) -> int:
    router = build_router(settings)
    engine = SchedulerEngine(
        store=store,
        executor=executor,
        notifier=router,
        timezone=settings.scheduler_timezone or None,
        preview_length=settings.notification_preview_length,
    )
    ran = await engine.run_now(task_id)
    await router.flush()
    if not ran:
        print(f"ERROR: no task {task_id}", file=sys.stderr)
        return 1

    [record] = await store.list_execution_records(task_id, limit=1)
    print(f"{record.timestamp} {'OK  ' if record.success else 'FAIL'} {record.id}")
    for line in record.output.rstrip().splitlines():
        print(f"    {line}")
    return 0 if record.success else 1


async def _run(
    args: argparse.Namespace, store: TaskStore, executor: Executor | None = None
) -> int:
    if args.command == "list":
        tasks = await store.list_tasks()
        if not tasks:
            print("No tasks.")
        now = make_clock(settings.scheduler_timezone or None)()
        for task in tasks:
            _print_task(task, now)
        return 0

    if args.command == "run":
        return await _run_now(args.task_id, store, executor or build_executor(settings))

    if args.command == "add":
        schedule = schedule_from_args(args)
        if schedule is None:
            print("ERROR: a schedule flag is required", file=sys.stderr)
            return 1
        task = Task(
            id=make_id(),
            name=args.name,
            command=args.shell_command,
            schedule=serialize(schedule),
            working_directory=args.cwd,
            is_scheduled=not args.disabled,
        )
        await store.add_task(task)
        print(f"Added {task.id}: {task.schedule_display}")
        return 0

    if args.command == "edit":
        task = await store.get_task(args.task_id)
        if task is None:
            print(f"ERROR: no task {args.task_id}", file=sys.stderr)
            return 1
        if args.name:
            task.name = args.name
        if args.shell_command:
            task.command = args.shell_command
        if args.cwd is not None:
            task.working_directory = args.cwd or None
        schedule = schedule_from_args(args)
        if schedule is not None:
            task.schedule = serialize(schedule)
            task.schedule_display = describe(schedule)
        await store.update_task(task)
        print(f"Updated {task.id}: {task.schedule_display}")
        return 0

    if args.command in ("enable", "disable"):
        if not await store.set_scheduled(args.task_id, args.command == "enable"):
            print(f"ERROR: no task {args.task_id}", file=sys.stderr)
            return 1
        return 0

    if args.command == "delete":
        if not await store.delete_task(args.task_id):
            print(f"ERROR: no task {args.task_id}", file=sys.stderr)
            return 1
        print(f"Deleted {args.task_id} and its history")
        return 0

    if args.command == "history":
        records = await store.list_execution_records(args.task_id, limit=args.limit)
        if not records:
            print("No executions recorded.")
        for record in records:
            status = "OK  " if record.success else "FAIL"
            print(f"{record.timestamp} {status} {record.id}")
            if args.output and record.output:
                for line in record.output.rstrip().splitlines():
                    print(f"    {line}")
        return 0

    if args.command == "delete-record":
        if not await store.delete_execution_record(args.record_id):
            print(f"ERROR: no record {args.record_id}", file=sys.stderr)
            return 1
        return 0

    return 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage ZapTasks scheduled tasks")
    parser.add_argument(
        "--db", type=Path, default=None, help="Database path (default: DATABASE_PATH)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List all tasks")

    add = sub.add_parser("add", help="Add a task")
    add.add_argument("name")
    add.add_argument("shell_command", metavar="command")
    add.add_argument("--cwd", help="Working directory")
    add.add_argument("--disabled", action="store_true", help="Create with scheduling off")
    _add_schedule_flags(add)

    edit = sub.add_parser("edit", help="Edit a task")
    edit.add_argument("task_id")
    edit.add_argument("--name")
    edit.add_argument("--command", dest="shell_command")
    edit.add_argument("--cwd", help="Working directory ('' clears it)")
    _add_schedule_flags(edit)

    for name in ("run", "enable", "disable", "delete"):
        p = sub.add_parser(name, help=f"{name.capitalize()} a task")
        p.add_argument("task_id")

    history = sub.add_parser("history", help="Show execution history")
    history.add_argument("task_id", nargs="?", default=None)
    history.add_argument("--limit", "-n", type=int, default=20)
    history.add_argument("--output", action="store_true", help="Include command output")

    delete_record = sub.add_parser("delete-record", help="Delete one execution record")
    delete_record.add_argument("record_id")

    args = parser.parse_args()
    store = TaskStore(db_path=args.db or settings.database_path)
    try:
        code = asyncio.run(_run(args, store))
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
