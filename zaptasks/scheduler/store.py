"""TaskStore — aiosqlite persistence for tasks and execution records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import aiosqlite

from zaptasks.scheduler.models import ExecutionRecord, Task, make_id

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TASKS = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    command TEXT NOT NULL,
    schedule TEXT NOT NULL,
    schedule_display TEXT NOT NULL DEFAULT '',
    working_directory TEXT,
    is_scheduled INTEGER NOT NULL DEFAULT 1,
    last_ran TEXT,
    created_at TEXT NOT NULL
)
"""

_CREATE_RECORDS = """
CREATE TABLE IF NOT EXISTS execution_records (
    id TEXT PRIMARY KEY,
    task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
    timestamp TEXT NOT NULL,
    success INTEGER NOT NULL,
    output TEXT NOT NULL
)
"""

_CREATE_RECORDS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_execution_records_task
    ON execution_records (task_id, timestamp)
"""

_TASK_COLUMNS = (
    "id, name, command, schedule, schedule_display, working_directory,"
    " is_scheduled, last_ran, created_at"
)
_RECORD_COLUMNS = "id, task_id, timestamp, success, output"


class ExecutionRepository(Protocol):
    """What the scheduler needs from persistence."""

    async def load_scheduled_tasks(self) -> list[Task]:
        """Return every task whose schedule should be evaluated."""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if it no longer exists."""
        ...

    async def append_execution_record(
        self, task_id: str, timestamp: str, success: bool, output: str
    ) -> ExecutionRecord:
        """Store the outcome of one run."""
        ...

    async def update_last_ran(self, task_id: str, timestamp: str) -> None:
        """Set the task's last dispatch time."""
        ...


class TaskStore:
    """Persists tasks and their execution history in SQLite.

    Each operation opens its own short-lived connection, so the store is
    safe to share between the scheduler and an editing process.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        await db.execute("PRAGMA busy_timeout=5000")
        await db.execute("PRAGMA foreign_keys=ON")
        if not self._initialised:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute(_CREATE_TASKS)
            await db.execute(_CREATE_RECORDS)
            await db.execute(_CREATE_RECORDS_INDEX)
            await db.commit()
            self._initialised = True
        return db

    # -- Tasks -----------------------------------------------------------------

    async def add_task(self, task: Task) -> Task:
        """Insert a new task. Returns the same task object."""
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO tasks ({_TASK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                task.to_row(),
            )
            await db.commit()
            logger.info("Added task: %s (%s)", task.name, task.id)
            return task
        finally:
            await db.close()

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,)
            )
            row = await cursor.fetchone()
            return Task.from_row(row) if row else None
        finally:
            await db.close()

    async def list_tasks(self) -> list[Task]:
        """Return all tasks, oldest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY created_at"
            )
            rows = await cursor.fetchall()
            return [Task.from_row(row) for row in rows]
        finally:
            await db.close()

    async def load_scheduled_tasks(self) -> list[Task]:
        """Return tasks with scheduling enabled."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE is_scheduled = 1 ORDER BY created_at"
            )
            rows = await cursor.fetchall()
            return [Task.from_row(row) for row in rows]
        finally:
            await db.close()

    async def update_task(self, task: Task) -> bool:
        """Overwrite a task's editable fields. Returns True if a row was updated."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                UPDATE tasks
                SET name = ?, command = ?, schedule = ?, schedule_display = ?,
                    working_directory = ?, is_scheduled = ?
                WHERE id = ?
                """,
                (
                    task.name,
                    task.command,
                    task.schedule,
                    task.schedule_display,
                    task.working_directory,
                    int(task.is_scheduled),
                    task.id,
                ),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def set_scheduled(self, task_id: str, is_scheduled: bool) -> bool:
        """Enable or disable scheduling for a task. Returns True if a row was updated."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE tasks SET is_scheduled = ? WHERE id = ?",
                (int(is_scheduled), task_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
            if updated:
                logger.info(
                    "%s scheduling for task %s", "Enabled" if is_scheduled else "Disabled", task_id
                )
            return updated
        finally:
            await db.close()

    async def update_last_ran(self, task_id: str, timestamp: str) -> None:
        """Set the last_ran timestamp."""
        db = await self._connect()
        try:
            await db.execute(
                "UPDATE tasks SET last_ran = ? WHERE id = ?",
                (timestamp, task_id),
            )
            await db.commit()
        finally:
            await db.close()

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task and its execution records. Returns True if it existed."""
        db = await self._connect()
        try:
            await db.execute("DELETE FROM execution_records WHERE task_id = ?", (task_id,))
            cursor = await db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted task: %s", task_id)
            return deleted
        finally:
            await db.close()

    # -- Execution records -----------------------------------------------------

    async def append_execution_record(
        self, task_id: str, timestamp: str, success: bool, output: str
    ) -> ExecutionRecord:
        """Insert a record for a finished run.

        If the task was deleted while its command was running, the record is
        kept as an orphan (``task_id`` None).
        """
        db = await self._connect()
        try:
            record_id = make_id()
            # Owner is resolved by the insert itself; a missing task yields NULL
            await db.execute(
                f"INSERT INTO execution_records ({_RECORD_COLUMNS})"
                " VALUES (?, (SELECT id FROM tasks WHERE id = ?), ?, ?, ?)",
                (record_id, task_id, timestamp, int(success), output),
            )
            await db.commit()
            cursor = await db.execute(
                f"SELECT {_RECORD_COLUMNS} FROM execution_records WHERE id = ?", (record_id,)
            )
            record = ExecutionRecord.from_row(await cursor.fetchone())
            if record.task_id is None:
                logger.info("Task %s is gone, record %s stored as orphan", task_id, record_id)
            return record
        finally:
            await db.close()

    async def list_execution_records(
        self, task_id: str | None = None, limit: int | None = None
    ) -> list[ExecutionRecord]:
        """Return execution records, newest first, optionally for one task."""
        sql = f"SELECT {_RECORD_COLUMNS} FROM execution_records"
        params: list = []
        if task_id is not None:
            sql += " WHERE task_id = ?"
            params.append(task_id)
        sql += " ORDER BY timestamp DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        db = await self._connect()
        try:
            cursor = await db.execute(sql, tuple(params))
            rows = await cursor.fetchall()
            return [ExecutionRecord.from_row(row) for row in rows]
        finally:
            await db.close()

    async def delete_execution_record(self, record_id: str) -> bool:
        """Delete a single execution record. Returns True if it existed."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "DELETE FROM execution_records WHERE id = ?", (record_id,)
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()
