"""Task and ExecutionRecord data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from zaptasks.scheduler.schedule import Schedule, describe, parse


@dataclass
class Task:
    """A shell command run on a schedule.

    Attributes:
        id: Unique identifier (UUID hex).
        name: Human-readable name.
        command: Shell-interpretable command line.
        schedule: Serialized schedule, e.g. ``{"type": "daily", "time": "09:00"}``.
        schedule_display: Human-readable schedule summary (display only).
            Filled from ``schedule`` when empty.
        working_directory: Directory the command runs in (None → default).
        is_scheduled: Whether the scheduler evaluates this task at all.
        last_ran: ISO 8601 timestamp of the last dispatch, whatever its outcome.
        created_at: ISO 8601 timestamp.
    """

    id: str
    name: str
    command: str
    schedule: str
    schedule_display: str = ""
    working_directory: str | None = None
    is_scheduled: bool = True
    last_ran: str | None = None
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = datetime.now(UTC).isoformat()
        if not self.schedule_display:
            self.schedule_display = describe(self.parsed_schedule)

    @property
    def parsed_schedule(self) -> Schedule | None:
        """The parsed schedule, or None if the stored string is malformed."""
        return parse(self.schedule)

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``tasks`` column order."""
        return (
            self.id,
            self.name,
            self.command,
            self.schedule,
            self.schedule_display,
            self.working_directory,
            int(self.is_scheduled),
            self.last_ran,
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        """Deserialize from a SQLite row tuple."""
        return cls(
            id=row[0],
            name=row[1],
            command=row[2],
            schedule=row[3],
            schedule_display=row[4] or "",
            working_directory=row[5],
            is_scheduled=bool(row[6]),
            last_ran=row[7],
            created_at=row[8],
        )


@dataclass(frozen=True)
class ExecutionRecord:
    """The outcome of one command execution. Never mutated after creation.

    ``task_id`` is None once the owning task has been deleted.
    """

    id: str
    task_id: str | None
    timestamp: str
    success: bool
    output: str

    @classmethod
    def from_row(cls, row: tuple) -> ExecutionRecord:
        return cls(
            id=row[0],
            task_id=row[1],
            timestamp=row[2],
            success=bool(row[3]),
            output=row[4],
        )


@dataclass(frozen=True)
class ExecutionResult:
    """What an executor reports back for one run."""

    success: bool
    output: str


def make_id() -> str:
    """Generate a new task or record ID."""
    return uuid.uuid4().hex
