"""Schedule engine — schedules, due-ness arithmetic, persistence, execution."""

from zaptasks.scheduler.engine import SchedulerEngine
from zaptasks.scheduler.executor import (
    Executor,
    LocalProcessExecutor,
    RemoteExecutor,
    build_executor,
)
from zaptasks.scheduler.health import HealthGate
from zaptasks.scheduler.models import ExecutionRecord, ExecutionResult, Task
from zaptasks.scheduler.store import ExecutionRepository, TaskStore

__all__ = [
    "ExecutionRecord",
    "ExecutionRepository",
    "ExecutionResult",
    "Executor",
    "HealthGate",
    "LocalProcessExecutor",
    "RemoteExecutor",
    "SchedulerEngine",
    "Task",
    "TaskStore",
    "build_executor",
]
