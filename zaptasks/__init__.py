"""ZapTasks — run shell commands on human-authored schedules."""

__version__ = "0.1.0"
