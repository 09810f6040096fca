"""Executors — run a task's command and report the outcome.

Two transports exist: a local ``bash -c`` subprocess and a remote shell
service that accepts the command as a ``text/plain`` POST. Neither raises:
every failure comes back as ``ExecutionResult(success=False, ...)``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING, Protocol

import httpx

from zaptasks.scheduler.models import ExecutionResult

if TYPE_CHECKING:
    from zaptasks.config import Settings
    from zaptasks.scheduler.models import Task

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """Protocol that all command transports must satisfy."""

    async def execute(self, task: Task) -> ExecutionResult:
        """Run the task's command. Must not raise."""
        ...


class LocalProcessExecutor:
    """Runs commands in a local shell subprocess.

    Args:
        shell: Shell binary invoked as ``<shell> -c <command>``.
        extra_path: Directories appended to ``PATH`` if missing, so commands
            find tools installed outside a minimal service environment.
    """

    def __init__(self, shell: str = "/bin/bash", extra_path: list[str] | None = None) -> None:
        self._shell = shell
        self._extra_path = extra_path or []

    async def execute(self, task: Task) -> ExecutionResult:
        logger.info("Executing task locally: '%s' (%s)", task.name, task.id)
        try:
            proc = await asyncio.create_subprocess_exec(
                self._shell,
                "-c",
                task.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self._working_directory(task),
                env=self._environment(),
            )
            stdout, _ = await proc.communicate()
        except (OSError, ValueError) as exc:
            logger.error("Failed to execute task '%s': %s", task.name, exc)
            return ExecutionResult(success=False, output=f"Error: {exc}")

        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        success = proc.returncode == 0
        logger.info(
            "Task '%s' exited with status %s (%d chars of output)",
            task.name,
            proc.returncode,
            len(output),
        )
        return ExecutionResult(success=success, output=output)

    def _working_directory(self, task: Task) -> str | None:
        directory = task.working_directory
        if not directory:
            return None
        if os.path.isdir(directory) and os.access(directory, os.R_OK | os.X_OK):
            return directory
        logger.warning("Working directory is not readable: %s", directory)
        return None

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        parts = [p for p in env.get("PATH", "").split(os.pathsep) if p]
        for extra in self._extra_path:
            if extra not in parts:
                parts.append(extra)
        env["PATH"] = os.pathsep.join(parts)
        return env


class RemoteExecutor:
    """Posts commands to a remote shell service.

    The command is sent as the ``text/plain`` body to ``base_url`` followed by
    the task's working directory, e.g. ``http://host:7575/srv/app``.

    Args:
        base_url: Root URL of the shell service.
        timeout: Seconds to wait for the response. None (default) waits for
            as long as the command runs.
    """

    def __init__(self, base_url: str, timeout: float | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def url_for(self, task: Task) -> str:
        """Return the URL the task's command is posted to."""
        directory = task.working_directory
        if not directory:
            return self._base_url
        return self._base_url + (directory if directory.startswith("/") else f"/{directory}")

    async def execute(self, task: Task) -> ExecutionResult:
        url = self.url_for(task)
        logger.info("Executing task remotely: '%s' (%s) -> %s", task.name, task.id, url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    url,
                    content=task.command.encode("utf-8"),
                    headers={"Content-Type": "text/plain"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Failed to execute task '%s' via %s: %s", task.name, url, exc)
            return ExecutionResult(success=False, output=f"Error: {exc}")

        output = resp.text
        if resp.status_code == 200:
            return ExecutionResult(success=True, output=output)
        logger.warning(
            "Shell service returned %d for task '%s': %s",
            resp.status_code,
            task.name,
            output[:200],
        )
        return ExecutionResult(success=False, output=output)


def build_executor(settings: Settings) -> Executor:
    """Create the executor selected by ``EXECUTION_BACKEND``."""
    backend = settings.execution_backend
    if backend == "local":
        return LocalProcessExecutor(shell=settings.shell, extra_path=settings.get_extra_path())
    if backend == "remote":
        return RemoteExecutor(base_url=settings.backend_base_url)
    msg = f"Unknown execution backend: {backend!r} (expected 'local' or 'remote')"
    raise ValueError(msg)
