"""Shared test fixtures."""

from pathlib import Path

import pytest

from zaptasks.scheduler.store import TaskStore


@pytest.fixture
async def store(tmp_path: Path) -> TaskStore:
    """Create a TaskStore backed by a temp database."""
    return TaskStore(db_path=tmp_path / "test.db")
