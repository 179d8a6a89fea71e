# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from gtd.config import Settings
from gtd.core.state import AppState
from gtd.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeIdentity


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings built directly (no env reads) so unit tests stay isolated
    and deterministic.
    """
    return Settings(
        app_name="gtd-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        database_name="tasks.db",
        database_path=tmp_path / "tasks.db",
        project_root=None,
        busy_timeout=1.0,
        page_size=20,
        default_priority="medium",
        show_warnings=True,
        author="Test User <test@example.com>",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(settings: Settings, clock: FakeClock) -> TaskStore:
    """Real SQLite store on a tmp file: its behavior is what we want to test."""
    return TaskStore(settings.resolve_db_path(), clock=clock, busy_timeout=settings.busy_timeout)


@pytest.fixture()
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture()
def state(settings: Settings, store: TaskStore, identity: FakeIdentity, clock: FakeClock) -> AppState:
    return AppState(settings=settings, task_store=store, identity=identity, clock=clock)
