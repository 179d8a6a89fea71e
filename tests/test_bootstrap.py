# tests/test_bootstrap.py

from __future__ import annotations

import dataclasses
import logging

import pytest

from gtd.cli.bootstrap import create_initial_state, init_logging
from gtd.config import Settings
from gtd.core.errors import ConfigError
from gtd.core.providers import SettingsIdentityProvider
from gtd.tasks import task_api

from .fakes import FakeClock


def test_create_initial_state_wires_store_and_identity(settings: Settings) -> None:
    state = create_initial_state(settings=settings, clock=FakeClock())

    assert state.task_store.db_path == settings.resolve_db_path()
    assert settings.data_dir.is_dir()
    assert isinstance(state.identity, SettingsIdentityProvider)

    task = task_api.add_task(state, "BUG", "Crash", "Crashes on start")
    assert task.author == "Test User <test@example.com>"
    assert task.created == state.clock.current


def test_invalid_settings_are_refused(settings: Settings) -> None:
    with pytest.raises(ConfigError):
        create_initial_state(settings=dataclasses.replace(settings, page_size=0))


def test_identity_provider_requires_author(settings: Settings) -> None:
    provider = SettingsIdentityProvider(dataclasses.replace(settings, author=None))
    with pytest.raises(LookupError):
        provider.get_author()


def test_init_logging_writes_log_file(settings: Settings) -> None:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    try:
        init_logging(settings)
        logging.getLogger("gtd.test").debug("hello from the test")
        for h in root.handlers:
            h.flush()
        assert "hello from the test" in (settings.data_dir / "gtd.log").read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
