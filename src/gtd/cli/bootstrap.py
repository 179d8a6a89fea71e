# src/gtd/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- opens the TaskStore (schema creation + migration happen here, before any
  command touches the store),
- wires the clock and the author identity provider into AppState.

Command handlers receive the AppState explicitly; nothing here is global.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Clock, IdentityProvider
from ..core.providers import SettingsIdentityProvider, SystemClock
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.resolve_db_path().parent.mkdir(parents=True, exist_ok=True)


def init_logging(settings=None) -> None:
    """Console level from settings.log_level; full DEBUG log under data_dir."""
    if settings is None:
        settings = get_settings()
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=getattr(settings, "data_dir", ".local/gtd"), console_level=console_level)


def create_initial_state(
    *,
    settings=None,
    identity: IdentityProvider | None = None,
    clock: Clock | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    settings.validate()

    _ensure_local_dirs(settings)

    clock = clock or SystemClock()
    identity = identity or SettingsIdentityProvider(settings)

    db_path = settings.resolve_db_path()
    state = AppState(
        settings=settings,
        task_store=TaskStore(db_path, clock=clock, busy_timeout=settings.busy_timeout),
        identity=identity,
        clock=clock,
    )
    logger.debug("AppState ready db=%s", db_path)
    return state
