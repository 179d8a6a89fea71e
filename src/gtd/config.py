# src/gtd/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is required at import time; every value has a default.
- Malformed numbers/booleans fall back to defaults; semantic checks live in
  Settings.validate().
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .core.errors import ConfigError

ENV_PREFIX = "GTD"

DEFAULT_DATABASE_NAME = "claude-tasks.db"
DEFAULT_PRIORITIES = ("high", "medium", "low")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env never overrides the real environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Optional[Path]) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    data_dir: Path
    database_name: str
    database_path: Optional[Path]
    project_root: Optional[Path]
    busy_timeout: float

    # ---- Behavior ----
    page_size: int
    default_priority: str
    show_warnings: bool

    # ---- Identity ----
    author: Optional[str]

    def resolve_db_path(self) -> Path:
        """Explicit path wins, then <project_root>/<name>, then <data_dir>/<name>."""
        if self.database_path is not None:
            return self.database_path
        if self.project_root is not None:
            return self.project_root / self.database_name
        return self.data_dir / self.database_name

    def validate(self) -> None:
        if self.default_priority not in DEFAULT_PRIORITIES:
            raise ConfigError(f"invalid default priority: {self.default_priority}")
        if self.page_size < 1:
            raise ConfigError("page size must be at least 1")
        if self.busy_timeout <= 0:
            raise ConfigError("busy timeout must be positive")

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "gtd") or "gtd"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/gtd")) or Path(".local/gtd")
        database_name = _env(_k("DATABASE_NAME"), DEFAULT_DATABASE_NAME) or DEFAULT_DATABASE_NAME
        database_path = _env_path(_k("DATABASE_PATH"), None)
        project_root = _env_path(_k("PROJECT_ROOT"), None)
        busy_timeout = _env_float(_k("BUSY_TIMEOUT"), 5.0)

        page_size = _env_int(_k("PAGE_SIZE"), 20)
        default_priority = _env(_k("DEFAULT_PRIORITY"), "medium").strip().lower()
        show_warnings = _env_bool(_k("SHOW_WARNINGS"), True)

        author = _first_env(_k("AUTHOR"), default=None)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            database_name=database_name,
            database_path=database_path,
            project_root=project_root,
            busy_timeout=busy_timeout,
            page_size=page_size,
            default_priority=default_priority,
            show_warnings=show_warnings,
            author=author.strip() if author else None,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
