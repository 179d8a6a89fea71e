# src/gtd/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "gtd.log"


class _ConsoleNoiseFilter(logging.Filter):
    """
    stderr only carries gtd's own records; stdout is reserved for task listings.

    Anything else (sqlite3 adapters, dotenv, captured warnings) reaches the
    terminal only at ERROR and above. The log file still gets all of it.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "gtd" or record.name.startswith("gtd."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/gtd",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Route gtd logs to stderr (filtered) and to <log_dir>/gtd.log (everything).

    Each command invocation calls this before opening the task store, so store
    readiness and migration records land in the file. Calling it again replaces
    the handlers instead of stacking them.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    logfile = logging.FileHandler(str(log_dir / LOG_FILE_NAME), encoding="utf-8")
    logfile.setLevel(file_level)
    logfile.setFormatter(fmt)
    root.addHandler(logfile)

    logging.captureWarnings(True)
