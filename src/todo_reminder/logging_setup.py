# src/todo_reminder/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


# Minimum console level per logger prefix; the first match wins.
_CONSOLE_FLOORS: tuple[tuple[str, int], ...] = (
    ("todo_reminder.tasks.task_scheduler", logging.WARNING),
    ("todo_reminder.", logging.NOTSET),
    ("nio", logging.WARNING),
)


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the console readable: app logs pass, per-tick and library chatter does not."""

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, floor in _CONSOLE_FLOORS:
            if record.name.startswith(prefix):
                return record.levelno >= floor
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/todo_reminder",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """Console handler (filtered) plus a full log file under log_dir. Call once at startup."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "todo_reminder.log"

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(_ConsoleNoiseFilter())

    logfile = logging.FileHandler(log_file, encoding="utf-8")
    logfile.setLevel(file_level)

    # force=True replaces handlers left by an earlier call.
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[console, logfile],
        force=True,
    )

    logging.captureWarnings(True)
