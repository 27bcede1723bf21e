# src/todo_reminder/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time: every key has a working default.
- Matrix credentials are only needed when the Matrix notifier is enabled.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

ENV_PREFIX = "TODO"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
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


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path
    storage_key: str

    # ---- Scheduler ----
    tick_seconds: float
    fire_window_seconds: int
    fire_dedupe: bool
    soon_seconds: int

    # ---- Notifications ----
    toast_seconds: float
    desktop_notifications: bool

    # ---- Connector flags ----
    console_enabled: bool
    default_lists: List[str]

    # ---- Matrix notifier ----
    matrix_enabled: bool
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_room_id: Optional[str]
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo-reminder") or "todo-reminder"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo_reminder"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "store.sqlite3")
        storage_key = _env(_k("STORAGE_KEY"), "todo_reminder_app_v1").strip() or "todo_reminder_app_v1"

        # The scheduler is useless with a tick longer than its firing window.
        tick_seconds = max(0.1, _env_float(_k("TICK_SECONDS"), 1.0))
        fire_window_seconds = max(1, _env_int(_k("FIRE_WINDOW_SECONDS"), 5))
        fire_dedupe = _env_bool(_k("FIRE_DEDUPE"), True)
        soon_seconds = max(0, _env_int(_k("SOON_SECONDS"), 3600))

        toast_seconds = max(0.0, _env_float(_k("TOAST_SECONDS"), 4.0))
        desktop_notifications = _env_bool(_k("DESKTOP_NOTIFICATIONS"), True)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        default_lists = _env_list(_k("DEFAULT_LISTS"), ["Personal", "Work"])

        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)
        matrix_homeserver = _env(_k("MATRIX_HOMESERVER"), "").strip()
        matrix_user_id = _env(_k("MATRIX_USER_ID"), "").strip()
        matrix_password = _env(_k("MATRIX_PASSWORD"), "").strip()
        matrix_room_id = _env(_k("MATRIX_ROOM_ID"), "").strip() or None
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            store_db_path=store_db_path,
            storage_key=storage_key,
            tick_seconds=tick_seconds,
            fire_window_seconds=fire_window_seconds,
            fire_dedupe=fire_dedupe,
            soon_seconds=soon_seconds,
            toast_seconds=toast_seconds,
            desktop_notifications=desktop_notifications,
            console_enabled=console_enabled,
            default_lists=default_lists,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_room_id=matrix_room_id,
            matrix_store_path=matrix_store_path,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env for secrets; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore

    # Simple overrides for selected switches. Keep it explicit.
    if hasattr(_config_local, "CONSOLE_ENABLED"):
        object.__setattr__(SETTINGS, "console_enabled", bool(_config_local.CONSOLE_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "MATRIX_ENABLED"):
        object.__setattr__(SETTINGS, "matrix_enabled", bool(_config_local.MATRIX_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "DESKTOP_NOTIFICATIONS"):
        object.__setattr__(  # type: ignore[misc]
            SETTINGS, "desktop_notifications", bool(_config_local.DESKTOP_NOTIFICATIONS)
        )
except Exception:
    pass


def get_settings() -> Settings:
    return SETTINGS
