# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "App display name (default: todo-reminder).",
    "TODO_LOG_LEVEL": "Console logging level (default: INFO).",
    # Storage (gitignored)
    "TODO_DATA_DIR": "Local data directory (default: .local/todo_reminder).",
    "TODO_STORE_DB_PATH": "Key-value SQLite path (default: <data_dir>/store.sqlite3).",
    "TODO_STORAGE_KEY": "Key holding the task collection (default: todo_reminder_app_v1).",
    # Scheduler
    "TODO_TICK_SECONDS": "Seconds between scheduler ticks (default: 1, min 0.1).",
    "TODO_FIRE_WINDOW_SECONDS": "How long after a threshold a tick still fires it (default: 5).",
    "TODO_FIRE_DEDUPE": "Fire each reminder/due moment once, even across restarts (default: true).",
    "TODO_SOON_SECONDS": "Due within this many seconds is shown as 'soon' (default: 3600).",
    # Notifications
    "TODO_TOAST_SECONDS": "How long an in-app toast stays active (default: 4).",
    "TODO_DESKTOP_NOTIFICATIONS": "Also use notify-send/osascript when available (default: true).",
    # Console
    "TODO_CONSOLE_ENABLED": "Run the interactive console (default: true).",
    "TODO_DEFAULT_LISTS": "Comma/space separated lists always offered (default: Personal Work).",
    # Matrix (optional push channel)
    "TODO_MATRIX_ENABLED": "Send reminders to a Matrix room (default: false).",
    "TODO_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "TODO_MATRIX_USER_ID": "Matrix user ID used to send.",
    "TODO_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "TODO_MATRIX_ROOM_ID": "Room that receives reminders (unencrypted).",
    "TODO_MATRIX_STORE_PATH": "Where session.json is kept (default: <data_dir>/matrix_store).",
}
