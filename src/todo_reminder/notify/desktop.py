# src/todo_reminder/notify/desktop.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import sys

from ..tasks.task_scheduler import FireEvent

logger = logging.getLogger(__name__)


def _applescript_quote(s: str) -> str:
    return '"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"'


def detect_backend() -> list[str] | None:
    """
    Command prefix for OS notifications on this machine, or None.

    Linux/BSD: notify-send (libnotify). macOS: osascript.
    """
    if sys.platform == "darwin":
        exe = shutil.which("osascript")
        return [exe] if exe else None
    exe = shutil.which("notify-send")
    return [exe, "--app-name=todo-reminder"] if exe else None


async def _kill(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()


class DesktopNotifier:
    """
    Best-effort OS-level notifications.

    Design goals:
    - never raises: a missing backend or a failing call disables this sink
      and the app keeps its toast notifications
    - does not block the scheduler loop (async subprocess with a timeout)
    """

    def __init__(self, enabled: bool = True, *, backend: list[str] | None = None, timeout: float = 5.0) -> None:
        self._timeout = timeout
        self._backend = backend if backend is not None else (detect_backend() if enabled else None)
        self.enabled = bool(enabled and self._backend)
        if enabled and not self._backend:
            logger.info("Desktop notifications unavailable (no notify-send/osascript); toast only.")

    def _argv(self, title: str, body: str) -> list[str]:
        backend = self._backend or []
        if backend and backend[0].endswith("osascript"):
            script = f"display notification {_applescript_quote(body)} with title {_applescript_quote(title)}"
            return [*backend, "-e", script]
        # "--" keeps a title starting with "-" from being read as an option.
        return [*backend, "--", title, body]

    async def on_fire(self, event: FireEvent) -> None:
        if not self.enabled:
            return
        argv = self._argv(event.title, event.body)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except Exception:
            logger.warning("Desktop notifier could not start; disabling desktop sink.", exc_info=True)
            self.enabled = False
            return

        try:
            rc = await asyncio.wait_for(proc.wait(), timeout=self._timeout)
        except TimeoutError:
            logger.warning("Desktop notifier hung for %.1fs; disabling desktop sink.", self._timeout)
            self.enabled = False
            return
        finally:
            # Reaped on every exit path, cancellation included.
            if proc.returncode is None:
                await _kill(proc)

        if rc != 0:
            logger.warning("Desktop notifier exited with %s; disabling desktop sink.", rc)
            self.enabled = False

    async def close(self) -> None:
        return
