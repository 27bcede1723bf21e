# src/todo_reminder/notify/matrix_notifier.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse, RoomSendResponse

from ..tasks.task_scheduler import FireEvent

logger = logging.getLogger(__name__)


def _session_path(store_dir: Path) -> Path:
    # Keep session tokens in a single predictable place under a gitignored local dir.
    return store_dir / "session.json"


def _load_json(path: Path) -> dict[str, Any]:
    val = json.loads(path.read_text("utf-8"))
    if isinstance(val, dict):
        return val
    raise ValueError("Expected JSON object")


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except Exception:
        # Best-effort: not critical on Windows or restricted FS.
        pass


def render_matrix_text(event: FireEvent) -> str:
    return f"{event.title}\n{event.body}" if event.body else event.title


class MatrixNotifier:
    """
    Pushes fire events to one Matrix room (e.g. to reach a phone).

    Session handling:
    - session.json (access token + device id) is reused across restarts
    - otherwise a one-time password login bootstraps it
    The file contains a token and must stay under the gitignored data dir.

    Unencrypted rooms only.
    """

    def __init__(
        self,
        *,
        homeserver: str,
        user_id: str,
        room_id: str | None,
        password: str = "",
        store_dir: str | Path = ".local/todo_reminder/matrix_store",
        device_name: str = "todo-reminder (Python)",
    ) -> None:
        self._homeserver = (homeserver or "").strip()
        self._user_id = (user_id or "").strip()
        self._room_id = (room_id or "").strip() or None
        self._password = password or ""
        self._store_dir = Path(store_dir)
        self._device_name = device_name
        self._client: AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings) -> MatrixNotifier:
        return cls(
            homeserver=getattr(settings, "matrix_homeserver", ""),
            user_id=getattr(settings, "matrix_user_id", ""),
            room_id=getattr(settings, "matrix_room_id", None),
            password=getattr(settings, "matrix_password", ""),
            store_dir=getattr(settings, "matrix_store_path", Path(".local/todo_reminder/matrix_store")),
            device_name=f"{getattr(settings, 'app_name', 'todo-reminder')} (Python)",
        )

    async def start(self) -> bool:
        """Create the client and restore or bootstrap a session. False if not usable."""
        if not self._homeserver or not self._user_id or not self._room_id:
            logger.error(
                "Matrix notifier is not configured: set TODO_MATRIX_HOMESERVER, "
                "TODO_MATRIX_USER_ID and TODO_MATRIX_ROOM_ID"
            )
            return False

        self._store_dir.mkdir(parents=True, exist_ok=True)
        session_file = _session_path(self._store_dir)

        client = AsyncClient(
            self._homeserver,
            self._user_id,
            config=AsyncClientConfig(encryption_enabled=False, store_sync_tokens=False),
        )

        # ---- Session restore ----
        if session_file.exists():
            try:
                data = _load_json(session_file)
                access_token = data.get("access_token")
                sess_user_id = data.get("user_id")
                device_id = data.get("device_id")
                if not access_token or not sess_user_id or not device_id:
                    raise ValueError("session.json is missing required fields")

                client.access_token = str(access_token)
                client.user_id = str(sess_user_id)
                client.device_id = str(device_id)
                self._client = client
                logger.info("Matrix session restored for %s", client.user_id)
                return True
            except Exception as e:
                logger.warning("Failed to restore Matrix session.json, will try password login: %r", e)

        # ---- Password login bootstrap ----
        if not self._password:
            logger.error(
                "Matrix session.json not found and password is not set. "
                "Set TODO_MATRIX_PASSWORD once to bootstrap a session."
            )
            await client.close()
            return False

        logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", self._device_name)
        try:
            resp = await client.login(password=self._password, device_name=self._device_name)
        except Exception:
            logger.exception("Matrix login raised; Matrix notifier disabled.")
            await client.close()
            return False
        if not isinstance(resp, LoginResponse):
            logger.error("Matrix login failed: %r", resp)
            await client.close()
            return False

        try:
            _atomic_write_json(
                session_file,
                {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id},
            )
            logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
        except Exception as e:
            # The live session still works; the next start will log in again.
            logger.warning("Failed to write Matrix session.json (%s): %r", session_file, e)

        self._client = client
        return True

    async def on_fire(self, event: FireEvent) -> None:
        if self._client is None or self._room_id is None:
            return
        resp = await self._client.room_send(
            room_id=self._room_id,
            message_type="m.room.message",
            content={"msgtype": "m.text", "body": render_matrix_text(event)},
        )
        if not isinstance(resp, RoomSendResponse):
            logger.warning("Matrix send failed for task %s: %r", event.task_id, resp)
            return
        logger.info("Task %s %s sent to room %s.", event.task_id, event.kind.value, self._room_id)

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.close()
