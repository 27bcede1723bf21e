# src/todo_reminder/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and notification channels swappable and makes testing easier.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.task_scheduler import FireEvent


class KeyValueStore(Protocol):
    """
    Persistence collaborator: one string value per key.

    get() returns None for a missing key.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...


class FireSink(Protocol):
    """Receives fire events from the reminder scheduler."""

    async def on_fire(self, event: FireEvent) -> None: ...


class NotificationSink(FireSink, Protocol):
    """
    A notification channel (toast, desktop, Matrix, ...).

    Sinks own their resources; close() is called once on shutdown.
    """

    async def close(self) -> None: ...
