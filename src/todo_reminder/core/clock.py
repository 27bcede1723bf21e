# src/todo_reminder/core/clock.py

"""
Clock capability and time predicates.

Everything that needs "now" takes it from an injected Clock (a zero-arg callable
returning an aware datetime), so tests can drive time deterministically.
Predicates are pure and never cache: "now" moves between calls.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta, tzinfo

Clock = Callable[[], datetime]

SOON_SECONDS = 3600


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_aware(ts: datetime) -> datetime:
    """Naive datetimes are read as local wall-clock time."""
    if ts.tzinfo is None:
        return ts.astimezone()
    return ts


def _local_date(ts: datetime, tz: tzinfo | None):
    return ts.astimezone(tz).date()


def is_today(ts: datetime | None, *, now: datetime | None = None, tz: tzinfo | None = None) -> bool:
    """True iff ts falls on the current calendar date in local time (or in tz)."""
    if ts is None:
        return False
    now = now if now is not None else utc_now()
    return _local_date(ensure_aware(ts), tz) == _local_date(ensure_aware(now), tz)


def is_overdue(ts: datetime | None, *, now: datetime | None = None) -> bool:
    if ts is None:
        return False
    now = now if now is not None else utc_now()
    return ensure_aware(ts) < ensure_aware(now)


def is_soon(
    ts: datetime | None,
    *,
    now: datetime | None = None,
    within_seconds: int = SOON_SECONDS,
) -> bool:
    """Due in the future, but no further away than within_seconds."""
    if ts is None:
        return False
    now = now if now is not None else utc_now()
    if is_overdue(ts, now=now):
        return False
    return ensure_aware(ts) - ensure_aware(now) < timedelta(seconds=within_seconds)


def format_datetime(ts: datetime | None, *, tz: tzinfo | None = None) -> str:
    if ts is None:
        return "No due date"
    return ensure_aware(ts).astimezone(tz).strftime("%Y-%m-%d %H:%M")
