"""Timezone-aware clock helpers.

Services never read the wall clock themselves: they receive ``now`` (or a
``clock`` callable) from their caller so day boundaries are consistent
within a request and deterministic under test.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_today(clock: Clock = utcnow) -> date:
    """The current calendar day in UTC according to ``clock``."""
    return ensure_utc(clock()).date()


def previous_day(day: date) -> date:
    return day - timedelta(days=1)
