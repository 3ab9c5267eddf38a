"""
Timezone-aware datetime helpers and the injectable clock.
- Timestamps are stored and computed in UTC.
- Calendar days are taken in settings.CALENDAR_TZ.
"""
from datetime import date, datetime, timezone
from typing import Optional

from hrms.core.config import settings

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def iso_8601_utc(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with Z for UTC."""
    if dt is None:
        return None
    s = ensure_utc(dt).isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s


class Clock:
    """Source of the current time. Services never call datetime.now() directly."""

    def now(self) -> datetime:
        return now_utc()

    def today(self) -> date:
        return self.now().astimezone(settings.calendar_zone).date()


class SystemClock(Clock):
    pass


class FixedClock(Clock):
    """Clock frozen at a given instant, advanced manually. Used by tests and replays."""

    def __init__(self, instant: datetime):
        self._instant = ensure_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta) -> None:
        self._instant = self._instant + delta


system_clock = SystemClock()
