"""
Calendar day arithmetic shared by the leave, attendance and report services.

overlaps() is the single closed-interval overlap predicate; overlap_clause() is its
SQL form. Every leave-vs-leave and leave-vs-window test goes through one of them.
"""
import calendar
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

from sqlalchemy import and_

from hrms.core.config import settings
from hrms.core.exceptions import InvalidRange, ValidationError

DayLike = Union[date, datetime, str]


def normalize(value: DayLike) -> date:
    """
    Truncate a date, datetime or ISO string to a calendar day in settings.CALENDAR_TZ.

    Aware datetimes are converted to the calendar zone before truncation; naive
    datetimes are read as wall-clock time in that zone.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError("Date value is empty")
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid date: {value}")

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(settings.calendar_zone)
        return value.date()

    if isinstance(value, date):
        return value

    raise ValidationError(f"Unsupported date value: {value!r}")


def expand(start: date, end: date) -> List[date]:
    """Every calendar day from start to end inclusive."""
    if start > end:
        raise InvalidRange(f"Start date {start} is after end date {end}")
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """True iff the closed intervals [a_start, a_end] and [b_start, b_end] share a day."""
    return a_start <= b_end and b_start <= a_end


def overlap_clause(col_start, col_end, start: date, end: date):
    """SQL form of overlaps() for a row interval [col_start, col_end] against [start, end]."""
    return and_(col_start <= end, start <= col_end)


def month_window(month: int, year: int) -> Tuple[date, date]:
    """First and last calendar day of a month."""
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValidationError("Year is out of range")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def clip(start: date, end: date, window_start: date, window_end: date) -> Optional[Tuple[date, date]]:
    """Intersection of [start, end] with the window, or None when they do not overlap."""
    if not overlaps(start, end, window_start, window_end):
        return None
    return max(start, window_start), min(end, window_end)
