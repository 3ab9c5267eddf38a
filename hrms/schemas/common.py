"""
Shared schema helpers
"""
from datetime import date
from typing import Any

from hrms.core.exceptions import DomainError
from hrms.utils.date_range import normalize


def to_calendar_day(value: Any) -> date:
    """Pydantic 'before' hook: accept dates, datetimes or ISO strings and keep only the calendar day"""
    if value is None:
        return value
    try:
        return normalize(value)
    except DomainError as exc:
        raise ValueError(exc.detail)
