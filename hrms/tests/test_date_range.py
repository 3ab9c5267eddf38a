"""
Tests for calendar day helpers
"""
import itertools
from datetime import date, datetime, timedelta, timezone

import pytest

from hrms.core.config import settings
from hrms.core.exceptions import InvalidRange, ValidationError
from hrms.utils.date_range import clip, expand, month_window, normalize, overlaps
from hrms.utils.datetime_utils import FixedClock


def test_normalize_passes_dates_through():
    assert normalize(date(2024, 1, 10)) == date(2024, 1, 10)


def test_normalize_truncates_naive_datetime():
    assert normalize(datetime(2024, 1, 10, 23, 59, 59)) == date(2024, 1, 10)


def test_normalize_uses_calendar_timezone_for_aware_datetimes(monkeypatch):
    """20:00 UTC on the 10th is already the 11th in Asia/Kolkata"""
    instant = datetime(2024, 1, 10, 20, 0, tzinfo=timezone.utc)
    assert normalize(instant) == date(2024, 1, 10)

    monkeypatch.setattr(settings, "CALENDAR_TZ", "Asia/Kolkata")
    assert normalize(instant) == date(2024, 1, 11)


def test_normalize_parses_iso_strings():
    assert normalize("2024-01-10") == date(2024, 1, 10)
    assert normalize("2024-01-10T23:30:00Z") == date(2024, 1, 10)


@pytest.mark.parametrize("value", ["", "not-a-date", "2024-13-01"])
def test_normalize_rejects_bad_strings(value):
    with pytest.raises(ValidationError):
        normalize(value)


def test_expand_is_inclusive():
    assert expand(date(2024, 1, 10), date(2024, 1, 12)) == [
        date(2024, 1, 10),
        date(2024, 1, 11),
        date(2024, 1, 12),
    ]


def test_expand_single_day():
    assert expand(date(2024, 1, 10), date(2024, 1, 10)) == [date(2024, 1, 10)]


def test_expand_crosses_month_and_leap_day():
    days = expand(date(2024, 2, 28), date(2024, 3, 1))
    assert days == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]


def test_expand_is_restartable():
    start, end = date(2024, 1, 1), date(2024, 1, 31)
    assert expand(start, end) == expand(start, end)
    assert len(expand(start, end)) == 31


def test_expand_rejects_reversed_range():
    with pytest.raises(InvalidRange):
        expand(date(2024, 1, 12), date(2024, 1, 10))


def test_overlaps_edges():
    d = date(2024, 1, 10)
    # Sharing a single endpoint day is an overlap
    assert overlaps(d, d + timedelta(days=2), d + timedelta(days=2), d + timedelta(days=5))
    # Adjacent spans do not overlap
    assert not overlaps(d, d + timedelta(days=2), d + timedelta(days=3), d + timedelta(days=5))
    # Containment
    assert overlaps(d, d + timedelta(days=10), d + timedelta(days=3), d + timedelta(days=4))


def test_overlaps_is_symmetric():
    base = date(2024, 1, 1)
    points = [base + timedelta(days=i) for i in range(5)]
    intervals = [(a, b) for a, b in itertools.product(points, repeat=2) if a <= b]
    for (a, b), (c, d) in itertools.product(intervals, repeat=2):
        assert overlaps(a, b, c, d) == overlaps(c, d, a, b)
        # Agrees with set intersection of the expanded days
        shared = set(expand(a, b)) & set(expand(c, d))
        assert overlaps(a, b, c, d) == bool(shared)


def test_month_window():
    assert month_window(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_window(12, 2023) == (date(2023, 12, 1), date(2023, 12, 31))


@pytest.mark.parametrize("month", [0, 13])
def test_month_window_rejects_bad_month(month):
    with pytest.raises(ValidationError):
        month_window(month, 2024)


def test_clip_to_window():
    window = (date(2024, 1, 1), date(2024, 1, 31))
    assert clip(date(2024, 1, 30), date(2024, 2, 2), *window) == (date(2024, 1, 30), date(2024, 1, 31))
    assert clip(date(2023, 12, 30), date(2024, 1, 2), *window) == (date(2024, 1, 1), date(2024, 1, 2))
    assert clip(date(2024, 2, 1), date(2024, 2, 2), *window) is None


def test_fixed_clock_today_follows_calendar_timezone(monkeypatch):
    clock = FixedClock(datetime(2024, 1, 20, 20, 0, tzinfo=timezone.utc))
    assert clock.today() == date(2024, 1, 20)

    monkeypatch.setattr(settings, "CALENDAR_TZ", "Asia/Kolkata")
    assert clock.today() == date(2024, 1, 21)

    clock.advance(timedelta(hours=-12))
    assert clock.now() == datetime(2024, 1, 20, 8, 0, tzinfo=timezone.utc)
