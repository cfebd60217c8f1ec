"""Calendar arithmetic shared by the generator, the sweep and the evaluator."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, tzinfo


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(day: date, tz: tzinfo | None = None) -> datetime:
    """Last representable instant of *day*, in *tz* (naive when None)."""
    return datetime.combine(day, time.max, tzinfo=tz)


def is_past_due(due: date, now: datetime) -> bool:
    """True once the whole of *due* lies before *now*."""
    return end_of_day(due, now.tzinfo) < now


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the ISO week containing *day*."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Return ``(year, month)`` moved *offset* months forward."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of the given month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def sunday_based_weekday(day: date) -> int:
    """Weekday of *day* with 0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7
