from __future__ import annotations

from datetime import date, datetime, timedelta

from wallboard.domain.models.calendar import CALENDAR_DAY_COUNT, CalendarWindow, TimeWindow

_LAST_MICROSECOND = timedelta(microseconds=1)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def detail_window(now: datetime, days: int = 7) -> TimeWindow:
    today = start_of_day(now)
    return TimeWindow(start=today, end=today + timedelta(days=days) - _LAST_MICROSECOND)


def calendar_window(now: datetime) -> CalendarWindow:
    """Six-week grid anchored on the Monday on/before the 1st of the current month."""
    first_of_month = start_of_day(now).replace(day=1)
    grid_start = first_of_month - timedelta(days=first_of_month.weekday())
    grid_end = grid_start + timedelta(days=CALENDAR_DAY_COUNT) - _LAST_MICROSECOND
    return CalendarWindow(
        start=grid_start,
        end=grid_end,
        focus_year=first_of_month.year,
        focus_month=first_of_month.month,
    )


def date_key(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()
