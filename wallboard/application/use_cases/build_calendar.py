from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from wallboard.domain.models.calendar import CALENDAR_DAY_COUNT, CalendarCell, CalendarFeed, CalendarWindow
from wallboard.domain.models.job import Job
from wallboard.domain.rules.windows import date_key

log = logging.getLogger(__name__)

DAY_LABELS: tuple[str, ...] = ("Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom")
_MONTH_NAMES: tuple[str, ...] = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def bucket_jobs(jobs: Iterable[Job], window: CalendarWindow) -> CalendarFeed:
    """Fan every job out into each calendar day it touches inside the window.

    The primary date key (the job's start date) is recorded separately so a
    highlight maps to exactly one cell regardless of the job's duration.
    """
    jobs_by_date: dict[str, list[Job]] = {}
    job_date_lookup: dict[str, str] = {}
    skipped = 0
    for job in jobs:
        job_date_lookup[str(job.id)] = date_key(job.start_time)

        span_start = max(job.start_time, window.start)
        span_end = min(job.end_time, window.end)
        if span_end < span_start:
            skipped += 1
            continue

        day = span_start.date()
        last_day = span_end.date()
        while day <= last_day:
            jobs_by_date.setdefault(day.isoformat(), []).append(job)
            day += timedelta(days=1)

    log.debug(
        "Calendar bucketed jobs=%s days=%s skipped=%s window_start=%s",
        len(job_date_lookup),
        len(jobs_by_date),
        skipped,
        window.start.isoformat(),
    )
    return CalendarFeed(window=window, jobs_by_date=jobs_by_date, job_date_lookup=job_date_lookup)


def build_calendar_cells(
    feed: CalendarFeed,
    today: date,
    highlight_ids: Iterable[str] = (),
) -> list[CalendarCell]:
    highlights_by_key: dict[str, set[str]] = {}
    for job_id in highlight_ids:
        key = feed.job_date_lookup.get(job_id)
        if key is None:
            continue
        highlights_by_key.setdefault(key, set()).add(job_id)

    today_key = today.isoformat()
    first_day = feed.window.first_day
    cells: list[CalendarCell] = []
    for offset in range(CALENDAR_DAY_COUNT):
        day = first_day + timedelta(days=offset)
        key = day.isoformat()
        cells.append(
            CalendarCell(
                date=day,
                iso_key=key,
                in_month=day.year == feed.window.focus_year and day.month == feed.window.focus_month,
                is_today=key == today_key,
                jobs=tuple(feed.jobs_by_date.get(key, ())),
                highlight_job_ids=frozenset(highlights_by_key.get(key, ())),
            )
        )
    return cells


def month_label(window: CalendarWindow) -> str:
    return month_name(window.focus_year, window.focus_month)


def month_name(year: int, month: int) -> str:
    return f"{_MONTH_NAMES[month - 1]} {year}"
