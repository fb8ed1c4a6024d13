from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wallboard.domain.models.job import Job

CALENDAR_DAY_COUNT = 42


@dataclass(slots=True, frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return end >= self.start and start <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(slots=True, frozen=True)
class CalendarWindow(TimeWindow):
    focus_year: int = 1970
    focus_month: int = 1

    @property
    def first_day(self) -> date:
        return self.start.date()


@dataclass(slots=True, frozen=True)
class CalendarFeed:
    window: CalendarWindow
    jobs_by_date: dict[str, list["Job"]] = field(default_factory=dict)
    job_date_lookup: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "range": self.window.to_dict(),
            "focus_year": self.window.focus_year,
            "focus_month": self.window.focus_month,
            "jobs_by_date": {
                key: [str(job.id) for job in jobs] for key, jobs in self.jobs_by_date.items()
            },
            "job_date_lookup": dict(self.job_date_lookup),
        }


@dataclass(slots=True, frozen=True)
class CalendarCell:
    date: date
    iso_key: str
    in_month: bool
    is_today: bool
    jobs: tuple["Job", ...]
    highlight_job_ids: frozenset[str]

    @property
    def has_highlight(self) -> bool:
        return bool(self.highlight_job_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.iso_key,
            "in_month": self.in_month,
            "is_today": self.is_today,
            "jobs": [job.to_dict() for job in self.jobs],
            "highlight_job_ids": sorted(self.highlight_job_ids),
            "has_highlight": self.has_highlight,
        }
