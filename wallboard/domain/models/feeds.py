from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import StrEnum
from typing import Any

from wallboard.domain.models.calendar import CalendarFeed
from wallboard.domain.models.crew import CrewJob
from wallboard.domain.models.job import Dept, Job


class PendingSeverity(StrEnum):
    RED = "red"
    YELLOW = "yellow"


@dataclass(slots=True, frozen=True)
class PendingAction:
    severity: PendingSeverity
    text: str
    job_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"severity": self.severity.value, "text": self.text, "job_id": self.job_id}


@dataclass(slots=True, frozen=True)
class DeptDocProgress:
    dept: Dept
    have: int
    need: int

    def to_dict(self) -> dict[str, Any]:
        return {"dept": self.dept.value, "have": self.have, "need": self.need, "missing": []}


@dataclass(slots=True, frozen=True)
class DocProgressJob:
    id: str
    title: str
    color: str | None
    departments: tuple[DeptDocProgress, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "color": self.color,
            "departments": [item.to_dict() for item in self.departments],
        }


@dataclass(slots=True, frozen=True)
class LogisticsItem:
    id: str
    date: date
    time: time | None
    title: str
    transport_type: str | None = None
    plate: str | None = None
    job_title: str | None = None
    procedure: str | None = None
    loading_bay: str | None = None
    departments: tuple[str, ...] = ()
    color: str | None = None

    @property
    def sort_key(self) -> tuple[date, time]:
        return (self.date, self.time or time.min)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "time": self.time.isoformat(timespec="minutes") if self.time else None,
            "title": self.title,
            "transport_type": self.transport_type,
            "plate": self.plate,
            "job_title": self.job_title,
            "procedure": self.procedure,
            "loading_bay": self.loading_bay,
            "departments": list(self.departments),
            "color": self.color,
        }


@dataclass(slots=True, frozen=True)
class FusedFeeds:
    """One authoritative snapshot of every job-derived feed."""

    fetched_at: datetime
    overview: list[Job]
    crew: list[CrewJob]
    docs: list[DocProgressJob]
    pending: list[PendingAction]
    calendar: CalendarFeed
    calendar_jobs: list[Job] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fetched_at": self.fetched_at.isoformat(),
            "overview": {"jobs": [job.to_dict() for job in self.overview]},
            "crew": {"jobs": [job.to_dict() for job in self.crew]},
            "docs": {"jobs": [job.to_dict() for job in self.docs]},
            "pending": {"items": [item.to_dict() for item in self.pending]},
        }
