from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from wallboard.domain.models.job import Dept


class TimesheetStatus(StrEnum):
    APPROVED = "approved"
    SUBMITTED = "submitted"
    DRAFT = "draft"
    REJECTED = "rejected"
    MISSING = "missing"

    @classmethod
    def coerce(cls, value: Any) -> "TimesheetStatus":
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            return cls.MISSING

    @property
    def is_filed(self) -> bool:
        return self in (TimesheetStatus.APPROVED, TimesheetStatus.SUBMITTED)


@dataclass(slots=True, frozen=True)
class CrewMember:
    technician_id: str
    name: str
    role: str
    dept: Dept | None
    timesheet_status: TimesheetStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "role": self.role,
            "dept": self.dept.value if self.dept else None,
            "timesheet_status": self.timesheet_status.value,
        }


@dataclass(slots=True, frozen=True)
class CrewJob:
    id: str
    title: str
    job_type: str | None
    start_time: datetime
    end_time: datetime
    color: str | None
    crew: tuple[CrewMember, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "job_type": self.job_type,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "color": self.color,
            "crew": [member.to_dict() for member in self.crew],
        }
