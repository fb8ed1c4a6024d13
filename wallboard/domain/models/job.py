from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, NewType

JobId = NewType("JobId", str)


class Dept(StrEnum):
    SOUND = "sound"
    LIGHTS = "lights"
    VIDEO = "video"


# Video crew is counted but never shown on crew/assignment panels.
VISIBLE_DEPTS: tuple[Dept, ...] = (Dept.SOUND, Dept.LIGHTS)


class CoverageStatus(StrEnum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class JobLifecycle(StrEnum):
    CONFIRMED = "Confirmado"
    TENTATIVE = "Tentativa"
    COMPLETED = "Completado"
    CANCELLED = "Cancelado"


class JobType(StrEnum):
    SINGLE = "single"
    FESTIVAL = "festival"
    TOURDATE = "tourdate"
    DRYHIRE = "dryhire"
    EVENTO = "evento"


WALLBOARD_LIFECYCLES: tuple[JobLifecycle, ...] = (
    JobLifecycle.CONFIRMED,
    JobLifecycle.TENTATIVE,
    JobLifecycle.COMPLETED,
)
WALLBOARD_JOB_TYPES: tuple[JobType, ...] = tuple(JobType)


def parse_dept(value: Any) -> Dept | None:
    text = str(value or "").strip().lower()
    try:
        return Dept(text)
    except ValueError:
        return None


@dataclass(slots=True, frozen=True)
class DeptCounts:
    sound: int = 0
    lights: int = 0
    video: int = 0

    @property
    def total(self) -> int:
        return self.sound + self.lights + self.video

    def get(self, dept: Dept) -> int:
        return int(getattr(self, dept.value))

    def to_dict(self) -> dict[str, int]:
        return {
            "sound": self.sound,
            "lights": self.lights,
            "video": self.video,
            "total": self.total,
        }


@dataclass(slots=True, frozen=True)
class DocCount:
    have: int = 0
    need: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"have": self.have, "need": self.need}


@dataclass(slots=True, frozen=True)
class Job:
    id: JobId
    title: str
    start_time: datetime
    end_time: datetime
    lifecycle: str
    status: CoverageStatus
    job_type: str | None = None
    location_name: str | None = None
    departments: tuple[Dept, ...] = ()
    crew_assigned: DeptCounts = field(default_factory=DeptCounts)
    crew_needed: DeptCounts = field(default_factory=DeptCounts)
    docs: dict[Dept, DocCount] = field(default_factory=dict)
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "lifecycle": self.lifecycle,
            "status": self.status.value,
            "job_type": self.job_type,
            "location": {"name": self.location_name},
            "departments": [dept.value for dept in self.departments],
            "crew_assigned": self.crew_assigned.to_dict(),
            "crew_needed": self.crew_needed.to_dict(),
            "docs": {dept.value: count.to_dict() for dept, count in self.docs.items()},
            "color": self.color,
        }
