from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any

from wallboard.domain.models.job import Dept


@dataclass(slots=True, frozen=True)
class JobRecord:
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    status: str
    job_type: str | None = None
    location_id: str | None = None
    tour_id: str | None = None
    color: str | None = None


@dataclass(slots=True, frozen=True)
class TourRecord:
    id: str
    status: str

    @property
    def is_cancelled(self) -> bool:
        return self.status.strip().lower() == "cancelled"


@dataclass(slots=True, frozen=True)
class DepartmentTagRecord:
    job_id: str
    department: Dept


@dataclass(slots=True, frozen=True)
class AssignmentRecord:
    job_id: str
    technician_id: str
    sound_role: str | None = None
    lights_role: str | None = None
    video_role: str | None = None

    def has_role(self, dept: Dept) -> bool:
        return bool(getattr(self, f"{dept.value}_role"))


@dataclass(slots=True, frozen=True)
class RequirementRecord:
    job_id: str
    department: Dept
    total_required: int


@dataclass(slots=True, frozen=True)
class LocationRecord:
    id: str
    name: str


@dataclass(slots=True, frozen=True)
class TimesheetRecord:
    job_id: str
    technician_id: str
    status: str


@dataclass(slots=True, frozen=True)
class DocCountRecord:
    job_id: str
    department: Dept
    have: int


@dataclass(slots=True, frozen=True)
class DocRequirementRecord:
    department: Dept
    need: int


@dataclass(slots=True, frozen=True)
class ProfileRecord:
    id: str
    first_name: str | None = None
    last_name: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@dataclass(slots=True, frozen=True)
class LogisticsEventRecord:
    id: str
    event_date: date
    event_time: time | None = None
    title: str | None = None
    transport_type: str | None = None
    license_plate: str | None = None
    job_id: str | None = None
    event_type: str | None = None
    loading_bay: str | None = None
    color: str | None = None
    departments: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class AnnouncementRecord:
    id: str | None
    message: str | None
    level: str | None = None
    active: bool = True
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class PresetRecord:
    slug: str
    panel_order: list[str] | None = None
    panel_durations: dict[str, Any] = field(default_factory=dict)
    rotation_fallback_seconds: Any = None
    highlight_ttl_seconds: Any = None
    ticker_poll_interval_seconds: Any = None
