from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

import pytest

from wallboard.domain.models.records import (
    AnnouncementRecord,
    AssignmentRecord,
    DepartmentTagRecord,
    DocCountRecord,
    DocRequirementRecord,
    JobRecord,
    LocationRecord,
    LogisticsEventRecord,
    PresetRecord,
    ProfileRecord,
    RequirementRecord,
    TimesheetRecord,
    TourRecord,
)

NOW = datetime(2025, 3, 12, 10, 0, 0)


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeSource:
    """In-memory stand-in for every data port the wallboard reads."""

    def __init__(self) -> None:
        self.jobs: list[JobRecord] = []
        self.tours: list[TourRecord] = []
        self.departments: list[DepartmentTagRecord] = []
        self.assignments: list[AssignmentRecord] = []
        self.requirements: list[RequirementRecord] = []
        self.locations: list[LocationRecord] = []
        self.timesheets: list[TimesheetRecord] = []
        self.doc_counts: list[DocCountRecord] = []
        self.doc_requirements: list[DocRequirementRecord] = []
        self.profiles: list[ProfileRecord] = []
        self.logistics: list[LogisticsEventRecord] = []
        self.announcements: list[AnnouncementRecord] = []
        self.presets: dict[str, PresetRecord] = {}
        self.deactivated: list[str] = []
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}

    def _call(self, name: str) -> None:
        self.calls.append(name)
        exc = self.failures.get(name)
        if exc is not None:
            raise exc

    async def fetch_jobs(
        self,
        start_time: datetime,
        end_time: datetime,
        *,
        statuses: Iterable[str],
        job_types: Iterable[str],
    ) -> list[JobRecord]:
        self._call("fetch_jobs")
        wanted_status = set(statuses)
        wanted_types = set(job_types)
        return [
            row
            for row in self.jobs
            if row.status in wanted_status
            and row.job_type in wanted_types
            and row.start_time <= end_time
            and row.end_time >= start_time
        ]

    async def fetch_tours(self, tour_ids: Iterable[str]) -> list[TourRecord]:
        self._call("fetch_tours")
        wanted = set(tour_ids)
        return [row for row in self.tours if row.id in wanted]

    async def fetch_job_departments(self, job_ids: Iterable[str]) -> list[DepartmentTagRecord]:
        self._call("fetch_job_departments")
        wanted = set(job_ids)
        return [row for row in self.departments if row.job_id in wanted]

    async def fetch_assignments(self, job_ids: Iterable[str]) -> list[AssignmentRecord]:
        self._call("fetch_assignments")
        wanted = set(job_ids)
        return [row for row in self.assignments if row.job_id in wanted]

    async def fetch_requirements(self, job_ids: Iterable[str]) -> list[RequirementRecord]:
        self._call("fetch_requirements")
        wanted = set(job_ids)
        return [row for row in self.requirements if row.job_id in wanted]

    async def fetch_locations(self, location_ids: Iterable[str]) -> list[LocationRecord]:
        self._call("fetch_locations")
        wanted = set(location_ids)
        return [row for row in self.locations if row.id in wanted]

    async def fetch_timesheet_statuses(self, job_ids: Iterable[str]) -> list[TimesheetRecord]:
        self._call("fetch_timesheet_statuses")
        wanted = set(job_ids)
        return [row for row in self.timesheets if row.job_id in wanted]

    async def fetch_doc_counts(self, job_ids: Iterable[str]) -> list[DocCountRecord]:
        self._call("fetch_doc_counts")
        wanted = set(job_ids)
        return [row for row in self.doc_counts if row.job_id in wanted]

    async def fetch_doc_requirements(self) -> list[DocRequirementRecord]:
        self._call("fetch_doc_requirements")
        return list(self.doc_requirements)

    async def fetch_profiles(self, technician_ids: Iterable[str]) -> list[ProfileRecord]:
        self._call("fetch_profiles")
        wanted = set(technician_ids)
        return [row for row in self.profiles if row.id in wanted]

    async def fetch_job_titles(self, job_ids: Iterable[str]) -> dict[str, str]:
        self._call("fetch_job_titles")
        wanted = set(job_ids)
        return {row.id: row.title for row in self.jobs if row.id in wanted}

    async def fetch_logistics_events(self, start_date: date, end_date: date) -> list[LogisticsEventRecord]:
        self._call("fetch_logistics_events")
        return [row for row in self.logistics if start_date <= row.event_date <= end_date]

    async def fetch_dryhire_jobs(self, start_time: datetime, end_time: datetime) -> list[JobRecord]:
        self._call("fetch_dryhire_jobs")
        return [
            row
            for row in self.jobs
            if row.job_type == "dryhire"
            and row.status == "Confirmado"
            and row.start_time <= end_time
            and row.end_time >= start_time
        ]

    async def fetch_active_announcements(self, limit: int) -> list[AnnouncementRecord]:
        self._call("fetch_active_announcements")
        return [row for row in self.announcements if row.active][:limit]

    async def deactivate_announcements(self, announcement_ids: Iterable[str]) -> None:
        self._call("deactivate_announcements")
        self.deactivated.extend(announcement_ids)

    async def load_preset(self, slug: str) -> PresetRecord | None:
        self._call("load_preset")
        return self.presets.get(slug)


def job_record(
    job_id: str,
    start: datetime,
    hours: float = 4,
    *,
    title: str | None = None,
    status: str = "Confirmado",
    job_type: str = "single",
    tour_id: str | None = None,
    location_id: str | None = None,
) -> JobRecord:
    return JobRecord(
        id=job_id,
        title=title or f"Job {job_id}",
        start_time=start,
        end_time=start + timedelta(hours=hours),
        status=status,
        job_type=job_type,
        location_id=location_id,
        tour_id=tour_id,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def make_job():
    return job_record
