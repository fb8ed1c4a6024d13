from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Callable, Protocol

from wallboard.domain.events import ResourceChanged
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
from wallboard.domain.models.resources import WatchedResource


class ClockPort(Protocol):
    def now(self) -> datetime: ...


class EventBusPort(Protocol):
    async def publish(self, event: Any) -> None: ...

    async def subscribe(self, maxsize: int | None = None) -> asyncio.Queue[Any]: ...

    async def unsubscribe(self, queue: asyncio.Queue[Any]) -> None: ...


ChangeHandler = Callable[[ResourceChanged], None]


class ChangeBusPort(Protocol):
    def subscribe(self, resource: WatchedResource, handler: ChangeHandler) -> Callable[[], None]: ...

    def dispatch(self, event: ResourceChanged) -> None: ...


class JobSourcePort(Protocol):
    async def fetch_jobs(
        self,
        start_time: datetime,
        end_time: datetime,
        *,
        statuses: Iterable[str],
        job_types: Iterable[str],
    ) -> list[JobRecord]: ...

    async def fetch_tours(self, tour_ids: Iterable[str]) -> list[TourRecord]: ...

    async def fetch_job_departments(self, job_ids: Iterable[str]) -> list[DepartmentTagRecord]: ...

    async def fetch_assignments(self, job_ids: Iterable[str]) -> list[AssignmentRecord]: ...

    async def fetch_requirements(self, job_ids: Iterable[str]) -> list[RequirementRecord]: ...

    async def fetch_locations(self, location_ids: Iterable[str]) -> list[LocationRecord]: ...

    async def fetch_timesheet_statuses(self, job_ids: Iterable[str]) -> list[TimesheetRecord]: ...

    async def fetch_doc_counts(self, job_ids: Iterable[str]) -> list[DocCountRecord]: ...

    async def fetch_doc_requirements(self) -> list[DocRequirementRecord]: ...

    async def fetch_profiles(self, technician_ids: Iterable[str]) -> list[ProfileRecord]: ...

    async def fetch_job_titles(self, job_ids: Iterable[str]) -> dict[str, str]: ...


class LogisticsSourcePort(Protocol):
    async def fetch_logistics_events(self, start_date: date, end_date: date) -> list[LogisticsEventRecord]: ...

    async def fetch_dryhire_jobs(self, start_time: datetime, end_time: datetime) -> list[JobRecord]: ...

    async def fetch_job_titles(self, job_ids: Iterable[str]) -> dict[str, str]: ...


class AnnouncementSourcePort(Protocol):
    async def fetch_active_announcements(self, limit: int) -> list[AnnouncementRecord]: ...

    async def deactivate_announcements(self, announcement_ids: Iterable[str]) -> None: ...


class PresetSourcePort(Protocol):
    async def load_preset(self, slug: str) -> PresetRecord | None: ...
