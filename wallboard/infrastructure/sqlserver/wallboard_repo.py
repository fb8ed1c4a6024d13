from __future__ import annotations

import logging
import time as perf_time
from collections.abc import Iterable
from datetime import date, datetime, time
from typing import Any

from wallboard.config import settings
from wallboard.domain.models.job import JobLifecycle, JobType, parse_dept
from wallboard.domain.models.records import (
    AnnouncementRecord,
    AssignmentRecord,
    DepartmentTagRecord,
    DocCountRecord,
    DocRequirementRecord,
    JobRecord,
    LocationRecord,
    LogisticsEventRecord,
    ProfileRecord,
    RequirementRecord,
    TimesheetRecord,
    TourRecord,
)
from wallboard.infrastructure.sqlserver.connection import MAX_IN_PARAMS, SQLServerConnection, chunked, placeholders

log = logging.getLogger(__name__)


class WallboardRepo:
    """Read side of the scheduling database as seen by the wallboard.

    Every method returns typed records; rows that cannot be parsed are
    skipped with a debug log rather than failing the whole fetch.
    """

    def __init__(self, connection: SQLServerConnection) -> None:
        self._conn = connection
        schema = settings.sql_schema
        self._jobs = SQLServerConnection.table_name(schema, "jobs")
        self._tours = SQLServerConnection.table_name(schema, "tours")
        self._job_departments = SQLServerConnection.table_name(schema, "job_departments")
        self._job_assignments = SQLServerConnection.table_name(schema, "job_assignments")
        self._requirements = SQLServerConnection.table_name(schema, "job_required_roles_summary")
        self._locations = SQLServerConnection.table_name(schema, "locations")
        self._timesheets = SQLServerConnection.table_name(schema, "wallboard_timesheet_status")
        self._doc_counts = SQLServerConnection.table_name(schema, "wallboard_doc_counts")
        self._doc_requirements = SQLServerConnection.table_name(schema, "wallboard_doc_requirements")
        self._profiles = SQLServerConnection.table_name(schema, "wallboard_profiles")
        self._logistics = SQLServerConnection.table_name(schema, "logistics_events")
        self._logistics_departments = SQLServerConnection.table_name(schema, "logistics_event_departments")
        self._announcements = SQLServerConnection.table_name(schema, "announcements")

    async def fetch_jobs(
        self,
        start_time: datetime,
        end_time: datetime,
        *,
        statuses: Iterable[str],
        job_types: Iterable[str],
    ) -> list[JobRecord]:
        status_list = list(statuses)
        type_list = list(job_types)
        if not status_list or not type_list:
            return []
        started_at = perf_time.perf_counter()
        query = (
            "SELECT id, title, start_time, end_time, status, job_type, location_id, tour_id, color "
            f"FROM {self._jobs} "
            f"WHERE status IN ({placeholders(len(status_list))}) "
            f"AND job_type IN ({placeholders(len(type_list))}) "
            "AND start_time <= ? AND end_time >= ? "
            "ORDER BY start_time ASC"
        )
        rows = await self._conn.query_rows(query, [*status_list, *type_list, end_time, start_time])
        out: list[JobRecord] = []
        for row in rows:
            start = _coerce_datetime(row.get("start_time"))
            end = _coerce_datetime(row.get("end_time"))
            job_id = _text(row.get("id"))
            if job_id is None or start is None or end is None:
                log.debug("Job row skipped id=%s reason=missing-id-or-times", row.get("id"))
                continue
            out.append(
                JobRecord(
                    id=job_id,
                    title=_text(row.get("title")) or "",
                    start_time=start,
                    end_time=end,
                    status=_text(row.get("status")) or "",
                    job_type=_text(row.get("job_type")),
                    location_id=_text(row.get("location_id")),
                    tour_id=_text(row.get("tour_id")),
                    color=_text(row.get("color")),
                )
            )
        log.info(
            "Jobs fetched rows=%s kept=%s start_time=%s end_time=%s elapsed_ms=%s",
            len(rows),
            len(out),
            start_time.isoformat(),
            end_time.isoformat(),
            int((perf_time.perf_counter() - started_at) * 1000),
        )
        return out

    async def fetch_tours(self, tour_ids: Iterable[str]) -> list[TourRecord]:
        rows = await self._conn.query_rows_in(
            f"SELECT id, status FROM {self._tours} WHERE id IN ({{placeholders}})",
            _unique(tour_ids),
        )
        return [TourRecord(id=str(row["id"]), status=_text(row.get("status")) or "") for row in rows]

    async def fetch_job_departments(self, job_ids: Iterable[str]) -> list[DepartmentTagRecord]:
        rows = await self._conn.query_rows_in(
            f"SELECT job_id, department FROM {self._job_departments} WHERE job_id IN ({{placeholders}})",
            _unique(job_ids),
        )
        out: list[DepartmentTagRecord] = []
        for row in rows:
            dept = parse_dept(row.get("department"))
            if dept is None:
                continue
            out.append(DepartmentTagRecord(job_id=str(row["job_id"]), department=dept))
        return out

    async def fetch_assignments(self, job_ids: Iterable[str]) -> list[AssignmentRecord]:
        rows = await self._conn.query_rows_in(
            "SELECT job_id, technician_id, sound_role, lights_role, video_role "
            f"FROM {self._job_assignments} WHERE job_id IN ({{placeholders}})",
            _unique(job_ids),
        )
        return [
            AssignmentRecord(
                job_id=str(row["job_id"]),
                technician_id=str(row["technician_id"]),
                sound_role=_text(row.get("sound_role")),
                lights_role=_text(row.get("lights_role")),
                video_role=_text(row.get("video_role")),
            )
            for row in rows
            if row.get("technician_id") is not None
        ]

    async def fetch_requirements(self, job_ids: Iterable[str]) -> list[RequirementRecord]:
        rows = await self._conn.query_rows_in(
            "SELECT job_id, department, total_required "
            f"FROM {self._requirements} WHERE job_id IN ({{placeholders}})",
            _unique(job_ids),
        )
        out: list[RequirementRecord] = []
        for row in rows:
            dept = parse_dept(row.get("department"))
            if dept is None:
                continue
            out.append(
                RequirementRecord(
                    job_id=str(row["job_id"]),
                    department=dept,
                    total_required=_to_int(row.get("total_required")),
                )
            )
        return out

    async def fetch_locations(self, location_ids: Iterable[str]) -> list[LocationRecord]:
        rows = await self._conn.query_rows_in(
            f"SELECT id, name FROM {self._locations} WHERE id IN ({{placeholders}})",
            _unique(location_ids),
        )
        return [LocationRecord(id=str(row["id"]), name=_text(row.get("name")) or "") for row in rows]

    async def fetch_timesheet_statuses(self, job_ids: Iterable[str]) -> list[TimesheetRecord]:
        rows = await self._conn.query_rows_in(
            f"SELECT job_id, technician_id, status FROM {self._timesheets} WHERE job_id IN ({{placeholders}})",
            _unique(job_ids),
        )
        return [
            TimesheetRecord(
                job_id=str(row["job_id"]),
                technician_id=str(row["technician_id"]),
                status=_text(row.get("status")) or "",
            )
            for row in rows
        ]

    async def fetch_doc_counts(self, job_ids: Iterable[str]) -> list[DocCountRecord]:
        rows = await self._conn.query_rows_in(
            f"SELECT job_id, department, have FROM {self._doc_counts} WHERE job_id IN ({{placeholders}})",
            _unique(job_ids),
        )
        out: list[DocCountRecord] = []
        for row in rows:
            dept = parse_dept(row.get("department"))
            if dept is None:
                continue
            out.append(DocCountRecord(job_id=str(row["job_id"]), department=dept, have=_to_int(row.get("have"))))
        return out

    async def fetch_doc_requirements(self) -> list[DocRequirementRecord]:
        rows = await self._conn.query_rows(f"SELECT department, need FROM {self._doc_requirements}", [])
        out: list[DocRequirementRecord] = []
        for row in rows:
            dept = parse_dept(row.get("department"))
            if dept is None:
                continue
            out.append(DocRequirementRecord(department=dept, need=_to_int(row.get("need"))))
        return out

    async def fetch_profiles(self, technician_ids: Iterable[str]) -> list[ProfileRecord]:
        rows = await self._conn.query_rows_in(
            f"SELECT id, first_name, last_name FROM {self._profiles} WHERE id IN ({{placeholders}})",
            _unique(technician_ids),
        )
        return [
            ProfileRecord(
                id=str(row["id"]),
                first_name=_text(row.get("first_name")),
                last_name=_text(row.get("last_name")),
            )
            for row in rows
        ]

    async def fetch_job_titles(self, job_ids: Iterable[str]) -> dict[str, str]:
        rows = await self._conn.query_rows_in(
            f"SELECT id, title FROM {self._jobs} WHERE id IN ({{placeholders}})",
            _unique(job_ids),
        )
        return {str(row["id"]): _text(row.get("title")) or "" for row in rows}

    async def fetch_dryhire_jobs(self, start_time: datetime, end_time: datetime) -> list[JobRecord]:
        return await self.fetch_jobs(
            start_time,
            end_time,
            statuses=[JobLifecycle.CONFIRMED.value],
            job_types=[JobType.DRYHIRE.value],
        )

    async def fetch_logistics_events(self, start_date: date, end_date: date) -> list[LogisticsEventRecord]:
        started_at = perf_time.perf_counter()
        query = (
            "SELECT e.id, e.event_date, e.event_time, e.title, e.transport_type, e.license_plate, "
            "e.job_id, e.event_type, e.loading_bay, e.color, d.department "
            f"FROM {self._logistics} AS e "
            f"LEFT JOIN {self._logistics_departments} AS d ON d.event_id = e.id "
            "WHERE e.event_date >= ? AND e.event_date <= ? "
            "ORDER BY e.event_date ASC, e.event_time ASC, e.id ASC"
        )
        rows = await self._conn.query_rows(query, [start_date, end_date])

        departments: dict[str, list[str]] = {}
        heads: dict[str, dict[str, Any]] = {}
        for row in rows:
            event_id = _text(row.get("id"))
            if event_id is None:
                continue
            heads.setdefault(event_id, row)
            dept = _text(row.get("department"))
            bucket = departments.setdefault(event_id, [])
            if dept and dept not in bucket:
                bucket.append(dept)

        out: list[LogisticsEventRecord] = []
        for event_id, row in heads.items():
            event_date = _coerce_date(row.get("event_date"))
            if event_date is None:
                log.debug("Logistics row skipped id=%s reason=missing-date", event_id)
                continue
            out.append(
                LogisticsEventRecord(
                    id=event_id,
                    event_date=event_date,
                    event_time=_coerce_time(row.get("event_time")),
                    title=_text(row.get("title")),
                    transport_type=_text(row.get("transport_type")),
                    license_plate=_text(row.get("license_plate")),
                    job_id=_text(row.get("job_id")),
                    event_type=_text(row.get("event_type")),
                    loading_bay=_text(row.get("loading_bay")),
                    color=_text(row.get("color")),
                    departments=tuple(departments.get(event_id, ())),
                )
            )
        log.info(
            "Logistics events fetched rows=%s events=%s start_date=%s end_date=%s elapsed_ms=%s",
            len(rows),
            len(out),
            start_date.isoformat(),
            end_date.isoformat(),
            int((perf_time.perf_counter() - started_at) * 1000),
        )
        return out

    async def fetch_active_announcements(self, limit: int) -> list[AnnouncementRecord]:
        query = (
            f"SELECT TOP ({int(limit)}) id, message, level, active, created_at "
            f"FROM {self._announcements} "
            "WHERE active = 1 "
            "ORDER BY created_at DESC"
        )
        rows = await self._conn.query_rows(query, [])
        return [
            AnnouncementRecord(
                id=_text(row.get("id")),
                message=_text(row.get("message")),
                level=_text(row.get("level")),
                active=bool(row.get("active", True)),
                created_at=_coerce_datetime(row.get("created_at")),
            )
            for row in rows
        ]

    async def deactivate_announcements(self, announcement_ids: Iterable[str]) -> None:
        ids = _unique(announcement_ids)
        if not ids:
            return
        updated = 0
        for chunk in chunked(ids, MAX_IN_PARAMS):
            updated += await self._conn.execute(
                f"UPDATE {self._announcements} SET active = 0 WHERE id IN ({placeholders(len(chunk))})",
                chunk,
            )
        log.info("Announcements deactivated requested=%s updated=%s", len(ids), updated)


def _unique(values: Iterable[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return 0


def _coerce_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value
        return value.astimezone().replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)

    text = str(value).strip()
    if not text:
        return None
    normalized = text.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        pass
    else:
        if parsed.tzinfo is not None:
            return parsed.astimezone().replace(tzinfo=None)
        return parsed

    for fmt in (
        "%Y-%m-%d %H:%M:%S.%f",
        "%Y-%m-%d %H:%M:%S",
        "%Y/%m/%d %H:%M:%S",
        "%Y-%m-%d",
    ):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _coerce_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = _coerce_datetime(value)
    return parsed.date() if parsed else None


def _coerce_time(value: Any) -> time | None:
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, datetime):
        return value.time()
    text = str(value).strip()
    if not text:
        return None
    for fmt in ("%H:%M:%S.%f", "%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None

