from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from wallboard.application.ports import JobSourcePort
from wallboard.application.use_cases.build_calendar import bucket_jobs
from wallboard.domain.errors import WallboardAccessError
from wallboard.domain.models.crew import CrewJob, CrewMember, TimesheetStatus
from wallboard.domain.models.feeds import DeptDocProgress, DocProgressJob, FusedFeeds
from wallboard.domain.models.job import (
    VISIBLE_DEPTS,
    WALLBOARD_JOB_TYPES,
    WALLBOARD_LIFECYCLES,
    Dept,
    DeptCounts,
    DocCount,
    Job,
    JobId,
    JobType,
)
from wallboard.domain.models.records import (
    AssignmentRecord,
    DepartmentTagRecord,
    DocCountRecord,
    DocRequirementRecord,
    JobRecord,
    LocationRecord,
    ProfileRecord,
    RequirementRecord,
    TimesheetRecord,
)
from wallboard.domain.rules.coverage import coverage_status, lifecycle_status
from wallboard.domain.rules.pending import derive_pending_actions
from wallboard.domain.rules.windows import calendar_window, detail_window

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _JoinedRows:
    """Child rows of one fetch cycle, indexed for the per-job joins."""

    detail_ids: set[str]
    depts_by_job: dict[str, list[Dept]]
    assignments_by_job: dict[str, list[AssignmentRecord]]
    need_by_job_dept: dict[tuple[str, Dept], int]
    location_by_id: dict[str, str]
    timesheet_by_job_tech: dict[tuple[str, str], str]
    have_by_job_dept: dict[tuple[str, Dept], int]
    doc_need_by_dept: dict[Dept, int]


class FuseFeedsUseCase:
    def __init__(self, source: JobSourcePort, *, detail_days: int = 7) -> None:
        self._source = source
        self._detail_days = detail_days

    async def execute(self, now: datetime) -> FusedFeeds:
        started_at = time.perf_counter()
        detail = detail_window(now, days=self._detail_days)
        calendar = calendar_window(now)

        records = await self._source.fetch_jobs(
            calendar.start,
            calendar.end,
            statuses=[status.value for status in WALLBOARD_LIFECYCLES],
            job_types=[job_type.value for job_type in WALLBOARD_JOB_TYPES],
        )
        records = [row for row in records if calendar.overlaps(row.start_time, row.end_time)]
        records = await self._drop_cancelled_tours(records)
        records.sort(key=lambda row: (row.start_time, row.id))

        detail_ids = {row.id for row in records if detail.overlaps(row.start_time, row.end_time)}
        joined = await self._fetch_children(records, detail_ids)

        jobs_by_id: dict[str, Job] = {}
        for row in records:
            if row.job_type == JobType.DRYHIRE.value:
                continue
            jobs_by_id[row.id] = self._map_job(row, joined)

        calendar_jobs = list(jobs_by_id.values())
        overview = [job for job in calendar_jobs if str(job.id) in detail_ids]

        crew = await self._build_crew(records, joined)
        crew_by_job = {job.id: job.crew for job in crew}
        docs = self._build_docs(records, joined)
        pending = derive_pending_actions(overview, crew_by_job, now)
        calendar_feed = bucket_jobs(calendar_jobs, calendar)

        log.info(
            "Feeds fused elapsed_ms=%s jobs=%s detail=%s overview=%s crew=%s pending=%s calendar_days=%s",
            int((time.perf_counter() - started_at) * 1000),
            len(records),
            len(detail_ids),
            len(overview),
            len(crew),
            len(pending),
            len(calendar_feed.jobs_by_date),
        )
        return FusedFeeds(
            fetched_at=now,
            overview=overview,
            crew=crew,
            docs=docs,
            pending=pending,
            calendar=calendar_feed,
            calendar_jobs=calendar_jobs,
        )

    async def _drop_cancelled_tours(self, records: list[JobRecord]) -> list[JobRecord]:
        tour_ids = sorted({row.tour_id for row in records if row.tour_id})
        if not tour_ids:
            return records
        try:
            tours = await self._source.fetch_tours(tour_ids)
        except WallboardAccessError:
            raise
        except Exception as exc:  # noqa: BLE001
            log.warning("Tour status lookup failed, keeping tour jobs tours=%s error=%r", len(tour_ids), exc)
            return records
        cancelled = {tour.id for tour in tours if tour.is_cancelled}
        if not cancelled:
            return records
        kept = [row for row in records if not row.tour_id or row.tour_id not in cancelled]
        log.debug(
            "Dropped jobs of cancelled tours tours=%s dropped=%s",
            len(cancelled),
            len(records) - len(kept),
        )
        return kept

    async def _fetch_children(self, records: list[JobRecord], detail_ids: set[str]) -> _JoinedRows:
        job_ids = [row.id for row in records]
        detail_list = [row.id for row in records if row.id in detail_ids]
        location_ids = sorted({row.location_id for row in records if row.location_id})

        dept_rows, locations, doc_requirements = await asyncio.gather(
            self._source.fetch_job_departments(job_ids) if job_ids else _empty(),
            self._source.fetch_locations(location_ids) if location_ids else _empty(),
            self._source.fetch_doc_requirements(),
        )
        if detail_list:
            assignments, requirements, timesheets, doc_counts = await asyncio.gather(
                self._source.fetch_assignments(detail_list),
                self._source.fetch_requirements(detail_list),
                self._source.fetch_timesheet_statuses(detail_list),
                self._source.fetch_doc_counts(detail_list),
            )
        else:
            assignments, requirements, timesheets, doc_counts = [], [], [], []

        return _JoinedRows(
            detail_ids=detail_ids,
            depts_by_job=_index_departments(dept_rows),
            assignments_by_job=_index_assignments(assignments),
            need_by_job_dept=_index_requirements(requirements),
            location_by_id=_index_locations(locations),
            timesheet_by_job_tech=_index_timesheets(timesheets),
            have_by_job_dept=_index_doc_counts(doc_counts),
            doc_need_by_dept=_index_doc_requirements(doc_requirements),
        )

    def _map_job(self, row: JobRecord, joined: _JoinedRows) -> Job:
        in_detail = row.id in joined.detail_ids
        all_depts = joined.depts_by_job.get(row.id, [])
        depts = tuple(dept for dept in all_depts if dept in VISIBLE_DEPTS)

        assignments = joined.assignments_by_job.get(row.id, []) if in_detail else []
        assigned = DeptCounts(
            sound=sum(1 for item in assignments if item.has_role(Dept.SOUND)),
            lights=sum(1 for item in assignments if item.has_role(Dept.LIGHTS)),
            video=sum(1 for item in assignments if item.has_role(Dept.VIDEO)),
        )
        needed_by_dept = {
            dept: (joined.need_by_job_dept.get((row.id, dept), 0) if in_detail else 0) for dept in depts
        }
        needed = DeptCounts(
            sound=needed_by_dept.get(Dept.SOUND, 0),
            lights=needed_by_dept.get(Dept.LIGHTS, 0),
            video=needed_by_dept.get(Dept.VIDEO, 0),
        )
        if in_detail:
            status = coverage_status(depts, assigned, needed)
        else:
            status = lifecycle_status(row.status)

        docs = {
            dept: DocCount(
                have=joined.have_by_job_dept.get((row.id, dept), 0) if in_detail else 0,
                need=joined.doc_need_by_dept.get(dept, 0),
            )
            for dept in depts
        }
        return Job(
            id=JobId(row.id),
            title=row.title,
            start_time=row.start_time,
            end_time=row.end_time,
            lifecycle=row.status,
            status=status,
            job_type=row.job_type,
            location_name=joined.location_by_id.get(row.location_id) if row.location_id else None,
            departments=depts,
            crew_assigned=assigned,
            crew_needed=needed,
            docs=docs,
            color=row.color,
        )

    async def _build_crew(self, records: list[JobRecord], joined: _JoinedRows) -> list[CrewJob]:
        detail_rows = [
            row for row in records if row.id in joined.detail_ids and row.job_type != JobType.DRYHIRE.value
        ]
        visible: dict[str, list[AssignmentRecord]] = {
            row.id: [item for item in joined.assignments_by_job.get(row.id, []) if not item.video_role]
            for row in detail_rows
        }
        technician_ids = sorted({item.technician_id for items in visible.values() for item in items})
        profiles = await self._source.fetch_profiles(technician_ids) if technician_ids else []
        name_by_id = _index_profiles(profiles)

        out: list[CrewJob] = []
        for row in detail_rows:
            members = tuple(
                CrewMember(
                    technician_id=item.technician_id,
                    name=name_by_id.get(item.technician_id, ""),
                    role=item.sound_role or item.lights_role or "assigned",
                    dept=Dept.SOUND if item.sound_role else Dept.LIGHTS if item.lights_role else None,
                    timesheet_status=TimesheetStatus.coerce(
                        joined.timesheet_by_job_tech.get((row.id, item.technician_id))
                    ),
                )
                for item in visible[row.id]
            )
            out.append(
                CrewJob(
                    id=row.id,
                    title=row.title,
                    job_type=row.job_type,
                    start_time=row.start_time,
                    end_time=row.end_time,
                    color=row.color,
                    crew=members,
                )
            )
        return out

    def _build_docs(self, records: list[JobRecord], joined: _JoinedRows) -> list[DocProgressJob]:
        out: list[DocProgressJob] = []
        for row in records:
            if row.id not in joined.detail_ids or row.job_type == JobType.DRYHIRE.value:
                continue
            out.append(
                DocProgressJob(
                    id=row.id,
                    title=row.title,
                    color=row.color,
                    departments=tuple(
                        DeptDocProgress(
                            dept=dept,
                            have=joined.have_by_job_dept.get((row.id, dept), 0),
                            need=joined.doc_need_by_dept.get(dept, 0),
                        )
                        for dept in joined.depts_by_job.get(row.id, [])
                    ),
                )
            )
        return out


async def _empty() -> list:
    return []


def _index_departments(rows: list[DepartmentTagRecord]) -> dict[str, list[Dept]]:
    out: dict[str, list[Dept]] = defaultdict(list)
    for row in rows:
        if row.department not in out[row.job_id]:
            out[row.job_id].append(row.department)
    return dict(out)


def _index_assignments(rows: list[AssignmentRecord]) -> dict[str, list[AssignmentRecord]]:
    out: dict[str, list[AssignmentRecord]] = defaultdict(list)
    for row in rows:
        out[row.job_id].append(row)
    return dict(out)


def _index_requirements(rows: list[RequirementRecord]) -> dict[tuple[str, Dept], int]:
    return {(row.job_id, row.department): int(row.total_required or 0) for row in rows}


def _index_locations(rows: list[LocationRecord]) -> dict[str, str]:
    return {row.id: row.name for row in rows}


def _index_timesheets(rows: list[TimesheetRecord]) -> dict[tuple[str, str], str]:
    return {(row.job_id, row.technician_id): row.status for row in rows}


def _index_doc_counts(rows: list[DocCountRecord]) -> dict[tuple[str, Dept], int]:
    return {(row.job_id, row.department): int(row.have or 0) for row in rows}


def _index_doc_requirements(rows: list[DocRequirementRecord]) -> dict[Dept, int]:
    return {row.department: int(row.need or 0) for row in rows}


def _index_profiles(rows: list[ProfileRecord]) -> dict[str, str]:
    return {row.id: row.full_name for row in rows}
