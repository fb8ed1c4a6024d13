from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta

from wallboard.domain.models.crew import CrewMember
from wallboard.domain.models.feeds import PendingAction, PendingSeverity
from wallboard.domain.models.job import VISIBLE_DEPTS, Job

URGENT_HORIZON = timedelta(hours=24)
TIMESHEET_GRACE = timedelta(hours=24)


def open_slot_actions(job: Job, now: datetime) -> list[PendingAction]:
    out: list[PendingAction] = []
    starts_soon = job.start_time - now <= URGENT_HORIZON
    for dept in job.departments:
        if dept not in VISIBLE_DEPTS:
            continue
        need = job.crew_needed.get(dept)
        have = job.crew_assigned.get(dept)
        if need > 0 and have < need:
            out.append(
                PendingAction(
                    severity=PendingSeverity.RED if starts_soon else PendingSeverity.YELLOW,
                    text=f"{job.title} – {need - have} open {dept.value} slot(s)",
                    job_id=str(job.id),
                )
            )
    return out


def missing_timesheet_action(
    job: Job,
    crew: Sequence[CrewMember],
    now: datetime,
) -> PendingAction | None:
    if job.end_time >= now - TIMESHEET_GRACE:
        return None
    # One per crew row, so a technician holding two roles counts twice.
    missing = sum(1 for member in crew if not member.timesheet_status.is_filed)
    if not missing:
        return None
    return PendingAction(
        severity=PendingSeverity.RED,
        text=f"{job.title} – {missing} missing timesheets",
        job_id=str(job.id),
    )


def derive_pending_actions(
    jobs: Iterable[Job],
    crew_by_job: Mapping[str, Sequence[CrewMember]],
    now: datetime,
) -> list[PendingAction]:
    items: list[PendingAction] = []
    for job in jobs:
        items.extend(open_slot_actions(job, now))
        overdue = missing_timesheet_action(job, crew_by_job.get(str(job.id), ()), now)
        if overdue is not None:
            items.append(overdue)
    return items
