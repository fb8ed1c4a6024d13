from __future__ import annotations

from datetime import datetime, timedelta

from wallboard.domain.models.crew import CrewMember, TimesheetStatus
from wallboard.domain.models.feeds import PendingSeverity
from wallboard.domain.models.job import CoverageStatus, Dept, DeptCounts, Job, JobId
from wallboard.domain.rules.pending import derive_pending_actions, missing_timesheet_action

NOW = datetime(2025, 3, 12, 10, 0, 0)


def _job(job_id: str, start: datetime, *, hours: float = 4, assigned: DeptCounts, needed: DeptCounts) -> Job:
    return Job(
        id=JobId(job_id),
        title=f"Job {job_id}",
        start_time=start,
        end_time=start + timedelta(hours=hours),
        lifecycle="Confirmado",
        status=CoverageStatus.YELLOW,
        departments=(Dept.SOUND, Dept.LIGHTS),
        crew_assigned=assigned,
        crew_needed=needed,
    )


def _member(tech: str, status: TimesheetStatus) -> CrewMember:
    return CrewMember(technician_id=tech, name=tech, role="tech", dept=Dept.SOUND, timesheet_status=status)


def test_open_slots_within_24h_are_red() -> None:
    job = _job("a", NOW + timedelta(hours=6), assigned=DeptCounts(sound=1), needed=DeptCounts(sound=3, lights=1))
    actions = derive_pending_actions([job], {}, NOW)

    assert [(item.severity, item.text) for item in actions] == [
        (PendingSeverity.RED, "Job a – 2 open sound slot(s)"),
        (PendingSeverity.RED, "Job a – 1 open lights slot(s)"),
    ]
    assert {item.job_id for item in actions} == {"a"}


def test_open_slots_later_are_yellow() -> None:
    job = _job("b", NOW + timedelta(days=3), assigned=DeptCounts(), needed=DeptCounts(lights=2))
    actions = derive_pending_actions([job], {}, NOW)
    assert [(item.severity, item.text) for item in actions] == [
        (PendingSeverity.YELLOW, "Job b – 2 open lights slot(s)"),
    ]


def test_fully_staffed_job_has_no_actions() -> None:
    job = _job("c", NOW + timedelta(hours=2), assigned=DeptCounts(sound=2), needed=DeptCounts(sound=2))
    assert derive_pending_actions([job], {}, NOW) == []


def test_job_ended_30h_ago_with_unfiled_timesheets_is_flagged() -> None:
    start = NOW - timedelta(hours=34)
    job = _job("d", start, assigned=DeptCounts(sound=3), needed=DeptCounts(sound=3))
    crew = [
        _member("t1", TimesheetStatus.APPROVED),
        _member("t2", TimesheetStatus.DRAFT),
        _member("t3", TimesheetStatus.MISSING),
    ]
    actions = derive_pending_actions([job], {"d": crew}, NOW)
    assert [(item.severity, item.text) for item in actions] == [
        (PendingSeverity.RED, "Job d – 2 missing timesheets"),
    ]


def test_missing_timesheets_count_each_crew_row() -> None:
    job = _job("f", NOW - timedelta(hours=34), assigned=DeptCounts(sound=2), needed=DeptCounts(sound=2))
    crew = [_member("t1", TimesheetStatus.MISSING), _member("t1", TimesheetStatus.MISSING)]
    action = missing_timesheet_action(job, crew, NOW)
    assert action is not None
    assert action.text == "Job f – 2 missing timesheets"


def test_recently_ended_job_is_not_flagged_for_timesheets() -> None:
    job = _job("e", NOW - timedelta(hours=10), assigned=DeptCounts(sound=1), needed=DeptCounts(sound=1))
    crew = [_member("t1", TimesheetStatus.MISSING)]
    assert derive_pending_actions([job], {"e": crew}, NOW) == []
