from __future__ import annotations

from collections.abc import Sequence

from wallboard.domain.models.job import CoverageStatus, DeptCounts, Dept, JobLifecycle

FULL = 1.0
PARTIAL = 0.5
NONE = 0.0


def department_ratio(need: int, have: int) -> float:
    if need <= 0 or have >= need:
        return FULL
    if have > 0:
        return PARTIAL
    return NONE


def coverage_status(
    departments: Sequence[Dept],
    assigned: DeptCounts,
    needed: DeptCounts,
) -> CoverageStatus:
    """Staffing adequacy for a job whose crew data was fetched.

    When at least one department carries a requirement the minimum ratio
    decides for every department (zero-requirement departments count as
    covered). Otherwise the job is green when every department has someone,
    yellow when only some do, red when none do.
    """
    if any(needed.get(dept) > 0 for dept in departments):
        lowest = min(department_ratio(needed.get(dept), assigned.get(dept)) for dept in departments)
        if lowest >= FULL:
            return CoverageStatus.GREEN
        if lowest > NONE:
            return CoverageStatus.YELLOW
        return CoverageStatus.RED

    present = [assigned.get(dept) for dept in departments]
    if present and all(count > 0 for count in present):
        return CoverageStatus.GREEN
    if any(count > 0 for count in present):
        return CoverageStatus.YELLOW
    return CoverageStatus.RED


def lifecycle_status(lifecycle: str) -> CoverageStatus:
    if lifecycle == JobLifecycle.CONFIRMED.value:
        return CoverageStatus.GREEN
    return CoverageStatus.YELLOW
