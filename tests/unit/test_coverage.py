from __future__ import annotations

import pytest

from wallboard.domain.models.job import CoverageStatus, Dept, DeptCounts
from wallboard.domain.rules.coverage import coverage_status, department_ratio, lifecycle_status

SOUND_LIGHTS = (Dept.SOUND, Dept.LIGHTS)


@pytest.mark.parametrize(
    ("need", "have", "expected"),
    [(0, 0, 1.0), (2, 2, 1.0), (2, 3, 1.0), (2, 1, 0.5), (2, 0, 0.0)],
)
def test_department_ratio(need: int, have: int, expected: float) -> None:
    assert department_ratio(need, have) == expected


def test_fully_staffed_is_green() -> None:
    status = coverage_status(SOUND_LIGHTS, DeptCounts(sound=2, lights=1), DeptCounts(sound=2, lights=1))
    assert status is CoverageStatus.GREEN


def test_partially_staffed_is_yellow() -> None:
    status = coverage_status(SOUND_LIGHTS, DeptCounts(sound=1, lights=1), DeptCounts(sound=2, lights=1))
    assert status is CoverageStatus.YELLOW


def test_unstaffed_department_with_requirement_is_red() -> None:
    status = coverage_status(SOUND_LIGHTS, DeptCounts(sound=2, lights=0), DeptCounts(sound=2, lights=1))
    assert status is CoverageStatus.RED


def test_department_without_requirement_counts_as_covered() -> None:
    status = coverage_status(SOUND_LIGHTS, DeptCounts(sound=2, lights=0), DeptCounts(sound=2, lights=0))
    assert status is CoverageStatus.GREEN


def test_without_requirements_presence_decides() -> None:
    none_needed = DeptCounts()
    assert coverage_status(SOUND_LIGHTS, DeptCounts(sound=1, lights=1), none_needed) is CoverageStatus.GREEN
    assert coverage_status(SOUND_LIGHTS, DeptCounts(sound=1), none_needed) is CoverageStatus.YELLOW
    assert coverage_status(SOUND_LIGHTS, DeptCounts(), none_needed) is CoverageStatus.RED
    assert coverage_status((), DeptCounts(), none_needed) is CoverageStatus.RED


def test_lifecycle_status_for_jobs_outside_detail_window() -> None:
    assert lifecycle_status("Confirmado") is CoverageStatus.GREEN
    assert lifecycle_status("Tentativa") is CoverageStatus.YELLOW
    assert lifecycle_status("Completado") is CoverageStatus.YELLOW
