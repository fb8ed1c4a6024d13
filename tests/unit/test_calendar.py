from __future__ import annotations

from datetime import date, datetime

from wallboard.application.use_cases.build_calendar import bucket_jobs, build_calendar_cells, month_label
from wallboard.domain.models.job import CoverageStatus, Job, JobId
from wallboard.domain.rules.windows import calendar_window, detail_window

NOW = datetime(2025, 3, 12, 10, 0, 0)


def _job(job_id: str, start: datetime, end: datetime) -> Job:
    return Job(
        id=JobId(job_id),
        title=f"Job {job_id}",
        start_time=start,
        end_time=end,
        lifecycle="Confirmado",
        status=CoverageStatus.GREEN,
    )


def test_calendar_window_starts_on_monday_before_first_of_month() -> None:
    window = calendar_window(NOW)
    assert window.start == datetime(2025, 2, 24)
    assert window.start.weekday() == 0
    assert window.end.date() == date(2025, 4, 6)
    assert (window.focus_year, window.focus_month) == (2025, 3)


def test_calendar_window_when_month_starts_on_monday() -> None:
    window = calendar_window(datetime(2025, 9, 20, 8, 0))
    assert window.start == datetime(2025, 9, 1)


def test_detail_window_covers_seven_days_from_midnight() -> None:
    window = detail_window(NOW)
    assert window.start == datetime(2025, 3, 12)
    assert window.end.date() == date(2025, 3, 18)
    assert window.contains(datetime(2025, 3, 18, 23, 59))
    assert not window.contains(datetime(2025, 3, 19))


def test_grid_has_42_cells_with_month_and_today_flags() -> None:
    window = calendar_window(NOW)
    cells = build_calendar_cells(bucket_jobs([], window), NOW.date())

    assert len(cells) == 42
    assert cells[0].date == date(2025, 2, 24)
    assert cells[-1].date == date(2025, 4, 6)
    assert [cell.in_month for cell in cells].count(True) == 31
    assert [cell.iso_key for cell in cells if cell.is_today] == ["2025-03-12"]


def test_multi_day_job_is_listed_on_every_day_it_touches() -> None:
    window = calendar_window(NOW)
    job = _job("fest", datetime(2025, 3, 14, 18, 0), datetime(2025, 3, 16, 2, 0))
    cells = {cell.iso_key: cell for cell in build_calendar_cells(bucket_jobs([job], window), NOW.date())}

    for key in ("2025-03-14", "2025-03-15", "2025-03-16"):
        assert [str(item.id) for item in cells[key].jobs] == ["fest"]
    assert cells["2025-03-13"].jobs == ()
    assert cells["2025-03-17"].jobs == ()


def test_job_crossing_window_edge_is_clipped() -> None:
    window = calendar_window(NOW)
    job = _job("early", datetime(2025, 2, 20, 9, 0), datetime(2025, 2, 25, 12, 0))
    feed = bucket_jobs([job], window)
    assert sorted(feed.jobs_by_date) == ["2025-02-24", "2025-02-25"]
    assert feed.job_date_lookup["early"] == "2025-02-20"


def test_highlight_marks_only_the_primary_date() -> None:
    window = calendar_window(NOW)
    job = _job("fest", datetime(2025, 3, 14, 18, 0), datetime(2025, 3, 16, 2, 0))
    cells = {
        cell.iso_key: cell
        for cell in build_calendar_cells(bucket_jobs([job], window), NOW.date(), {"fest", "unknown"})
    }

    assert cells["2025-03-14"].has_highlight
    assert cells["2025-03-14"].highlight_job_ids == frozenset({"fest"})
    assert not cells["2025-03-15"].has_highlight
    assert not cells["2025-03-16"].has_highlight


def test_month_label_is_spanish() -> None:
    assert month_label(calendar_window(NOW)) == "marzo 2025"
    assert month_label(calendar_window(NOW.replace(month=12))) == "diciembre 2025"
