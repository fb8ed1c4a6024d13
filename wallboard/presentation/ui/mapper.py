from __future__ import annotations

from datetime import date, datetime
from typing import Any, Sequence, TypeVar

from wallboard.domain.models.panel import PanelKey

T = TypeVar("T")

PANEL_TITLES: dict[str, str] = {
    PanelKey.OVERVIEW.value: "Jobs Overview",
    PanelKey.CREW.value: "Crew Assignments",
    PanelKey.LOGISTICS.value: "Logistics",
    PanelKey.PENDING.value: "Pending Actions",
    PanelKey.CALENDAR.value: "Calendar",
}

STATUS_COLORS: dict[str, str] = {
    "green": "#dcfce7",
    "yellow": "#fef9c3",
    "red": "#fee2e2",
}

TIMESHEET_LABELS: dict[str, str] = {
    "approved": "Approved",
    "submitted": "Submitted",
    "draft": "Draft",
    "rejected": "Rejected",
    "missing": "Missing",
}

TICKER_SEPARATOR = "   •   "


def parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def panel_title(panel: str) -> str:
    return PANEL_TITLES.get(panel, panel.title())


def page_slice(items: Sequence[T], page: int, page_size: int) -> list[T]:
    if page_size <= 0:
        return list(items)
    start = max(page, 0) * page_size
    return list(items[start : start + page_size])


def format_time_range(start: Any, end: Any) -> str:
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None:
        return "-"
    text = start_dt.strftime("%a %d/%m %H:%M")
    if end_dt is None:
        return text
    if end_dt.date() == start_dt.date():
        return f"{text} - {end_dt:%H:%M}"
    return f"{text} - {end_dt:%a %d/%m %H:%M}"


def status_color(status: Any) -> str | None:
    return STATUS_COLORS.get(str(status or "").strip().lower())


def overview_row(job: dict[str, Any]) -> dict[str, Any]:
    assigned = job.get("crew_assigned") or {}
    needed = job.get("crew_needed") or {}
    docs = job.get("docs") or {}
    crew_parts: list[str] = []
    doc_parts: list[str] = []
    for dept in job.get("departments") or []:
        crew_parts.append(f"{dept} {_to_int(assigned.get(dept))}/{_to_int(needed.get(dept))}")
        count = docs.get(dept) or {}
        doc_parts.append(f"{dept} {_to_int(count.get('have'))}/{_to_int(count.get('need'))}")
    location = (job.get("location") or {}).get("name")
    return {
        "id": str(job.get("id", "")),
        "cells": (
            str(job.get("title") or ""),
            format_time_range(job.get("start_time"), job.get("end_time")),
            str(location or "-"),
            ", ".join(crew_parts) or "-",
            ", ".join(doc_parts) or "-",
        ),
        "background": status_color(job.get("status")),
    }


def crew_rows(job: dict[str, Any]) -> list[dict[str, Any]]:
    title = str(job.get("title") or "")
    when = format_time_range(job.get("start_time"), job.get("end_time"))
    job_id = str(job.get("id", ""))
    rows: list[dict[str, Any]] = []
    for member in job.get("crew") or []:
        status = str(member.get("timesheet_status") or "missing")
        rows.append(
            {
                "id": job_id,
                "cells": (
                    title,
                    when,
                    str(member.get("name") or ""),
                    str(member.get("dept") or "-"),
                    str(member.get("role") or ""),
                    TIMESHEET_LABELS.get(status, status),
                ),
                "background": STATUS_COLORS["red"] if status in ("missing", "rejected") else None,
            }
        )
    if not rows:
        rows.append({"id": job_id, "cells": (title, when, "-", "-", "-", "-"), "background": None})
    return rows


def logistics_row(item: dict[str, Any]) -> dict[str, Any]:
    when = str(item.get("date") or "")
    if item.get("time"):
        when = f"{when} {item['time']}"
    transport = " ".join(
        part for part in (item.get("transport_type"), item.get("plate")) if part
    )
    return {
        "id": str(item.get("id", "")),
        "cells": (
            when,
            str(item.get("title") or ""),
            transport or "-",
            str(item.get("procedure") or "-"),
            str(item.get("loading_bay") or "-"),
            ", ".join(item.get("departments") or []) or "-",
        ),
        "background": None,
    }


def pending_row(item: dict[str, Any]) -> dict[str, Any]:
    severity = str(item.get("severity") or "yellow")
    return {
        "id": str(item.get("job_id") or ""),
        "cells": (severity.upper(), str(item.get("text") or "")),
        "background": status_color(severity),
    }


def calendar_weeks(cells: Sequence[dict[str, Any]]) -> list[list[dict[str, Any]]]:
    return [list(cells[start : start + 7]) for start in range(0, len(cells), 7)]


CALENDAR_CELL_MAX_JOBS = 3


def calendar_cell_text(cell: dict[str, Any], *, offset: int = 0, max_jobs: int = CALENDAR_CELL_MAX_JOBS) -> str:
    """Day number and one slice of the day's jobs; busy days show which slice."""
    day = parse_date(cell.get("date"))
    lines = [str(day.day) if day else "?"]
    jobs = cell.get("jobs") or []
    highlighted = set(cell.get("highlight_job_ids") or [])
    start = offset if 0 <= offset < len(jobs) else 0
    shown = jobs[start : start + max_jobs]
    for job in shown:
        marker = "★ " if str(job.get("id")) in highlighted else ""
        lines.append(f"{marker}{job.get('title') or ''}")
    if len(jobs) > max_jobs:
        lines.append(f"{start + 1}-{start + len(shown)} / {len(jobs)}")
    return "\n".join(lines)


def next_cell_offset(offset: int, job_count: int, max_jobs: int = CALENDAR_CELL_MAX_JOBS) -> int:
    if job_count <= max_jobs:
        return 0
    following = offset + max_jobs
    return 0 if following >= job_count else following


def ticker_text(ticker: Sequence[dict[str, Any]]) -> str:
    return TICKER_SEPARATOR.join(str(item.get("message") or "") for item in ticker if item.get("message"))


def ticker_level(ticker: Sequence[dict[str, Any]]) -> str:
    levels = {str(item.get("level") or "info") for item in ticker}
    for level in ("critical", "warn"):
        if level in levels:
            return level
    return "info"


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
