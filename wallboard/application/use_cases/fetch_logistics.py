from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime

from wallboard.application.ports import LogisticsSourcePort
from wallboard.domain.errors import WallboardAccessError
from wallboard.domain.models.calendar import TimeWindow
from wallboard.domain.models.feeds import LogisticsItem
from wallboard.domain.models.records import JobRecord, LogisticsEventRecord
from wallboard.domain.rules.windows import detail_window

log = logging.getLogger(__name__)

DEFAULT_LOGISTICS_TITLE = "Logistics"
DRYHIRE_TITLE = "Dry Hire"
DRYHIRE_PICKUP = "recogida cliente"
DRYHIRE_RETURN = "devolución cliente"


class FetchLogisticsUseCase:
    """Logistics events of the detail window plus client pickups and returns of
    confirmed dry-hire jobs, merged in date and time order."""

    def __init__(self, source: LogisticsSourcePort, *, detail_days: int = 7) -> None:
        self._source = source
        self._detail_days = detail_days

    async def execute(self, now: datetime) -> list[LogisticsItem]:
        started_at = time.perf_counter()
        window = detail_window(now, days=self._detail_days)
        events, dryhire_jobs = await asyncio.gather(
            self._source.fetch_logistics_events(window.start.date(), window.end.date()),
            self._fetch_dryhire(now, window.end),
        )

        job_ids = sorted({event.job_id for event in events if event.job_id})
        titles = await self._source.fetch_job_titles(job_ids) if job_ids else {}

        items = [_event_item(event, titles) for event in events]
        ahead = TimeWindow(start=now, end=window.end)
        dryhire_items = [item for job in dryhire_jobs for item in dryhire_items_for(job, ahead)]
        items.extend(dryhire_items)
        items.sort(key=lambda item: item.sort_key)
        log.info(
            "Logistics fetched elapsed_ms=%s events=%s dryhire=%s",
            int((time.perf_counter() - started_at) * 1000),
            len(events),
            len(dryhire_items),
        )
        return items

    async def _fetch_dryhire(self, now: datetime, until: datetime) -> list[JobRecord]:
        try:
            return await self._source.fetch_dryhire_jobs(now, until)
        except WallboardAccessError:
            raise
        except Exception as exc:  # noqa: BLE001
            log.warning("Dry-hire lookup failed; logistics shown without pickups error=%r", exc)
            return []


def dryhire_items_for(job: JobRecord, ahead: TimeWindow) -> list[LogisticsItem]:
    """Pickup at the job start and return at its end, each only if still ahead."""
    title = job.title or DRYHIRE_TITLE
    out: list[LogisticsItem] = []
    for item_id, moment, transport, procedure in (
        (f"dryhire-{job.id}", job.start_time, DRYHIRE_PICKUP, "load"),
        (f"dryhire-return-{job.id}", job.end_time, DRYHIRE_RETURN, "unload"),
    ):
        if not ahead.contains(moment):
            continue
        out.append(
            LogisticsItem(
                id=item_id,
                date=moment.date(),
                time=moment.time().replace(second=0, microsecond=0),
                title=title,
                transport_type=transport,
                job_title=job.title or None,
                procedure=procedure,
            )
        )
    return out


def _event_item(event: LogisticsEventRecord, titles: dict[str, str]) -> LogisticsItem:
    job_title = titles.get(event.job_id) if event.job_id else None
    return LogisticsItem(
        id=event.id,
        date=event.event_date,
        time=event.event_time,
        title=event.title or job_title or DEFAULT_LOGISTICS_TITLE,
        transport_type=event.transport_type,
        plate=event.license_plate,
        job_title=job_title,
        procedure=event.event_type,
        loading_bay=event.loading_bay,
        departments=tuple(event.departments),
        color=event.color,
    )
