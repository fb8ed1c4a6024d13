from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from wallboard.domain.models.announcement import TickerLevel, TickerMessage
from wallboard.domain.models.records import AnnouncementRecord
from wallboard.domain.rules.directive import parse_announcement

log = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class IngestOutcome:
    ticker: tuple[TickerMessage, ...]
    stale_ids: tuple[str, ...]
    changed: bool


class HighlightCache:
    """Job ids flagged by announcements, each with an absolute expiry."""

    def __init__(self) -> None:
        self._expiry_by_job: dict[str, datetime] = {}

    def ids(self) -> frozenset[str]:
        return frozenset(self._expiry_by_job)

    def expiry_for(self, job_id: str) -> datetime | None:
        return self._expiry_by_job.get(job_id)

    def __len__(self) -> int:
        return len(self._expiry_by_job)

    def ingest(
        self,
        records: Iterable[AnnouncementRecord],
        now: datetime,
        ttl_seconds: int,
    ) -> IngestOutcome:
        ttl = timedelta(seconds=ttl_seconds)
        before = dict(self._expiry_by_job)
        self._drop_expired(now)

        ticker: list[TickerMessage] = []
        stale: list[str] = []
        for record in records:
            parsed = parse_announcement(record.message or "")
            if parsed.highlight_id is not None:
                expires_at = (record.created_at or now) + ttl
                if expires_at > now:
                    self._expiry_by_job[parsed.highlight_id] = expires_at
                elif record.id is not None:
                    stale.append(str(record.id))
            if parsed.text:
                ticker.append(TickerMessage(message=parsed.text, level=TickerLevel.coerce(record.level)))

        changed = before != self._expiry_by_job
        log.debug(
            "Highlight ingest ticker=%s highlights=%s stale=%s changed=%s",
            len(ticker),
            len(self._expiry_by_job),
            len(stale),
            changed,
        )
        return IngestOutcome(ticker=tuple(ticker), stale_ids=tuple(stale), changed=changed)

    def sweep(self, now: datetime) -> bool:
        removed = self._drop_expired(now)
        if removed:
            log.debug("Highlight sweep removed=%s remaining=%s", removed, len(self._expiry_by_job))
        return removed > 0

    def clear(self) -> None:
        self._expiry_by_job.clear()

    def _drop_expired(self, now: datetime) -> int:
        expired = [job_id for job_id, expires_at in self._expiry_by_job.items() if expires_at <= now]
        for job_id in expired:
            del self._expiry_by_job[job_id]
        return len(expired)
