from __future__ import annotations

from datetime import datetime, timedelta

from wallboard.application.state.highlights import HighlightCache
from wallboard.domain.models.announcement import TickerLevel
from wallboard.domain.models.records import AnnouncementRecord

NOW = datetime(2025, 3, 12, 10, 0, 0)


def _announcement(
    announcement_id: str,
    message: str,
    *,
    level: str | None = "info",
    created_at: datetime | None = None,
) -> AnnouncementRecord:
    return AnnouncementRecord(id=announcement_id, message=message, level=level, created_at=created_at)


def test_highlight_expiry_counts_from_creation() -> None:
    cache = HighlightCache()
    created = NOW - timedelta(seconds=60)
    outcome = cache.ingest([_announcement("a1", "[HIGHLIGHT_JOB:aa-01] Soundcheck", created_at=created)], NOW, 300)

    assert cache.ids() == frozenset({"aa-01"})
    assert cache.expiry_for("aa-01") == created + timedelta(seconds=300)
    assert [item.message for item in outcome.ticker] == ["Soundcheck"]
    assert outcome.stale_ids == ()
    assert outcome.changed


def test_expired_directive_is_stale_but_keeps_ticker_text() -> None:
    cache = HighlightCache()
    created = NOW - timedelta(seconds=400)
    outcome = cache.ingest([_announcement("a1", "[HIGHLIGHT_JOB:aa-01] Old news", created_at=created)], NOW, 300)

    assert cache.ids() == frozenset()
    assert outcome.stale_ids == ("a1",)
    assert [item.message for item in outcome.ticker] == ["Old news"]


def test_directive_without_creation_time_uses_now() -> None:
    cache = HighlightCache()
    cache.ingest([_announcement("a1", "[HIGHLIGHT_JOB:bb-02]", created_at=None)], NOW, 120)
    assert cache.expiry_for("bb-02") == NOW + timedelta(seconds=120)


def test_ticker_batch_replaces_and_coerces_levels() -> None:
    cache = HighlightCache()
    cache.ingest([_announcement("a1", "first", level="warn")], NOW, 300)
    outcome = cache.ingest(
        [
            _announcement("a2", "second", level="CRITICAL"),
            _announcement("a3", "third", level="shouting"),
        ],
        NOW,
        300,
    )
    assert [(item.message, item.level) for item in outcome.ticker] == [
        ("second", TickerLevel.CRITICAL),
        ("third", TickerLevel.INFO),
    ]


def test_sweep_drops_only_expired_entries() -> None:
    cache = HighlightCache()
    cache.ingest(
        [
            _announcement("a1", "[HIGHLIGHT_JOB:5a]", created_at=NOW - timedelta(seconds=250)),
            _announcement("a2", "[HIGHLIGHT_JOB:1b]", created_at=NOW),
        ],
        NOW,
        300,
    )
    assert cache.sweep(NOW + timedelta(seconds=10)) is False
    assert cache.sweep(NOW + timedelta(seconds=60)) is True
    assert cache.ids() == frozenset({"1b"})
    assert len(cache) == 1


def test_unchanged_ingest_is_not_a_change() -> None:
    cache = HighlightCache()
    records = [_announcement("a1", "[HIGHLIGHT_JOB:aa-01] hi", created_at=NOW)]
    cache.ingest(records, NOW, 300)
    outcome = cache.ingest(records, NOW + timedelta(seconds=5), 300)
    assert outcome.changed is False
