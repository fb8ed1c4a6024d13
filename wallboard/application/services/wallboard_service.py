from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime

from wallboard.application.ports import (
    AnnouncementSourcePort,
    ChangeBusPort,
    ClockPort,
    EventBusPort,
    JobSourcePort,
    LogisticsSourcePort,
    PresetSourcePort,
)
from wallboard.application.services.refresh_coordinator import RefreshCoordinator
from wallboard.application.state.highlights import HighlightCache
from wallboard.application.state.preset import (
    KIOSK_PRESET_SLUG,
    WallboardPreset,
    resolve_preset,
)
from wallboard.application.state.rotation import DEFAULT_PAGE_SIZES, PanelRotation
from wallboard.application.use_cases.build_calendar import build_calendar_cells
from wallboard.application.use_cases.fetch_logistics import FetchLogisticsUseCase
from wallboard.application.use_cases.fuse_feeds import FuseFeedsUseCase
from wallboard.domain.errors import WallboardAccessError
from wallboard.domain.events import AccessDenied, RenderState
from wallboard.domain.models.announcement import TickerMessage
from wallboard.domain.models.calendar import CalendarCell
from wallboard.domain.models.feeds import FusedFeeds, LogisticsItem
from wallboard.domain.models.panel import PanelKey
from wallboard.domain.models.records import PresetRecord
from wallboard.domain.models.resources import WatchedResource

log = logging.getLogger(__name__)

FEED_RESOURCES: tuple[WatchedResource, ...] = tuple(
    resource for resource in WatchedResource if resource is not WatchedResource.ANNOUNCEMENTS
)
TICKER_RESOURCES: tuple[WatchedResource, ...] = (WatchedResource.ANNOUNCEMENTS,)

FatalErrorCallback = Callable[[str], None]


@dataclass(slots=True, frozen=True)
class ServiceStatus:
    mounted: bool
    preset_slug: str
    feeds_fetched_at: datetime | None
    logistics_count: int | None
    highlight_count: int
    fatal_error: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "mounted": self.mounted,
            "preset_slug": self.preset_slug,
            "feeds_fetched_at": self.feeds_fetched_at.isoformat() if self.feeds_fetched_at else None,
            "logistics_count": self.logistics_count,
            "highlight_count": self.highlight_count,
            "fatal_error": self.fatal_error,
        }


class WallboardService:
    """Owns every timer, subscription and snapshot of one mounted wallboard.

    All state lives on the event loop that called ``mount``; nothing here is
    thread safe. The last completed fetch of each feed wins, and a failed
    fetch leaves the previous snapshot of that feed in place.
    """

    def __init__(
        self,
        job_source: JobSourcePort,
        logistics_source: LogisticsSourcePort,
        announcement_source: AnnouncementSourcePort,
        preset_source: PresetSourcePort,
        change_bus: ChangeBusPort,
        event_bus: EventBusPort,
        clock: ClockPort,
        *,
        preset_slug: str = "default",
        detail_days: int = 7,
        debounce_seconds: float = 0.3,
        sweep_seconds: float = 5.0,
        ticker_min_interval_seconds: float = 5.0,
        announcement_limit: int = 20,
        page_sizes: Mapping[PanelKey, int] | None = None,
        scroll_speed: float = 50.0,
        kiosk_scroll_speed: float = 20.0,
        on_fatal_error: FatalErrorCallback | None = None,
    ) -> None:
        self._announcement_source = announcement_source
        self._preset_source = preset_source
        self._change_bus = change_bus
        self._event_bus = event_bus
        self._clock = clock

        self._preset_slug = preset_slug
        self._debounce_seconds = debounce_seconds
        self._sweep_seconds = sweep_seconds
        self._ticker_min_interval_seconds = ticker_min_interval_seconds
        self._announcement_limit = announcement_limit
        self._scroll_speed = scroll_speed
        self._kiosk_scroll_speed = kiosk_scroll_speed
        self._on_fatal_error = on_fatal_error

        self._fuse_feeds = FuseFeedsUseCase(job_source, detail_days=detail_days)
        self._fetch_logistics = FetchLogisticsUseCase(logistics_source, detail_days=detail_days)

        self._preset = WallboardPreset(slug=preset_slug)
        self._preset_message: str | None = None
        self._rotation = PanelRotation(
            self._preset.panel_order,
            durations=self._preset.panel_durations,
            fallback_seconds=self._preset.rotation_fallback_seconds,
            page_sizes=DEFAULT_PAGE_SIZES if page_sizes is None else page_sizes,
        )
        self._highlights = HighlightCache()
        self._ticker: tuple[TickerMessage, ...] = ()
        self._feeds: FusedFeeds | None = None
        self._logistics: list[LogisticsItem] | None = None
        self._fatal_error: str | None = None

        self._mounted = False
        self._stop_event = asyncio.Event()
        self._rotation_wake = asyncio.Event()
        self._ticker_wake = asyncio.Event()
        self._tasks: list[asyncio.Task] = []
        self._background: set[asyncio.Task] = set()
        self._unsubscribers: list[Callable[[], None]] = []
        self._feed_refresh: RefreshCoordinator | None = None
        self._ticker_refresh: RefreshCoordinator | None = None

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def preset(self) -> WallboardPreset:
        return self._preset

    @property
    def rotation(self) -> PanelRotation:
        return self._rotation

    @property
    def highlights(self) -> HighlightCache:
        return self._highlights

    @property
    def feeds(self) -> FusedFeeds | None:
        return self._feeds

    @property
    def logistics(self) -> list[LogisticsItem] | None:
        return self._logistics

    @property
    def ticker(self) -> tuple[TickerMessage, ...]:
        return self._ticker

    @property
    def fatal_error(self) -> str | None:
        return self._fatal_error

    async def mount(self) -> None:
        if self._mounted:
            log.warning("Wallboard already mounted")
            return
        started_at = time.perf_counter()
        log.info("Wallboard mount begin preset=%s", self._preset_slug)
        self._mounted = True
        self._stop_event.clear()
        self._rotation_wake.clear()
        self._ticker_wake.clear()

        await self.load_preset(self._preset_slug, publish=False)

        self._feed_refresh = RefreshCoordinator(
            self.refresh_feeds, debounce_seconds=self._debounce_seconds, name="feeds"
        )
        self._ticker_refresh = RefreshCoordinator(
            self.poll_announcements, debounce_seconds=self._debounce_seconds, name="ticker"
        )
        for resource in FEED_RESOURCES:
            self._unsubscribers.append(self._change_bus.subscribe(resource, self._feed_refresh.on_change))
        for resource in TICKER_RESOURCES:
            self._unsubscribers.append(self._change_bus.subscribe(resource, self._ticker_refresh.on_change))

        await self.refresh_feeds(publish=False)
        await self.poll_announcements(publish=False)

        self._tasks = [
            asyncio.create_task(self._rotation_loop(), name="wallboard-rotation-loop"),
            asyncio.create_task(self._sweep_loop(), name="wallboard-highlight-sweep-loop"),
            asyncio.create_task(self._ticker_loop(), name="wallboard-ticker-loop"),
        ]
        await self._publish("mount")
        log.info(
            "Wallboard mount completed elapsed_ms=%s subscriptions=%s",
            int((time.perf_counter() - started_at) * 1000),
            len(self._unsubscribers),
        )

    async def unmount(self) -> None:
        if not self._mounted:
            log.debug("Wallboard unmount skipped because it is not mounted")
            return
        log.info("Wallboard unmount begin")
        self._mounted = False
        self._stop_event.set()
        self._rotation_wake.set()
        self._ticker_wake.set()

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        for coordinator in (self._feed_refresh, self._ticker_refresh):
            if coordinator is not None:
                await coordinator.close()
        self._feed_refresh = None
        self._ticker_refresh = None

        tasks = list(self._tasks)
        self._tasks.clear()
        for task in tasks:
            if task is not asyncio.current_task():
                task.cancel()
        for task in tasks:
            if task is asyncio.current_task():
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await task
        log.info("Wallboard unmount completed")

    async def load_preset(self, slug: str, *, publish: bool = True) -> WallboardPreset:
        record: PresetRecord | None = None
        try:
            record = await self._preset_source.load_preset(slug)
        except WallboardAccessError as exc:
            self.report_access_denied(str(exc))
        except Exception:  # noqa: BLE001
            log.exception("Preset load failed slug=%s", slug)
        preset, message = resolve_preset(record, slug)
        self.apply_preset(preset, message)
        if publish:
            await self._publish("preset")
        return preset

    def apply_preset(self, preset: WallboardPreset, message: str | None = None) -> None:
        self._preset = preset
        self._preset_slug = preset.slug
        self._preset_message = message
        self._rotation.set_durations(preset.panel_durations, preset.rotation_fallback_seconds)
        self._rotation.set_panel_order(preset.panel_order)
        self._highlights.clear()
        self._rotation_wake.set()
        self._ticker_wake.set()
        log.info(
            "Preset applied slug=%s panels=%s message=%s",
            preset.slug,
            ",".join(key.value for key in preset.panel_order),
            message,
        )

    async def refresh_feeds(self, *, publish: bool = True) -> None:
        now = self._clock.now()
        was_idle = self._rotation.dwell_seconds() is None

        try:
            self._feeds = await self._fuse_feeds.execute(now)
        except WallboardAccessError as exc:
            self.report_access_denied(str(exc))
        except Exception:  # noqa: BLE001
            log.exception("Job feeds refresh failed; keeping previous snapshot")

        try:
            self._logistics = await self._fetch_logistics.execute(now)
        except WallboardAccessError as exc:
            self.report_access_denied(str(exc))
        except Exception:  # noqa: BLE001
            log.exception("Logistics refresh failed; keeping previous snapshot")

        self._rotation.set_item_counts(self._item_counts())
        if was_idle and self._rotation.dwell_seconds() is not None:
            log.debug("Rotation becomes active after refresh")
            self._rotation_wake.set()
        if publish:
            await self._publish("refresh")

    async def poll_announcements(self, *, publish: bool = True) -> None:
        now = self._clock.now()
        try:
            records = await self._announcement_source.fetch_active_announcements(self._announcement_limit)
        except WallboardAccessError as exc:
            self.report_access_denied(str(exc))
            return
        except Exception:  # noqa: BLE001
            log.exception("Announcements poll failed")
            return

        outcome = self._highlights.ingest(records, now, self._preset.highlight_ttl_seconds)
        self._ticker = outcome.ticker
        if outcome.stale_ids:
            try:
                await self._announcement_source.deactivate_announcements(outcome.stale_ids)
            except Exception as exc:  # noqa: BLE001
                log.warning("Stale announcement cleanup failed count=%s error=%r", len(outcome.stale_ids), exc)
        if publish:
            await self._publish("ticker")

    async def manual_refresh(self) -> RenderState:
        log.info("Manual refresh requested")
        await self.refresh_feeds(publish=False)
        await self.poll_announcements(publish=False)
        return await self._publish("manual-refresh")

    def calendar_cells(self) -> list[CalendarCell]:
        if self._feeds is None:
            return []
        return build_calendar_cells(
            self._feeds.calendar,
            self._clock.now().date(),
            self._highlights.ids(),
        )

    def calendar_scroll_speed(self) -> float:
        if self._preset.slug == KIOSK_PRESET_SLUG:
            return self._kiosk_scroll_speed
        return self._scroll_speed

    def render_state(self, reason: str = "tick") -> RenderState:
        position = self._rotation.position()
        cells = self.calendar_cells()
        return RenderState(
            panel=position.panel,
            page=position.page,
            page_count=position.page_count,
            panel_order=self._rotation.panel_order,
            highlight_ids=self._highlights.ids(),
            ticker=self._ticker,
            feeds=self._feeds.to_dict() if self._feeds is not None else None,
            logistics=[item.to_dict() for item in self._logistics] if self._logistics is not None else None,
            calendar=[cell.to_dict() for cell in cells] if self._feeds is not None else None,
            calendar_scroll_speed=self.calendar_scroll_speed(),
            preset_slug=self._preset.slug,
            preset_message=self._preset_message,
            reason=reason,
            created_at=self._clock.now(),
        )

    def status(self) -> ServiceStatus:
        return ServiceStatus(
            mounted=self._mounted,
            preset_slug=self._preset.slug,
            feeds_fetched_at=self._feeds.fetched_at if self._feeds is not None else None,
            logistics_count=len(self._logistics) if self._logistics is not None else None,
            highlight_count=len(self._highlights),
            fatal_error=self._fatal_error,
        )

    def _item_counts(self) -> dict[PanelKey, int]:
        counts: dict[PanelKey, int] = {}
        if self._feeds is not None:
            counts[PanelKey.OVERVIEW] = len(self._feeds.overview)
            counts[PanelKey.CREW] = len(self._feeds.crew)
            counts[PanelKey.PENDING] = len(self._feeds.pending)
        if self._logistics is not None:
            counts[PanelKey.LOGISTICS] = len(self._logistics)
        return counts

    def report_access_denied(self, message: str) -> None:
        if self._fatal_error is not None:
            log.debug("Fatal access error already reported message=%s", message)
            return
        self._fatal_error = message
        log.error("Wallboard access denied message=%s", message)
        task = asyncio.get_running_loop().create_task(self._publish_event(AccessDenied(message=message)))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        if self._on_fatal_error is not None:
            try:
                self._on_fatal_error(message)
            except Exception:  # noqa: BLE001
                log.exception("Fatal error callback failed")

    async def _publish(self, reason: str) -> RenderState:
        state = self.render_state(reason)
        await self._publish_event(state)
        return state

    async def _publish_event(self, event: RenderState | AccessDenied) -> None:
        try:
            await self._event_bus.publish(event)
        except Exception:  # noqa: BLE001
            log.exception("Publish failed event_type=%s", type(event).__name__)

    async def _rotation_loop(self) -> None:
        log.info("Rotation loop started")
        while self._mounted:
            dwell = self._rotation.dwell_seconds()
            try:
                await asyncio.wait_for(self._rotation_wake.wait(), timeout=dwell)
            except asyncio.TimeoutError:
                position = self._rotation.advance()
                log.debug("Rotation tick panel=%s page=%s", position.panel.value, position.page)
                await self._publish("rotate")
                continue
            self._rotation_wake.clear()
        log.info("Rotation loop stopped")

    async def _sweep_loop(self) -> None:
        log.info("Highlight sweep loop started interval_seconds=%s", self._sweep_seconds)
        while self._mounted:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._sweep_seconds)
            except asyncio.TimeoutError:
                pass
            if not self._mounted:
                break
            if self._highlights.sweep(self._clock.now()):
                await self._publish("highlight-expired")
        log.info("Highlight sweep loop stopped")

    async def _ticker_loop(self) -> None:
        log.info("Ticker poll loop started")
        while self._mounted:
            interval = max(self._ticker_min_interval_seconds, float(self._preset.ticker_poll_interval_seconds))
            try:
                await asyncio.wait_for(self._ticker_wake.wait(), timeout=interval)
            except asyncio.TimeoutError:
                await self.poll_announcements()
                continue
            self._ticker_wake.clear()
        log.info("Ticker poll loop stopped")
