from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime

from wallboard.application.ports import ClockPort
from wallboard.application.services.wallboard_service import FatalErrorCallback, WallboardService
from wallboard.config import Settings, settings
from wallboard.domain.errors import WallboardAccessError
from wallboard.domain.models.panel import PanelKey
from wallboard.infrastructure.messaging.change_bus import ChangeEventBus
from wallboard.infrastructure.messaging.event_bus import AsyncEventBus
from wallboard.infrastructure.sqlserver.change_watcher import SqlChangeWatcher
from wallboard.infrastructure.sqlserver.connection import SQLServerConnection
from wallboard.infrastructure.sqlserver.preset_repo import PresetRepo
from wallboard.infrastructure.sqlserver.wallboard_repo import WallboardRepo

log = logging.getLogger(__name__)


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()


@dataclass(slots=True)
class WallboardRuntime:
    """Everything one wallboard process owns, wired together."""

    service: WallboardService
    event_bus: AsyncEventBus
    change_bus: ChangeEventBus
    connection: SQLServerConnection | None = None
    watcher: SqlChangeWatcher | None = None

    async def start(self) -> None:
        log.info("Wallboard runtime start begin")
        if self.connection is not None:
            try:
                await self.connection.start()
            except WallboardAccessError as exc:
                self.service.report_access_denied(str(exc))
                return
        await self.service.mount()
        if self.watcher is not None and self.service.fatal_error is None:
            try:
                await self.watcher.start()
            except WallboardAccessError as exc:
                self.service.report_access_denied(str(exc))
        log.info("Wallboard runtime start completed fatal=%s", self.service.fatal_error is not None)

    async def stop(self) -> None:
        log.info("Wallboard runtime stop begin")
        if self.watcher is not None:
            with contextlib.suppress(Exception):
                await self.watcher.close()
        with contextlib.suppress(Exception):
            await self.service.unmount()
        if self.connection is not None:
            with contextlib.suppress(Exception):
                await self.connection.close()
        log.info("Wallboard runtime stop completed")


def build_runtime(
    clock: ClockPort | None = None,
    *,
    config: Settings = settings,
    preset_slug: str | None = None,
    on_fatal_error: FatalErrorCallback | None = None,
) -> WallboardRuntime:
    clock = clock or SystemClock()
    connection = SQLServerConnection(config)
    repo = WallboardRepo(connection)
    preset_repo = PresetRepo(connection)
    change_bus = ChangeEventBus()
    event_bus = AsyncEventBus(default_queue_size=config.event_queue_size)

    service = WallboardService(
        job_source=repo,
        logistics_source=repo,
        announcement_source=repo,
        preset_source=preset_repo,
        change_bus=change_bus,
        event_bus=event_bus,
        clock=clock,
        preset_slug=preset_slug or config.preset_slug,
        detail_days=config.detail_window_days,
        debounce_seconds=config.refresh_debounce_ms / 1000.0,
        sweep_seconds=config.highlight_sweep_seconds,
        ticker_min_interval_seconds=config.ticker_min_interval_seconds,
        announcement_limit=config.announcement_limit,
        page_sizes={
            PanelKey.OVERVIEW: config.overview_page_size,
            PanelKey.CREW: config.crew_page_size,
            PanelKey.LOGISTICS: config.logistics_page_size,
        },
        scroll_speed=config.autoscroll_speed_px,
        kiosk_scroll_speed=config.autoscroll_kiosk_speed_px,
        on_fatal_error=on_fatal_error,
    )
    watcher = SqlChangeWatcher(
        connection,
        change_bus,
        clock,
        poll_interval_seconds=config.change_poll_interval_seconds,
        on_fatal_error=service.report_access_denied,
    )
    log.info(
        "Wallboard runtime built preset=%s server=%s database=%s",
        preset_slug or config.preset_slug,
        config.sql_server,
        config.sql_database,
    )
    return WallboardRuntime(
        service=service,
        event_bus=event_bus,
        change_bus=change_bus,
        connection=connection,
        watcher=watcher,
    )
