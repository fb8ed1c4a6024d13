from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Iterable

from wallboard.application.ports import ChangeBusPort, ClockPort
from wallboard.config import settings
from wallboard.domain.errors import WallboardAccessError
from wallboard.domain.events import ResourceChanged
from wallboard.domain.models.resources import WATCHED_RESOURCES, WatchedResource
from wallboard.infrastructure.sqlserver.connection import SQLServerConnection

log = logging.getLogger(__name__)


class ChangeVersionTracker:
    """Last change-tracking version seen per table."""

    def __init__(self) -> None:
        self._versions: dict[WatchedResource, int] = {}

    def get(self, resource: WatchedResource) -> int | None:
        return self._versions.get(resource)

    def set(self, resource: WatchedResource, version: int) -> None:
        self._versions[resource] = version
        log.debug("Change version set resource=%s version=%s", resource.value, version)

    def clear(self) -> None:
        self._versions.clear()


class SqlChangeWatcher:
    """Turns SQL Server change tracking into ResourceChanged events.

    Each poll asks CHANGETABLE for rows newer than the last seen version of
    every watched table and dispatches one event per table that moved.
    """

    def __init__(
        self,
        connection: SQLServerConnection,
        change_bus: ChangeBusPort,
        clock: ClockPort,
        *,
        resources: Iterable[WatchedResource] = WATCHED_RESOURCES,
        poll_interval_seconds: float | None = None,
        on_fatal_error: Callable[[str], None] | None = None,
    ) -> None:
        self._conn = connection
        self._bus = change_bus
        self._clock = clock
        self._resources = tuple(resources)
        self._poll_interval_seconds = (
            settings.change_poll_interval_seconds if poll_interval_seconds is None else poll_interval_seconds
        )
        self._on_fatal_error = on_fatal_error
        self._tracker = ChangeVersionTracker()
        self._tables = {
            resource: SQLServerConnection.table_name(settings.sql_schema, resource.value)
            for resource in self._resources
        }
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._poll_iteration = 0

    async def start(self) -> None:
        if self._task is not None:
            log.debug("Change watcher start skipped because loop already exists")
            return
        self._stop_event.clear()
        await self._prime_versions()
        self._task = asyncio.create_task(self._poll_loop(), name="wallboard-change-watcher")
        log.info(
            "Change watcher started tables=%s interval_seconds=%s",
            len(self._resources),
            self._poll_interval_seconds,
        )

    async def close(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._tracker.clear()
        log.info("Change watcher stopped")

    async def poll_once(self) -> list[ResourceChanged]:
        self._poll_iteration += 1
        started_at = time.perf_counter()
        events: list[ResourceChanged] = []
        for resource in self._resources:
            try:
                event = await self._poll_table(resource)
            except WallboardAccessError:
                raise
            except Exception as exc:  # noqa: BLE001
                log.warning(
                    "Change poll #%s failed resource=%s error=%r",
                    self._poll_iteration,
                    resource.value,
                    exc,
                )
                continue
            if event is not None:
                events.append(event)
        for event in events:
            self._bus.dispatch(event)
        if events:
            log.info(
                "Change poll #%s resources=%s elapsed_ms=%s",
                self._poll_iteration,
                ",".join(event.resource.value for event in events),
                int((time.perf_counter() - started_at) * 1000),
            )
        return events

    async def _prime_versions(self) -> None:
        rows = await self._conn.query_rows("SELECT CHANGE_TRACKING_CURRENT_VERSION() AS version", [])
        current = rows[0].get("version") if rows else None
        if current is None:
            log.warning("Change tracking is not enabled on database=%s", settings.sql_database)
            current = 0
        for resource in self._resources:
            self._tracker.set(resource, int(current))

    async def _poll_table(self, resource: WatchedResource) -> ResourceChanged | None:
        since = self._tracker.get(resource) or 0
        query = (
            "SELECT MAX(ct.SYS_CHANGE_VERSION) AS version, COUNT(*) AS changes "
            f"FROM CHANGETABLE(CHANGES {self._tables[resource]}, ?) AS ct"
        )
        rows = await self._conn.query_rows(query, [since])
        if not rows or not rows[0].get("changes"):
            return None
        version = rows[0].get("version")
        if version is None:
            return None
        self._tracker.set(resource, int(version))
        log.debug(
            "Change detected resource=%s since=%s version=%s changes=%s",
            resource.value,
            since,
            version,
            rows[0].get("changes"),
        )
        return ResourceChanged(resource=resource, changed_at=self._clock.now(), version=int(version))

    async def _poll_loop(self) -> None:
        log.info("Change poll loop started interval_seconds=%s", self._poll_interval_seconds)
        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except WallboardAccessError as exc:
                log.error("Change poll loop stopped by access error error=%s", exc)
                if self._on_fatal_error is not None:
                    self._on_fatal_error(str(exc))
                break
            except Exception:  # noqa: BLE001
                log.exception("Change poll loop failed")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval_seconds)
            except asyncio.TimeoutError:
                pass
        log.info("Change poll loop stopped")
