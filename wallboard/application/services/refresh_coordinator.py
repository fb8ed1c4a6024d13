from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable

from wallboard.domain.events import ResourceChanged
from wallboard.domain.models.resources import WatchedResource

log = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[None]]


class RefreshCoordinator:
    """Collapse bursts of change notifications into one refresh.

    A notification schedules a refresh ``debounce_seconds`` later unless one
    is already scheduled. Running refreshes are left alone; a notification
    that lands while one runs schedules the next.
    """

    def __init__(
        self,
        refresh: RefreshCallback,
        *,
        debounce_seconds: float = 0.3,
        name: str = "refresh",
    ) -> None:
        self._refresh = refresh
        self._debounce_seconds = debounce_seconds
        self._name = name
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._pending_resources: set[str] = set()
        self._closed = False
        self.refresh_count = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def on_change(self, event: ResourceChanged) -> None:
        self.notify(event.resource)

    def notify(self, resource: WatchedResource | str | None = None) -> None:
        if self._closed:
            return
        if resource is not None:
            self._pending_resources.add(str(resource))
        if self._handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._debounce_seconds, self._fire)
        log.debug(
            "Refresh scheduled name=%s debounce_ms=%s resource=%s",
            self._name,
            int(self._debounce_seconds * 1000),
            resource,
        )

    def _fire(self) -> None:
        self._handle = None
        if self._closed:
            return
        resources = sorted(self._pending_resources)
        self._pending_resources.clear()
        task = asyncio.get_running_loop().create_task(
            self._run(resources), name=f"wallboard-{self._name}-refresh"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, resources: list[str]) -> None:
        started_at = time.perf_counter()
        self.refresh_count += 1
        try:
            await self._refresh()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            log.exception("Debounced refresh failed name=%s resources=%s", self._name, ",".join(resources))
            return
        log.debug(
            "Debounced refresh done name=%s resources=%s elapsed_ms=%s",
            self._name,
            ",".join(resources),
            int((time.perf_counter() - started_at) * 1000),
        )

    async def close(self) -> None:
        self._closed = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
        self._pending_resources.clear()
        log.debug("Refresh coordinator closed name=%s", self._name)
