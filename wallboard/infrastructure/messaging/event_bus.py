from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

log = logging.getLogger(__name__)


class AsyncEventBus:
    """Fan-out of display events to per-subscriber queues.

    The most recent event is kept and replayed to new subscribers, so a
    display that connects mid-dwell draws the current frame immediately.
    Slow subscribers lose their oldest queued event.
    """

    def __init__(self, default_queue_size: int, *, replay_latest: bool = True) -> None:
        self._default_queue_size = default_queue_size
        self._replay_latest = replay_latest
        self._subscribers: set[asyncio.Queue[Any]] = set()
        self._lock = asyncio.Lock()
        self._latest: Any | None = None

    async def subscribe(self, maxsize: int | None = None) -> asyncio.Queue[Any]:
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize or self._default_queue_size)
        async with self._lock:
            self._subscribers.add(queue)
            count = len(self._subscribers)
            if self._replay_latest and self._latest is not None:
                queue.put_nowait(self._latest)
        log.info("Display bus subscribe subscribers=%s queue_size=%s", count, queue.maxsize)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[Any]) -> None:
        async with self._lock:
            self._subscribers.discard(queue)
            count = len(self._subscribers)
        log.info("Display bus unsubscribe subscribers=%s", count)

    async def publish(self, event: Any) -> None:
        async with self._lock:
            self._latest = event
            subscribers = list(self._subscribers)
        dropped = 0
        for queue in subscribers:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                with contextlib.suppress(asyncio.QueueEmpty):
                    _ = queue.get_nowait()
                queue.put_nowait(event)
                dropped += 1
        if dropped:
            log.warning(
                "Display bus publish dropped_oldest=%s event_type=%s subscribers=%s",
                dropped,
                type(event).__name__,
                len(subscribers),
            )
        else:
            log.debug("Display bus publish event_type=%s subscribers=%s", type(event).__name__, len(subscribers))
