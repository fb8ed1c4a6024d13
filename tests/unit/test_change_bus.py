from __future__ import annotations

import asyncio
from datetime import datetime

from wallboard.domain.events import ResourceChanged
from wallboard.domain.models.resources import WatchedResource
from wallboard.infrastructure.messaging.change_bus import ChangeEventBus
from wallboard.infrastructure.messaging.event_bus import AsyncEventBus

NOW = datetime(2025, 3, 12, 10, 0, 0)


def _changed(resource: WatchedResource) -> ResourceChanged:
    return ResourceChanged(resource=resource, changed_at=NOW, version=1)


def test_dispatch_reaches_only_matching_resource() -> None:
    bus = ChangeEventBus()
    jobs: list[ResourceChanged] = []
    tours: list[ResourceChanged] = []
    bus.subscribe(WatchedResource.JOBS, jobs.append)
    bus.subscribe(WatchedResource.TOURS, tours.append)

    bus.dispatch(_changed(WatchedResource.JOBS))

    assert len(jobs) == 1
    assert tours == []


def test_unsubscribe_removes_handler() -> None:
    bus = ChangeEventBus()
    seen: list[ResourceChanged] = []
    unsubscribe = bus.subscribe(WatchedResource.ANNOUNCEMENTS, seen.append)
    assert bus.handler_count(WatchedResource.ANNOUNCEMENTS) == 1

    unsubscribe()
    unsubscribe()
    bus.dispatch(_changed(WatchedResource.ANNOUNCEMENTS))

    assert seen == []
    assert bus.handler_count() == 0


def test_failing_handler_does_not_block_others() -> None:
    bus = ChangeEventBus()
    seen: list[ResourceChanged] = []

    def broken(_: ResourceChanged) -> None:
        raise RuntimeError("boom")

    bus.subscribe(WatchedResource.JOBS, broken)
    bus.subscribe(WatchedResource.JOBS, seen.append)
    bus.dispatch(_changed(WatchedResource.JOBS))

    assert len(seen) == 1


def test_event_bus_replays_latest_to_new_subscriber() -> None:
    async def scenario() -> tuple[object, int]:
        bus = AsyncEventBus(default_queue_size=10)
        await bus.publish("frame-1")
        await bus.publish("frame-2")
        queue = await bus.subscribe()
        return queue.get_nowait(), queue.qsize()

    first, remaining = asyncio.run(scenario())
    assert first == "frame-2"
    assert remaining == 0


def test_event_bus_drops_oldest_for_slow_subscriber() -> None:
    async def scenario() -> list[object]:
        bus = AsyncEventBus(default_queue_size=10, replay_latest=False)
        queue = await bus.subscribe(maxsize=2)
        for index in range(4):
            await bus.publish(index)
        return [queue.get_nowait() for _ in range(queue.qsize())]

    assert asyncio.run(scenario()) == [2, 3]
