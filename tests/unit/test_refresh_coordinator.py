from __future__ import annotations

import asyncio

from wallboard.application.services.refresh_coordinator import RefreshCoordinator
from wallboard.domain.models.resources import WatchedResource

DEBOUNCE = 0.02


def test_burst_of_notifications_triggers_one_refresh() -> None:
    calls: list[int] = []

    async def refresh() -> None:
        calls.append(1)

    async def scenario() -> RefreshCoordinator:
        coordinator = RefreshCoordinator(refresh, debounce_seconds=DEBOUNCE, name="test")
        for resource in (WatchedResource.JOBS, WatchedResource.TOURS, WatchedResource.JOBS):
            coordinator.notify(resource)
        assert coordinator.pending
        await asyncio.sleep(DEBOUNCE * 5)
        await coordinator.close()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert calls == [1]
    assert coordinator.refresh_count == 1


def test_notification_during_refresh_schedules_another() -> None:
    calls: list[int] = []

    async def scenario() -> None:
        gate = asyncio.Event()

        async def refresh() -> None:
            calls.append(1)
            if len(calls) == 1:
                await gate.wait()

        coordinator = RefreshCoordinator(refresh, debounce_seconds=DEBOUNCE, name="test")
        coordinator.notify(WatchedResource.JOBS)
        await asyncio.sleep(DEBOUNCE * 3)
        assert calls == [1]

        coordinator.notify(WatchedResource.JOBS)
        await asyncio.sleep(DEBOUNCE * 3)
        assert calls == [1, 1]

        gate.set()
        await asyncio.sleep(0)
        await coordinator.close()

    asyncio.run(scenario())


def test_failed_refresh_does_not_stop_later_ones() -> None:
    calls: list[int] = []

    async def refresh() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("store unavailable")

    async def scenario() -> None:
        coordinator = RefreshCoordinator(refresh, debounce_seconds=DEBOUNCE, name="test")
        coordinator.notify()
        await asyncio.sleep(DEBOUNCE * 3)
        coordinator.notify()
        await asyncio.sleep(DEBOUNCE * 3)
        await coordinator.close()

    asyncio.run(scenario())
    assert calls == [1, 1]


def test_close_cancels_pending_refresh() -> None:
    calls: list[int] = []

    async def refresh() -> None:
        calls.append(1)

    async def scenario() -> None:
        coordinator = RefreshCoordinator(refresh, debounce_seconds=DEBOUNCE, name="test")
        coordinator.notify(WatchedResource.ANNOUNCEMENTS)
        await coordinator.close()
        assert not coordinator.pending
        coordinator.notify(WatchedResource.ANNOUNCEMENTS)
        await asyncio.sleep(DEBOUNCE * 3)

    asyncio.run(scenario())
    assert calls == []
