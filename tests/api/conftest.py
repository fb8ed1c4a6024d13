from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from wallboard.application.services.wallboard_service import WallboardService
from wallboard.bootstrap import WallboardRuntime
from wallboard.infrastructure.messaging.change_bus import ChangeEventBus
from wallboard.infrastructure.messaging.event_bus import AsyncEventBus
from wallboard.presentation.api.app import create_app


@pytest.fixture
def runtime(source, clock) -> WallboardRuntime:
    change_bus = ChangeEventBus()
    event_bus = AsyncEventBus(default_queue_size=100)
    service = WallboardService(
        job_source=source,
        logistics_source=source,
        announcement_source=source,
        preset_source=source,
        change_bus=change_bus,
        event_bus=event_bus,
        clock=clock,
        debounce_seconds=0.01,
    )
    return WallboardRuntime(service=service, event_bus=event_bus, change_bus=change_bus)


@pytest.fixture
def client(runtime):
    with TestClient(create_app(runtime)) as test_client:
        yield test_client
