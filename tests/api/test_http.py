from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from wallboard.domain.errors import WallboardAccessError
from wallboard.presentation.api.app import create_app


@pytest.fixture
def seeded_source(source, clock, make_job):
    source.jobs = [make_job("0a1f", clock.now() + timedelta(hours=2), title="Arena Show")]
    return source


def test_health_reports_mounted_service(seeded_source, client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["mounted"] is True
    assert body["preset_slug"] == "default"
    assert body["fatal_error"] is None


def test_state_returns_current_frame(seeded_source, client) -> None:
    body = client.get("/state").json()
    assert body["type"] == "RenderState"
    assert body["panel"] == "overview"
    assert body["panel_order"] == ["overview", "crew", "logistics", "pending", "calendar"]
    assert [job["title"] for job in body["feeds"]["overview"]["jobs"]] == ["Arena Show"]
    assert body["preset_message"] == "Using default wallboard preset."


def test_calendar_grid(seeded_source, client) -> None:
    body = client.get("/calendar").json()
    assert body["month"] == "marzo 2025"
    assert body["day_labels"][0] == "Lun"
    assert len(body["cells"]) == 42
    today = [cell for cell in body["cells"] if cell["is_today"]]
    assert [cell["date"] for cell in today] == ["2025-03-12"]
    assert [job["id"] for job in today[0]["jobs"]] == ["0a1f"]


def test_manual_refresh_fetches_again(seeded_source, client) -> None:
    before = seeded_source.calls.count("fetch_jobs")
    response = client.post("/refresh")
    assert response.status_code == 200
    assert response.json()["reason"] == "manual-refresh"
    assert seeded_source.calls.count("fetch_jobs") == before + 1


def test_apply_preset(seeded_source, client) -> None:
    response = client.post("/preset", json={"slug": "almacen"})
    assert response.status_code == 200
    assert response.json()["panel_order"] == ["logistics", "overview", "calendar"]
    assert client.get("/state").json()["panel"] == "logistics"


def test_apply_preset_rejects_bad_slug(client) -> None:
    response = client.post("/preset", json={"slug": "no spaces!"})
    assert response.status_code == 422


def test_access_denied_blocks_data_routes(source, runtime) -> None:
    source.failures["fetch_jobs"] = WallboardAccessError("Login failed for user 'wallboard'")
    with TestClient(create_app(runtime)) as client:
        health = client.get("/health").json()
        assert health["status"] == "denied"
        assert health["fatal_error"] == "Login failed for user 'wallboard'"
        assert client.get("/state").status_code == 403
        assert client.get("/calendar").status_code == 403


def test_websocket_sends_current_frame_on_connect(seeded_source, client) -> None:
    with client.websocket_connect("/ws/wallboard") as ws:
        payload = ws.receive_json()
    assert payload["type"] == "RenderState"
    assert payload["reason"] == "connect"
    assert payload["panel"] == "overview"
