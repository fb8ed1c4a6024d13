from __future__ import annotations

import pytest

from wallboard.application.state.preset import (
    BUILTIN_PRESETS,
    KIOSK_FALLBACK_MESSAGE,
    coerce_seconds,
    normalise_panel_order,
    resolve_preset,
)
from wallboard.domain.models.panel import DEFAULT_PANEL_ORDER, PanelKey
from wallboard.domain.models.records import PresetRecord


@pytest.mark.parametrize(
    ("value", "expected"),
    [(15, 15), ("20", 20), (12.6, 13), (0, 1), (10_000, 600), ("abc", 7), (None, 7), (float("nan"), 7)],
)
def test_coerce_seconds(value: object, expected: int) -> None:
    assert coerce_seconds(value, 7) == expected


def test_normalise_panel_order_drops_unknown_and_duplicates() -> None:
    order = normalise_panel_order(["crew", "bogus", "CREW", "calendar"])
    assert order[:2] == (PanelKey.CREW, PanelKey.CALENDAR)
    assert set(order) == set(DEFAULT_PANEL_ORDER)
    assert len(order) == len(DEFAULT_PANEL_ORDER)


def test_normalise_panel_order_appends_missing_panels() -> None:
    order = normalise_panel_order(["calendar"])
    assert order == (
        PanelKey.CALENDAR,
        PanelKey.OVERVIEW,
        PanelKey.CREW,
        PanelKey.LOGISTICS,
        PanelKey.PENDING,
    )


def test_normalise_empty_order_is_default() -> None:
    assert normalise_panel_order([]) == DEFAULT_PANEL_ORDER
    assert normalise_panel_order(None) == DEFAULT_PANEL_ORDER
    assert normalise_panel_order(["nope"]) == DEFAULT_PANEL_ORDER


def test_stored_preset_is_clamped() -> None:
    record = PresetRecord(
        slug="oficinas",
        panel_order=["pending", "overview"],
        panel_durations={"overview": "30", "crew": 0, "pending": "x"},
        rotation_fallback_seconds=8,
        highlight_ttl_seconds=5,
        ticker_poll_interval_seconds=9999,
    )
    preset, message = resolve_preset(record, "oficinas")

    assert message is None
    assert preset.panel_order[:2] == (PanelKey.PENDING, PanelKey.OVERVIEW)
    assert preset.duration_for(PanelKey.OVERVIEW) == 30
    assert preset.duration_for(PanelKey.CREW) == 1
    assert preset.duration_for(PanelKey.PENDING) == 8
    assert preset.duration_for(PanelKey.CALENDAR) == 8
    assert preset.highlight_ttl_seconds == 30
    assert preset.ticker_poll_interval_seconds == 600


def test_missing_default_preset_reports_message() -> None:
    preset, message = resolve_preset(None, "default")
    assert preset.panel_order == DEFAULT_PANEL_ORDER
    assert message == "Using default wallboard preset."


def test_missing_unknown_preset_names_the_slug() -> None:
    preset, message = resolve_preset(None, "lobby")
    assert preset.slug == "lobby"
    assert message == 'Using default wallboard preset (missing "lobby").'


def test_missing_kiosk_preset_is_calendar_only() -> None:
    preset, message = resolve_preset(None, "produccion")
    assert preset.is_calendar_only
    assert preset.duration_for(PanelKey.CALENDAR) == 30
    assert message == KIOSK_FALLBACK_MESSAGE


def test_missing_builtin_preset_uses_builtin_silently() -> None:
    preset, message = resolve_preset(None, "almacen")
    assert preset == BUILTIN_PRESETS["almacen"]
    assert message is None
