from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from wallboard.domain.models.panel import DEFAULT_PANEL_ORDER, PANEL_KEYS, PanelKey
from wallboard.domain.models.records import PresetRecord

log = logging.getLogger(__name__)

DEFAULT_PRESET_SLUG = "default"
KIOSK_PRESET_SLUG = "produccion"

DEFAULT_DWELL_SECONDS = 12
DEFAULT_HIGHLIGHT_TTL_SECONDS = 300
DEFAULT_TICKER_SECONDS = 20

DWELL_BOUNDS = (1, 600)
HIGHLIGHT_TTL_BOUNDS = (30, 3600)
TICKER_BOUNDS = (10, 600)

KIOSK_FALLBACK_MESSAGE = "Wallboard de producción: solo calendario (configurable en Presets)."


def coerce_seconds(value: Any, fallback: int, minimum: int = 1, maximum: int = 600) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return int(round(min(maximum, max(minimum, number))))


def normalise_panel_order(order: Iterable[Any] | None) -> tuple[PanelKey, ...]:
    """Keep known panels once each, in the given order, then append the rest.

    An empty or unusable order yields the default order.
    """
    seen: list[PanelKey] = []
    for raw in order or ():
        text = str(raw or "").strip().lower()
        try:
            key = PanelKey(text)
        except ValueError:
            continue
        if key not in seen:
            seen.append(key)
    if not seen:
        return DEFAULT_PANEL_ORDER
    for key in PANEL_KEYS:
        if key not in seen:
            seen.append(key)
    return tuple(seen)


@dataclass(slots=True, frozen=True)
class WallboardPreset:
    slug: str = DEFAULT_PRESET_SLUG
    panel_order: tuple[PanelKey, ...] = DEFAULT_PANEL_ORDER
    panel_durations: dict[PanelKey, int] = field(
        default_factory=lambda: {key: DEFAULT_DWELL_SECONDS for key in PANEL_KEYS}
    )
    rotation_fallback_seconds: int = DEFAULT_DWELL_SECONDS
    highlight_ttl_seconds: int = DEFAULT_HIGHLIGHT_TTL_SECONDS
    ticker_poll_interval_seconds: int = DEFAULT_TICKER_SECONDS

    def duration_for(self, panel: PanelKey) -> int:
        return self.panel_durations.get(panel, self.rotation_fallback_seconds)

    @property
    def is_calendar_only(self) -> bool:
        return self.panel_order == (PanelKey.CALENDAR,)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "panel_order": [key.value for key in self.panel_order],
            "panel_durations": {key.value: seconds for key, seconds in self.panel_durations.items()},
            "rotation_fallback_seconds": self.rotation_fallback_seconds,
            "highlight_ttl_seconds": self.highlight_ttl_seconds,
            "ticker_poll_interval_seconds": self.ticker_poll_interval_seconds,
        }


def _durations(values: Mapping[PanelKey, int]) -> dict[PanelKey, int]:
    return {key: values.get(key, DEFAULT_DWELL_SECONDS) for key in PANEL_KEYS}


BUILTIN_PRESETS: dict[str, WallboardPreset] = {
    "produccion": WallboardPreset(
        slug="produccion",
        panel_order=(PanelKey.CALENDAR,),
        panel_durations=_durations(
            {
                PanelKey.OVERVIEW: 12,
                PanelKey.CREW: 12,
                PanelKey.LOGISTICS: 12,
                PanelKey.PENDING: 12,
                PanelKey.CALENDAR: 600,
            }
        ),
        rotation_fallback_seconds=600,
    ),
    "almacen": WallboardPreset(
        slug="almacen",
        panel_order=(PanelKey.LOGISTICS, PanelKey.OVERVIEW, PanelKey.CALENDAR),
        panel_durations=_durations(
            {
                PanelKey.OVERVIEW: 15,
                PanelKey.CREW: 12,
                PanelKey.LOGISTICS: 15,
                PanelKey.PENDING: 12,
                PanelKey.CALENDAR: 30,
            }
        ),
        rotation_fallback_seconds=15,
    ),
    "oficinas": WallboardPreset(
        slug="oficinas",
        panel_order=PANEL_KEYS,
        panel_durations=_durations(
            {
                PanelKey.OVERVIEW: 15,
                PanelKey.CREW: 15,
                PanelKey.LOGISTICS: 15,
                PanelKey.PENDING: 10,
                PanelKey.CALENDAR: 30,
            }
        ),
        rotation_fallback_seconds=15,
    ),
}


def default_preset(slug: str) -> WallboardPreset:
    if slug == KIOSK_PRESET_SLUG:
        return WallboardPreset(
            slug=slug,
            panel_order=(PanelKey.CALENDAR,),
            panel_durations={**_durations({}), PanelKey.CALENDAR: 30},
            rotation_fallback_seconds=30,
        )
    return WallboardPreset(slug=slug)


def fallback_message(slug: str) -> str:
    if slug == KIOSK_PRESET_SLUG:
        return KIOSK_FALLBACK_MESSAGE
    if slug == DEFAULT_PRESET_SLUG:
        return "Using default wallboard preset."
    return f'Using default wallboard preset (missing "{slug}").'


def preset_from_record(record: PresetRecord) -> WallboardPreset:
    fallback = coerce_seconds(record.rotation_fallback_seconds, DEFAULT_DWELL_SECONDS, *DWELL_BOUNDS)
    raw_durations = record.panel_durations or {}
    durations: dict[PanelKey, int] = {}
    for key in PANEL_KEYS:
        durations[key] = coerce_seconds(raw_durations.get(key.value), fallback, *DWELL_BOUNDS)

    order = normalise_panel_order(record.panel_order)

    return WallboardPreset(
        slug=record.slug,
        panel_order=order,
        panel_durations=durations,
        rotation_fallback_seconds=fallback,
        highlight_ttl_seconds=coerce_seconds(
            record.highlight_ttl_seconds, DEFAULT_HIGHLIGHT_TTL_SECONDS, *HIGHLIGHT_TTL_BOUNDS
        ),
        ticker_poll_interval_seconds=coerce_seconds(
            record.ticker_poll_interval_seconds, DEFAULT_TICKER_SECONDS, *TICKER_BOUNDS
        ),
    )


def resolve_preset(record: PresetRecord | None, slug: str) -> tuple[WallboardPreset, str | None]:
    """Turn a stored preset row into a usable preset plus an optional notice."""
    if record is None:
        builtin = BUILTIN_PRESETS.get(slug)
        if builtin is not None and slug != KIOSK_PRESET_SLUG:
            log.info("Preset row missing, using built-in preset slug=%s", slug)
            return builtin, None
        log.warning("Preset row missing, using default preset slug=%s", slug)
        return default_preset(slug), fallback_message(slug)
    preset = preset_from_record(record)
    log.info(
        "Preset resolved slug=%s panels=%s fallback=%s ttl=%s ticker=%s",
        preset.slug,
        ",".join(key.value for key in preset.panel_order),
        preset.rotation_fallback_seconds,
        preset.highlight_ttl_seconds,
        preset.ticker_poll_interval_seconds,
    )
    return preset, None
