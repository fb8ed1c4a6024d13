from __future__ import annotations

from enum import StrEnum


class PanelKey(StrEnum):
    OVERVIEW = "overview"
    CREW = "crew"
    LOGISTICS = "logistics"
    PENDING = "pending"
    CALENDAR = "calendar"


PANEL_KEYS: tuple[PanelKey, ...] = tuple(PanelKey)
DEFAULT_PANEL_ORDER: tuple[PanelKey, ...] = PANEL_KEYS
