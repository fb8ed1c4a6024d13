from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from wallboard.domain.models.announcement import TickerMessage
from wallboard.domain.models.panel import PanelKey
from wallboard.domain.models.resources import WatchedResource


@dataclass(slots=True, frozen=True)
class ResourceChanged:
    resource: WatchedResource
    changed_at: datetime
    version: int | None = None


@dataclass(slots=True, frozen=True)
class RenderState:
    """Everything a display needs to draw the current frame."""

    panel: PanelKey
    page: int
    page_count: int
    panel_order: tuple[PanelKey, ...]
    highlight_ids: frozenset[str]
    ticker: tuple[TickerMessage, ...]
    feeds: dict[str, Any] | None
    logistics: list[dict[str, Any]] | None
    calendar: list[dict[str, Any]] | None
    calendar_scroll_speed: float
    preset_slug: str
    preset_message: str | None = None
    reason: str = "tick"
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "RenderState",
            "reason": self.reason,
            "panel": self.panel.value,
            "page": self.page,
            "page_count": self.page_count,
            "panel_order": [key.value for key in self.panel_order],
            "highlight_ids": sorted(self.highlight_ids),
            "ticker": [item.to_dict() for item in self.ticker],
            "feeds": self.feeds,
            "logistics": self.logistics,
            "calendar": self.calendar,
            "calendar_scroll_speed": self.calendar_scroll_speed,
            "preset_slug": self.preset_slug,
            "preset_message": self.preset_message,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class AccessDenied:
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"type": "AccessDenied", "message": self.message}
