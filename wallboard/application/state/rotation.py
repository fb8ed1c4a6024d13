from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from wallboard.domain.models.panel import DEFAULT_PANEL_ORDER, PanelKey

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZES: dict[PanelKey, int] = {
    PanelKey.OVERVIEW: 6,
    PanelKey.CREW: 4,
    PanelKey.LOGISTICS: 6,
}


def page_count(item_count: int, page_size: int | None) -> int:
    if not page_size or page_size <= 0:
        return 1
    return max(1, math.ceil(item_count / page_size))


@dataclass(slots=True, frozen=True)
class RotationPosition:
    panel: PanelKey
    index: int
    page: int
    page_count: int


class PanelRotation:
    """Which panel (and which page of it) is on screen.

    Pure state: the owner decides when to call ``advance``. Every read
    re-derives the index modulo the current order, so the index is valid
    whatever the order has become.
    """

    def __init__(
        self,
        panel_order: Iterable[PanelKey] = DEFAULT_PANEL_ORDER,
        *,
        durations: Mapping[PanelKey, int] | None = None,
        fallback_seconds: int = 12,
        page_sizes: Mapping[PanelKey, int] | None = None,
    ) -> None:
        self._order: tuple[PanelKey, ...] = tuple(panel_order) or DEFAULT_PANEL_ORDER
        self._durations: dict[PanelKey, int] = dict(durations or {})
        self._fallback_seconds = fallback_seconds
        self._page_sizes: dict[PanelKey, int] = dict(DEFAULT_PAGE_SIZES if page_sizes is None else page_sizes)
        self._index = 0
        self._pages: dict[PanelKey, int] = {}
        self._item_counts: dict[PanelKey, int] = {}

    @property
    def panel_order(self) -> tuple[PanelKey, ...]:
        return self._order

    @property
    def index(self) -> int:
        return self._index % len(self._order)

    @property
    def current_panel(self) -> PanelKey:
        return self._order[self.index]

    @property
    def current_page(self) -> int:
        panel = self.current_panel
        return min(self._pages.get(panel, 0), self.page_count_for(panel) - 1)

    def position(self) -> RotationPosition:
        panel = self.current_panel
        return RotationPosition(
            panel=panel,
            index=self.index,
            page=self.current_page,
            page_count=self.page_count_for(panel),
        )

    def page_count_for(self, panel: PanelKey) -> int:
        return page_count(self._item_counts.get(panel, 0), self._page_sizes.get(panel))

    def dwell_seconds(self) -> int | None:
        if len(self._order) == 1 and self.page_count_for(self._order[0]) <= 1:
            return None
        return self._durations.get(self.current_panel, self._fallback_seconds)

    def advance(self) -> RotationPosition:
        panel = self.current_panel
        page = self.current_page
        pages = self.page_count_for(panel)
        if page + 1 < pages:
            self._pages[panel] = page + 1
        else:
            self._pages[panel] = 0
            self._index = (self.index + 1) % len(self._order)
        position = self.position()
        log.debug(
            "Rotation advanced panel=%s page=%s/%s index=%s",
            position.panel.value,
            position.page + 1,
            position.page_count,
            position.index,
        )
        return position

    def set_panel_order(self, order: Iterable[PanelKey]) -> None:
        new_order = tuple(order) or DEFAULT_PANEL_ORDER
        self._order = new_order
        self._index = 0
        self._pages.clear()
        log.info("Rotation order set panels=%s", ",".join(key.value for key in new_order))

    def set_durations(self, durations: Mapping[PanelKey, int], fallback_seconds: int) -> None:
        self._durations = dict(durations)
        self._fallback_seconds = fallback_seconds

    def set_item_counts(self, counts: Mapping[PanelKey, int]) -> list[PanelKey]:
        """Record per-panel item counts and reset pages whose count changed."""
        reset: list[PanelKey] = []
        for panel, count in counts.items():
            if self._item_counts.get(panel) == count:
                continue
            self._item_counts[panel] = count
            if self._pages.get(panel, 0) != 0:
                reset.append(panel)
            self._pages[panel] = 0
        if reset:
            log.debug("Rotation pages reset panels=%s", ",".join(key.value for key in reset))
        return reset

    def reset(self) -> None:
        self._index = 0
        self._pages.clear()
