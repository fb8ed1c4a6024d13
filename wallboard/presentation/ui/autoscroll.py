from __future__ import annotations

import logging
import time
from typing import Hashable

from PySide6.QtCore import QObject, QTimer
from PySide6.QtWidgets import QScrollBar

from wallboard.application.state.autoscroll import AutoScrollController

log = logging.getLogger(__name__)


class ScrollBarSurface:
    def __init__(self, scroll_bar: QScrollBar) -> None:
        self._scroll_bar = scroll_bar

    def max_scroll(self) -> float:
        return float(self._scroll_bar.maximum() - self._scroll_bar.minimum())

    def scroll_to(self, position: float) -> None:
        self._scroll_bar.setValue(self._scroll_bar.minimum() + int(round(position)))


class AutoScrollDriver(QObject):
    """Frame timer that feeds the visible panel's scroll bar to the controller."""

    def __init__(self, *, speed: float, pause_seconds: float, frame_ms: int, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._controller = AutoScrollController(speed, pause_seconds)
        self._surface: ScrollBarSurface | None = None
        self._timer = QTimer(self)
        self._timer.setInterval(frame_ms)
        self._timer.timeout.connect(self._on_frame)

    @property
    def controller(self) -> AutoScrollController:
        return self._controller

    def attach(self, scroll_bar: QScrollBar | None, key: Hashable, speed: float) -> None:
        if scroll_bar is None:
            self._surface = None
            self._timer.stop()
            return
        self._surface = ScrollBarSurface(scroll_bar)
        if self._controller.reset(key, speed):
            scroll_bar.setValue(scroll_bar.minimum())
        if not self._timer.isActive():
            self._timer.start()
        log.debug("Autoscroll attached key=%s speed=%s", key, speed)

    def stop(self) -> None:
        self._timer.stop()
        self._surface = None

    def _on_frame(self) -> None:
        if self._surface is None:
            return
        self._controller.drive(time.monotonic(), self._surface)
