from __future__ import annotations

import logging
from typing import Hashable, Protocol

log = logging.getLogger(__name__)

MAX_FRAME_GAP_SECONDS = 1.0


class ScrollSurface(Protocol):
    def max_scroll(self) -> float: ...

    def scroll_to(self, position: float) -> None: ...


class AutoScrollController:
    """Ping-pong vertical scroll for overflowing panels.

    Moves ``speed`` px/s, clamps at either end, holds there for
    ``pause_seconds`` and then reverses. Time is supplied by the caller in
    monotonic seconds.
    """

    def __init__(self, speed: float, pause_seconds: float = 1.0) -> None:
        self._speed = float(speed)
        self._pause_seconds = float(pause_seconds)
        self._reset_key: Hashable | None = None
        self._position = 0.0
        self._direction = 1
        self._paused_until: float | None = None
        self._last_time: float | None = None

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def position(self) -> float:
        return self._position

    @property
    def direction(self) -> int:
        return self._direction

    @property
    def paused(self) -> bool:
        return self._paused_until is not None

    def reset(self, key: Hashable | None = None, speed: float | None = None) -> bool:
        """Return to the top when the reset key or the speed changes."""
        new_speed = self._speed if speed is None else float(speed)
        if key == self._reset_key and new_speed == self._speed:
            return False
        self._reset_key = key
        self._speed = new_speed
        self.restart()
        log.debug("Autoscroll reset key=%s speed=%s", key, new_speed)
        return True

    def restart(self) -> None:
        self._position = 0.0
        self._direction = 1
        self._paused_until = None
        self._last_time = None

    def tick(self, now: float, max_scroll: float) -> float | None:
        """Advance one frame; return the new position, or None if unchanged."""
        last_time, self._last_time = self._last_time, now
        if last_time is None:
            return None
        dt = now - last_time
        if dt <= 0 or dt > MAX_FRAME_GAP_SECONDS:
            return None

        if self._paused_until is not None:
            if now < self._paused_until:
                return None
            self._paused_until = None
            self._direction = -self._direction

        if max_scroll <= 0:
            return None

        position = self._position + self._direction * self._speed * dt
        if self._direction > 0 and position >= max_scroll:
            position = max_scroll
            self._paused_until = now + self._pause_seconds
        elif self._direction < 0 and position <= 0:
            position = 0.0
            self._paused_until = now + self._pause_seconds
        self._position = position
        return position

    def drive(self, now: float, surface: ScrollSurface) -> None:
        position = self.tick(now, surface.max_scroll())
        if position is not None:
            surface.scroll_to(position)
