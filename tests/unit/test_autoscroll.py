from __future__ import annotations

import pytest

from wallboard.application.state.autoscroll import AutoScrollController


class _Surface:
    def __init__(self, max_scroll: float) -> None:
        self._max = max_scroll
        self.positions: list[float] = []

    def max_scroll(self) -> float:
        return self._max

    def scroll_to(self, position: float) -> None:
        self.positions.append(position)


def test_first_tick_only_records_time() -> None:
    controller = AutoScrollController(speed=50)
    assert controller.tick(10.0, 500) is None
    assert controller.tick(10.5, 500) == pytest.approx(25.0)


def test_frames_with_bad_gaps_are_skipped() -> None:
    controller = AutoScrollController(speed=50)
    controller.tick(10.0, 500)
    assert controller.tick(10.0, 500) is None
    assert controller.tick(12.0, 500) is None
    assert controller.tick(12.2, 500) == pytest.approx(10.0)


def test_ping_pong_with_pause_at_each_end() -> None:
    controller = AutoScrollController(speed=100, pause_seconds=1.0)
    controller.tick(0.0, 60)
    assert controller.tick(0.5, 60) == pytest.approx(50.0)
    assert controller.tick(0.9, 60) == pytest.approx(60.0)
    assert controller.paused

    assert controller.tick(1.5, 60) is None
    assert controller.tick(2.0, 60) == pytest.approx(10.0)
    assert controller.direction == -1
    assert not controller.paused
    assert controller.tick(2.3, 60) == pytest.approx(0.0)
    assert controller.paused

    assert controller.tick(3.0, 60) is None
    assert controller.tick(3.5, 60) == pytest.approx(50.0)
    assert controller.direction == 1


def test_nothing_to_scroll() -> None:
    controller = AutoScrollController(speed=50)
    controller.tick(0.0, 0)
    assert controller.tick(0.1, 0) is None
    assert controller.position == 0.0


def test_reset_on_key_or_speed_change() -> None:
    controller = AutoScrollController(speed=50)
    assert controller.reset(("calendar", 0), 20) is True
    controller.tick(0.0, 400)
    controller.tick(0.5, 400)
    assert controller.position == pytest.approx(10.0)

    assert controller.reset(("calendar", 0), 20) is False
    assert controller.position == pytest.approx(10.0)

    assert controller.reset(("overview", 0), 20) is True
    assert controller.position == 0.0
    assert controller.reset(("overview", 0), 50) is True
    assert controller.speed == 50


def test_drive_moves_the_surface() -> None:
    controller = AutoScrollController(speed=40)
    surface = _Surface(100)
    controller.drive(1.0, surface)
    controller.drive(1.25, surface)
    assert surface.positions == [pytest.approx(10.0)]
