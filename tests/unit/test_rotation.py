from __future__ import annotations

from wallboard.application.state.rotation import PanelRotation, page_count
from wallboard.domain.models.panel import DEFAULT_PANEL_ORDER, PanelKey


def test_page_count() -> None:
    assert page_count(0, 6) == 1
    assert page_count(6, 6) == 1
    assert page_count(7, 6) == 2
    assert page_count(50, None) == 1


def test_single_panel_single_page_schedules_no_timer() -> None:
    rotation = PanelRotation((PanelKey.CALENDAR,), durations={PanelKey.CALENDAR: 30})
    assert rotation.dwell_seconds() is None


def test_single_panel_with_pages_keeps_rotating() -> None:
    rotation = PanelRotation((PanelKey.OVERVIEW,), durations={PanelKey.OVERVIEW: 10})
    rotation.set_item_counts({PanelKey.OVERVIEW: 13})
    assert rotation.dwell_seconds() == 10
    assert rotation.advance().page == 1
    assert rotation.advance().page == 2
    position = rotation.advance()
    assert (position.panel, position.page) == (PanelKey.OVERVIEW, 0)


def test_dwell_falls_back_when_panel_has_no_duration() -> None:
    rotation = PanelRotation(
        (PanelKey.OVERVIEW, PanelKey.CREW),
        durations={PanelKey.OVERVIEW: 20},
        fallback_seconds=9,
    )
    assert rotation.dwell_seconds() == 20
    rotation.advance()
    assert rotation.dwell_seconds() == 9


def test_advance_walks_pages_then_panels() -> None:
    rotation = PanelRotation((PanelKey.OVERVIEW, PanelKey.CREW, PanelKey.CALENDAR))
    rotation.set_item_counts({PanelKey.OVERVIEW: 8, PanelKey.CREW: 3})

    visited = [(rotation.current_panel, rotation.current_page)]
    for _ in range(4):
        position = rotation.advance()
        visited.append((position.panel, position.page))

    assert visited == [
        (PanelKey.OVERVIEW, 0),
        (PanelKey.OVERVIEW, 1),
        (PanelKey.CREW, 0),
        (PanelKey.CALENDAR, 0),
        (PanelKey.OVERVIEW, 0),
    ]


def test_changed_item_count_resets_that_panels_page() -> None:
    rotation = PanelRotation((PanelKey.OVERVIEW, PanelKey.CREW))
    rotation.set_item_counts({PanelKey.OVERVIEW: 20, PanelKey.CREW: 2})
    rotation.advance()
    assert rotation.current_page == 1

    assert rotation.set_item_counts({PanelKey.OVERVIEW: 20, PanelKey.CREW: 2}) == []
    assert rotation.current_page == 1

    assert rotation.set_item_counts({PanelKey.OVERVIEW: 19}) == [PanelKey.OVERVIEW]
    assert rotation.current_page == 0


def test_page_is_clamped_when_list_shrinks() -> None:
    rotation = PanelRotation((PanelKey.LOGISTICS,))
    rotation.set_item_counts({PanelKey.LOGISTICS: 13})
    rotation.advance()
    rotation.advance()
    assert rotation.current_page == 2
    rotation.set_item_counts({PanelKey.LOGISTICS: 2})
    assert rotation.position().page == 0
    assert rotation.position().page_count == 1


def test_set_panel_order_resets_index_and_pages() -> None:
    rotation = PanelRotation((PanelKey.OVERVIEW, PanelKey.CREW, PanelKey.PENDING))
    rotation.advance()
    rotation.advance()
    assert rotation.current_panel is PanelKey.PENDING

    rotation.set_panel_order((PanelKey.LOGISTICS, PanelKey.CALENDAR))
    assert rotation.current_panel is PanelKey.LOGISTICS
    assert rotation.index == 0

    rotation.set_panel_order(())
    assert rotation.panel_order == DEFAULT_PANEL_ORDER
