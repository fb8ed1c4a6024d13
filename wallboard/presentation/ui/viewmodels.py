from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from PySide6.QtCore import QAbstractTableModel, QModelIndex, QObject, Qt, QTimer, Signal, Slot
from PySide6.QtGui import QBrush, QColor, QFont

from wallboard.application.use_cases.build_calendar import DAY_LABELS, month_name
from wallboard.config import settings
from wallboard.domain.models.panel import PanelKey
from wallboard.presentation.ui.mapper import (
    calendar_cell_text,
    calendar_weeks,
    crew_rows,
    logistics_row,
    next_cell_offset,
    overview_row,
    page_slice,
    panel_title,
    parse_date,
    pending_row,
    ticker_level,
    ticker_text,
)

log = logging.getLogger(__name__)

_HIGHLIGHT_COLOR = "#fde68a"
_TODAY_COLOR = "#dbeafe"
_OUT_OF_MONTH_COLOR = "#f3f4f6"


@dataclass(slots=True, frozen=True)
class RowVM:
    id: str
    cells: tuple[str, ...]
    background: str | None
    highlighted: bool

    @classmethod
    def from_payload(cls, payload: dict[str, Any], highlight_ids: set[str]) -> "RowVM":
        return cls(
            id=str(payload.get("id", "")),
            cells=tuple(str(cell) for cell in payload.get("cells", ())),
            background=payload.get("background"),
            highlighted=str(payload.get("id", "")) in highlight_ids,
        )


class RowsTableModel(QAbstractTableModel):
    def __init__(self, headers: list[str]) -> None:
        super().__init__()
        self._headers = headers
        self._rows: list[RowVM] = []

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self._headers)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:  # noqa: N802
        if not index.isValid():
            return None
        row = index.row()
        col = index.column()
        if row < 0 or row >= len(self._rows):
            return None
        item = self._rows[row]
        if role == Qt.ItemDataRole.DisplayRole:
            return item.cells[col] if col < len(item.cells) else ""
        if role == Qt.ItemDataRole.BackgroundRole:
            if item.highlighted:
                return QBrush(QColor(_HIGHLIGHT_COLOR))
            if item.background:
                return QBrush(QColor(item.background))
            return None
        if role == Qt.ItemDataRole.FontRole and item.highlighted:
            font = QFont()
            font.setBold(True)
            return font
        return None

    def headerData(  # noqa: N802
        self,
        section: int,
        orientation: Qt.Orientation,
        role: int = Qt.ItemDataRole.DisplayRole,
    ) -> Any:
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            if 0 <= section < len(self._headers):
                return self._headers[section]
            return None
        return section + 1

    def replace_all(self, payload_rows: list[dict[str, Any]], highlight_ids: set[str]) -> None:
        items = [RowVM.from_payload(row, highlight_ids) for row in payload_rows]
        if items == self._rows:
            return
        self.beginResetModel()
        self._rows = items
        self.endResetModel()

    def row_ids(self) -> list[str]:
        return [row.id for row in self._rows]


@dataclass(slots=True, frozen=True)
class CalendarCellVM:
    key: str
    payload: dict[str, Any]
    job_ids: tuple[str, ...]
    in_month: bool
    is_today: bool
    has_highlight: bool


class CalendarTableModel(QAbstractTableModel):
    """Month grid whose busy days cycle through their jobs a few at a time."""

    def __init__(self, day_labels: list[str], rotate_ms: int = 5000) -> None:
        super().__init__()
        self._day_labels = day_labels
        self._weeks: list[list[CalendarCellVM]] = []
        self._offsets: dict[str, int] = {}
        self._rotate_timer = QTimer(self)
        self._rotate_timer.setInterval(rotate_ms)
        self._rotate_timer.timeout.connect(self.rotate_cells)
        self._rotate_timer.start()

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self._weeks)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self._day_labels)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:  # noqa: N802
        if not index.isValid():
            return None
        row = index.row()
        col = index.column()
        if row < 0 or row >= len(self._weeks) or col >= len(self._weeks[row]):
            return None
        cell = self._weeks[row][col]
        if role == Qt.ItemDataRole.DisplayRole:
            return calendar_cell_text(cell.payload, offset=self._offsets.get(cell.key, 0))
        if role == Qt.ItemDataRole.TextAlignmentRole:
            return Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop
        if role == Qt.ItemDataRole.BackgroundRole:
            if cell.has_highlight:
                return QBrush(QColor(_HIGHLIGHT_COLOR))
            if cell.is_today:
                return QBrush(QColor(_TODAY_COLOR))
            if not cell.in_month:
                return QBrush(QColor(_OUT_OF_MONTH_COLOR))
            return None
        if role == Qt.ItemDataRole.ForegroundRole and not cell.in_month:
            return QBrush(QColor("#9ca3af"))
        return None

    def headerData(  # noqa: N802
        self,
        section: int,
        orientation: Qt.Orientation,
        role: int = Qt.ItemDataRole.DisplayRole,
    ) -> Any:
        if role != Qt.ItemDataRole.DisplayRole or orientation != Qt.Orientation.Horizontal:
            return None
        if 0 <= section < len(self._day_labels):
            return self._day_labels[section]
        return None

    def replace_all(self, cells: list[dict[str, Any]]) -> None:
        weeks = [
            [
                CalendarCellVM(
                    key=str(cell.get("date") or ""),
                    payload=cell,
                    job_ids=tuple(str(job.get("id")) for job in cell.get("jobs") or []),
                    in_month=bool(cell.get("in_month")),
                    is_today=bool(cell.get("is_today")),
                    has_highlight=bool(cell.get("has_highlight")),
                )
                for cell in week
            ]
            for week in calendar_weeks(cells)
        ]
        if weeks == self._weeks:
            return
        previous = {cell.key: cell.job_ids for week in self._weeks for cell in week}
        # A day keeps its slice only while its jobs are unchanged.
        self._offsets = {
            cell.key: self._offsets[cell.key]
            for week in weeks
            for cell in week
            if cell.key in self._offsets and previous.get(cell.key) == cell.job_ids
        }
        self.beginResetModel()
        self._weeks = weeks
        self.endResetModel()

    @Slot()
    def rotate_cells(self) -> None:
        for row, week in enumerate(self._weeks):
            for col, cell in enumerate(week):
                current = self._offsets.get(cell.key, 0)
                following = next_cell_offset(current, len(cell.job_ids))
                if following == current:
                    continue
                self._offsets[cell.key] = following
                index = self.index(row, col)
                self.dataChanged.emit(index, index, [Qt.ItemDataRole.DisplayRole])


class WallboardViewModel(QObject):
    updated = Signal(object)
    panel_changed = Signal(str)
    access_denied = Signal(str)

    def __init__(self) -> None:
        super().__init__()
        self.overview_model = RowsTableModel(["Job", "When", "Location", "Crew", "Docs"])
        self.crew_model = RowsTableModel(["Job", "When", "Name", "Dept", "Role", "Timesheet"])
        self.logistics_model = RowsTableModel(["When", "Title", "Transport", "Procedure", "Bay", "Depts"])
        self.pending_model = RowsTableModel(["Severity", "Action"])
        self.calendar_model = CalendarTableModel(list(DAY_LABELS), rotate_ms=settings.calendar_cell_rotate_ms)
        self.page_sizes: dict[str, int] = {
            PanelKey.OVERVIEW.value: settings.overview_page_size,
            PanelKey.CREW.value: settings.crew_page_size,
            PanelKey.LOGISTICS.value: settings.logistics_page_size,
        }
        self._panel = PanelKey.OVERVIEW.value
        self._page = 0
        self._page_count = 1
        self._ticker_text = ""
        self._ticker_level = "info"
        self._preset_slug = ""
        self._preset_message: str | None = None
        self._month_label = ""
        self._calendar_speed = float(settings.autoscroll_speed_px)
        self._denied_message: str | None = None

    @property
    def panel(self) -> str:
        return self._panel

    @property
    def denied_message(self) -> str | None:
        return self._denied_message

    @property
    def calendar_scroll_speed(self) -> float:
        return self._calendar_speed

    @Slot(object)
    def on_event(self, payload: dict[str, Any]) -> None:
        event_type = str(payload.get("type", ""))
        log.debug("WallboardViewModel event received type=%s", event_type)
        if event_type == "RenderState":
            self._apply_render_state(payload)
        elif event_type == "AccessDenied":
            self._denied_message = str(payload.get("message") or "Access denied")
            log.error("WallboardViewModel access denied message=%s", self._denied_message)
            self.access_denied.emit(self._denied_message)
        else:
            log.debug("WallboardViewModel ignored unknown event type=%s", event_type)
            return
        self.updated.emit(self.summary())

    def summary(self) -> dict[str, Any]:
        return {
            "panel": self._panel,
            "panel_title": panel_title(self._panel),
            "page": self._page,
            "page_count": self._page_count,
            "ticker_text": self._ticker_text,
            "ticker_level": self._ticker_level,
            "preset_slug": self._preset_slug,
            "preset_message": self._preset_message,
            "month_label": self._month_label,
            "calendar_scroll_speed": self._calendar_speed,
            "denied": self._denied_message is not None,
        }

    def _apply_render_state(self, payload: dict[str, Any]) -> None:
        previous_panel = self._panel
        self._panel = str(payload.get("panel") or PanelKey.OVERVIEW.value)
        self._page = int(payload.get("page") or 0)
        self._page_count = int(payload.get("page_count") or 1)
        ticker = payload.get("ticker") or []
        self._ticker_text = ticker_text(ticker)
        self._ticker_level = ticker_level(ticker)
        self._preset_slug = str(payload.get("preset_slug") or "")
        self._preset_message = payload.get("preset_message")
        self._calendar_speed = float(payload.get("calendar_scroll_speed") or settings.autoscroll_speed_px)
        highlight_ids = {str(item) for item in payload.get("highlight_ids") or []}

        feeds = payload.get("feeds")
        if feeds is not None:
            overview = (feeds.get("overview") or {}).get("jobs") or []
            self.overview_model.replace_all(
                [overview_row(job) for job in self._page_of(PanelKey.OVERVIEW.value, overview)],
                highlight_ids,
            )
            crew = (feeds.get("crew") or {}).get("jobs") or []
            self.crew_model.replace_all(
                [row for job in self._page_of(PanelKey.CREW.value, crew) for row in crew_rows(job)],
                highlight_ids,
            )
            pending = (feeds.get("pending") or {}).get("items") or []
            self.pending_model.replace_all([pending_row(item) for item in pending], highlight_ids)

        logistics = payload.get("logistics")
        if logistics is not None:
            self.logistics_model.replace_all(
                [logistics_row(item) for item in self._page_of(PanelKey.LOGISTICS.value, logistics)],
                highlight_ids,
            )

        calendar = payload.get("calendar")
        if calendar is not None:
            self.calendar_model.replace_all(calendar)
            self._month_label = _month_label(calendar)

        if self._panel != previous_panel:
            self.panel_changed.emit(self._panel)
        log.debug(
            "WallboardViewModel render applied panel=%s page=%s/%s reason=%s",
            self._panel,
            self._page + 1,
            self._page_count,
            payload.get("reason"),
        )

    def _page_of(self, panel: str, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        page = self._page if panel == self._panel else 0
        return page_slice(items, page, self.page_sizes.get(panel, 0))


def _month_label(cells: list[dict[str, Any]]) -> str:
    for cell in cells:
        if cell.get("in_month"):
            day = parse_date(cell.get("date"))
            if day is not None:
                return month_name(day.year, day.month)
    return ""
