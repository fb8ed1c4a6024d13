from __future__ import annotations

import argparse
import asyncio
import contextlib
import faulthandler
import logging
import logging.handlers
import os
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

import uvicorn
from PySide6.QtCore import QObject, Qt, QTimer, Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QFrame,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QMainWindow,
    QStackedWidget,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from wallboard.bootstrap import SystemClock, build_runtime
from wallboard.config import settings
from wallboard.domain.events import AccessDenied, RenderState
from wallboard.domain.models.panel import PanelKey
from wallboard.presentation.api.app import create_app
from wallboard.presentation.ui.autoscroll import AutoScrollDriver
from wallboard.presentation.ui.viewmodels import WallboardViewModel

log = logging.getLogger(__name__)

_TICKER_STYLES = {
    "info": "background: #1e293b; color: #f8fafc;",
    "warn": "background: #b45309; color: #ffffff;",
    "critical": "background: #b91c1c; color: #ffffff;",
}


def _configure_logging() -> None:
    level_name = settings.log_level.upper().strip() or "INFO"
    level = getattr(logging, level_name, logging.INFO)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    if settings.log_to_console:
        console_handler = logging.StreamHandler(stream=sys.stdout)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    log_path = settings.log_file.strip()
    if log_path:
        path = Path(log_path)
        if not path.is_absolute():
            path = Path.cwd() / path
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=path,
            maxBytes=20 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.captureWarnings(True)
    log.info(
        "Logging configured level=%s console=%s file=%s",
        level_name,
        settings.log_to_console,
        log_path or "<disabled>",
    )


def _install_crash_hooks() -> None:
    def _global_excepthook(exc_type, exc_value, exc_traceback) -> None:
        log.critical("Unhandled exception on main thread", exc_info=(exc_type, exc_value, exc_traceback))

    def _thread_excepthook(args) -> None:
        log.critical(
            "Unhandled exception on thread=%s",
            args.thread.name if args.thread else "<unknown>",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    sys.excepthook = _global_excepthook
    threading.excepthook = _thread_excepthook
    with contextlib.suppress(Exception):
        faulthandler.enable(all_threads=True)


class _UiBridge(QObject):
    event_ready = Signal(object)


class _Runtime:
    """Runs the wallboard's asyncio loop on a worker thread beside the Qt loop."""

    def __init__(self, bridge: _UiBridge, *, preset_slug: str, boot_timeout: float = 20.0) -> None:
        self._bridge = bridge
        self._preset_slug = preset_slug
        self._boot_timeout = boot_timeout
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._shutdown: asyncio.Event | None = None
        self._booted = threading.Event()
        self._boot_error: BaseException | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            log.warning("Wallboard thread already running preset=%s", self._preset_slug)
            return
        self._booted.clear()
        self._boot_error = None
        self._thread = threading.Thread(target=self._thread_main, name="wallboard-runtime", daemon=True)
        self._thread.start()
        if not self._booted.wait(timeout=self._boot_timeout):
            raise TimeoutError(f"Wallboard thread did not boot within {self._boot_timeout}s")
        if self._boot_error is not None:
            raise RuntimeError("Wallboard thread failed to boot") from self._boot_error
        log.info("Wallboard thread booted preset=%s", self._preset_slug)

    def stop(self, timeout: float = 30.0) -> None:
        thread, self._thread = self._thread, None
        if thread is None:
            return
        loop, shutdown = self._loop, self._shutdown
        if loop is not None and shutdown is not None:
            loop.call_soon_threadsafe(shutdown.set)
        thread.join(timeout=timeout)
        if thread.is_alive():
            log.warning("Wallboard thread still alive after timeout_seconds=%s", timeout)
        else:
            log.info("Wallboard thread stopped")

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._serve())
        except BaseException as exc:  # noqa: BLE001
            self._boot_error = exc
            log.exception("Wallboard thread crashed")
            self._booted.set()
        finally:
            loop.close()
            self._loop = None

    async def _serve(self) -> None:
        runtime = build_runtime(SystemClock(), preset_slug=self._preset_slug)
        frames = await runtime.event_bus.subscribe(maxsize=settings.event_queue_size)
        forward = asyncio.create_task(self._forward_frames(frames), name="wallboard-ui-frames")
        self._shutdown = asyncio.Event()
        self._booted.set()
        try:
            await runtime.start()
            await self._shutdown.wait()
        finally:
            log.info("Wallboard shutting down")
            with contextlib.suppress(Exception):
                await runtime.stop()
            forward.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await forward
            with contextlib.suppress(Exception):
                await runtime.event_bus.unsubscribe(frames)

    async def _forward_frames(self, frames: asyncio.Queue[Any]) -> None:
        # Only immutable dicts cross into the Qt thread.
        while True:
            event = await frames.get()
            if isinstance(event, (RenderState, AccessDenied)):
                self._bridge.event_ready.emit(event.to_dict())


def _make_table(model: Any, parent: QWidget) -> QTableView:
    view = QTableView(parent)
    view.setModel(model)
    view.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
    view.setSelectionMode(QAbstractItemView.SelectionMode.NoSelection)
    view.setFocusPolicy(Qt.FocusPolicy.NoFocus)
    view.setVerticalScrollMode(QAbstractItemView.ScrollMode.ScrollPerPixel)
    view.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
    view.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
    view.setWordWrap(True)
    view.verticalHeader().setVisible(False)
    view.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
    view.verticalHeader().setSectionResizeMode(QHeaderView.ResizeMode.ResizeToContents)
    return view


class _MainWindow(QMainWindow):
    def __init__(self, vm: WallboardViewModel) -> None:
        super().__init__()
        self._vm = vm
        self.setWindowTitle(settings.app_name)
        self.resize(1920, 1080)
        self._apply_styles()

        root = QWidget(self)
        layout = QVBoxLayout(root)
        layout.setContentsMargins(16, 12, 16, 12)
        layout.setSpacing(10)

        header = QFrame(self)
        header.setObjectName("header")
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(12, 8, 12, 8)
        self._title = QLabel("", self)
        self._title.setObjectName("panelTitle")
        self._page_label = QLabel("", self)
        self._page_label.setObjectName("pageLabel")
        self._clock = QLabel("", self)
        self._clock.setObjectName("clockLabel")
        header_layout.addWidget(self._title)
        header_layout.addWidget(self._page_label)
        header_layout.addStretch(1)
        header_layout.addWidget(self._clock)
        layout.addWidget(header)

        self._preset_banner = QLabel("", self)
        self._preset_banner.setObjectName("presetBanner")
        self._preset_banner.setVisible(False)
        layout.addWidget(self._preset_banner)

        self._stack = QStackedWidget(self)
        self._views: dict[str, QTableView] = {
            PanelKey.OVERVIEW.value: _make_table(vm.overview_model, self),
            PanelKey.CREW.value: _make_table(vm.crew_model, self),
            PanelKey.LOGISTICS.value: _make_table(vm.logistics_model, self),
            PanelKey.PENDING.value: _make_table(vm.pending_model, self),
            PanelKey.CALENDAR.value: _make_table(vm.calendar_model, self),
        }
        for view in self._views.values():
            self._stack.addWidget(view)
        self._denied = QLabel("", self)
        self._denied.setObjectName("deniedScreen")
        self._denied.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._denied.setWordWrap(True)
        self._stack.addWidget(self._denied)
        layout.addWidget(self._stack, 1)

        self._ticker = QLabel("", self)
        self._ticker.setObjectName("ticker")
        self._ticker.setVisible(False)
        layout.addWidget(self._ticker)
        self.setCentralWidget(root)

        self._autoscroll = AutoScrollDriver(
            speed=settings.autoscroll_speed_px,
            pause_seconds=settings.autoscroll_pause_seconds,
            frame_ms=settings.autoscroll_frame_ms,
            parent=self,
        )
        self._clock_timer = QTimer(self)
        self._clock_timer.setInterval(1000)
        self._clock_timer.timeout.connect(self._on_clock)
        self._clock_timer.start()
        self._on_clock()

        vm.updated.connect(self._on_updated)
        vm.access_denied.connect(self._on_access_denied)

    def _on_updated(self, payload: dict[str, Any]) -> None:
        if payload.get("denied"):
            return
        panel = str(payload.get("panel") or PanelKey.OVERVIEW.value)
        title = str(payload.get("panel_title") or "")
        if panel == PanelKey.CALENDAR.value and payload.get("month_label"):
            title = f"{title} - {payload['month_label']}"
        self._title.setText(title)
        page_count = int(payload.get("page_count") or 1)
        page = int(payload.get("page") or 0)
        self._page_label.setText(f"{page + 1}/{page_count}" if page_count > 1 else "")

        message = payload.get("preset_message")
        self._preset_banner.setText(str(message or ""))
        self._preset_banner.setVisible(bool(message))

        text = str(payload.get("ticker_text") or "")
        self._ticker.setText(text)
        self._ticker.setStyleSheet(_TICKER_STYLES.get(str(payload.get("ticker_level")), _TICKER_STYLES["info"]))
        self._ticker.setVisible(bool(text))

        view = self._views.get(panel)
        if view is None:
            log.warning("Unknown panel in render state panel=%s", panel)
            return
        if self._stack.currentWidget() is not view:
            self._stack.setCurrentWidget(view)
        speed = (
            float(payload.get("calendar_scroll_speed") or settings.autoscroll_speed_px)
            if panel == PanelKey.CALENDAR.value
            else settings.autoscroll_speed_px
        )
        self._autoscroll.attach(view.verticalScrollBar(), (panel, page), speed)

    def _on_access_denied(self, message: str) -> None:
        log.error("Showing access denied screen message=%s", message)
        self._autoscroll.stop()
        self._title.setText("Access denied")
        self._page_label.setText("")
        self._preset_banner.setVisible(False)
        self._ticker.setVisible(False)
        self._denied.setText(f"This display cannot read the schedule.\n\n{message}")
        self._stack.setCurrentWidget(self._denied)

    def _on_clock(self) -> None:
        self._clock.setText(datetime.now().strftime("%a %d/%m/%Y %H:%M"))

    def _apply_styles(self) -> None:
        self.setStyleSheet(
            """
            QMainWindow {
                background: #f3f5fb;
            }
            QFrame#header {
                background: #ffffff;
                border: 1px solid #d8dfec;
                border-radius: 12px;
            }
            QLabel#panelTitle {
                color: #0f172a;
                font-size: 30px;
                font-weight: 700;
            }
            QLabel#pageLabel {
                color: #64748b;
                font-size: 22px;
                padding-left: 12px;
            }
            QLabel#clockLabel {
                color: #334155;
                font-size: 24px;
                font-weight: 600;
            }
            QLabel#presetBanner {
                background: #fef3c7;
                color: #92400e;
                border-radius: 8px;
                padding: 6px 10px;
                font-size: 16px;
            }
            QTableView {
                background: #ffffff;
                border: 1px solid #d8dfec;
                border-radius: 12px;
                font-size: 18px;
                gridline-color: #e2e8f0;
            }
            QHeaderView::section {
                background: #e2e8f0;
                color: #0f172a;
                font-size: 16px;
                font-weight: 700;
                padding: 6px;
                border: none;
            }
            QLabel#deniedScreen {
                background: #7f1d1d;
                color: #ffffff;
                font-size: 32px;
                font-weight: 700;
                border-radius: 12px;
                padding: 40px;
            }
            QLabel#ticker {
                border-radius: 8px;
                padding: 10px 14px;
                font-size: 22px;
                font-weight: 600;
            }
            """
        )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="wallboard", description="Rotating status wallboard")
    parser.add_argument("--preset", default=settings.preset_slug, help="preset slug to display")
    parser.add_argument("--headless", action="store_true", help="serve HTTP/WebSocket displays instead of the kiosk window")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--windowed", action="store_true", help="do not go full screen")
    return parser.parse_args(argv)


def _run_headless(args: argparse.Namespace) -> int:
    app = create_app(build_runtime(SystemClock(), preset_slug=args.preset))
    log.info("Headless server starting host=%s port=%s preset=%s", args.host, args.port, args.preset)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging()
    _install_crash_hooks()
    log.info("Application starting pid=%s python=%s", os.getpid(), sys.version.split()[0])
    if args.headless:
        return _run_headless(args)

    app = QApplication(sys.argv[:1])

    vm = WallboardViewModel()
    bridge = _UiBridge()
    bridge.event_ready.connect(vm.on_event)

    runtime = _Runtime(bridge=bridge, preset_slug=args.preset)
    runtime.start()

    window = _MainWindow(vm=vm)
    if args.windowed:
        window.show()
    else:
        window.showFullScreen()
    try:
        exit_code = app.exec()
        log.info("Qt event loop exited code=%s", exit_code)
        return exit_code
    finally:
        runtime.stop()
        log.info("Application stopped")


if __name__ == "__main__":
    raise SystemExit(main())
