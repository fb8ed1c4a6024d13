from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wallboard.bootstrap import WallboardRuntime, build_runtime
from wallboard.config import settings
from wallboard.infrastructure.realtime.ws_server import WebSocketServerAdapter
from wallboard.presentation.api.http import build_http_router
from wallboard.presentation.api.ws import WsRuntime, build_ws_router

log = logging.getLogger(__name__)


def create_app(runtime: WallboardRuntime | None = None) -> FastAPI:
    runtime = runtime or build_runtime()
    ws_server = WebSocketServerAdapter()
    ws_runtime = WsRuntime(runtime.event_bus, ws_server, queue_size=settings.event_queue_size)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await ws_runtime.start()
        await runtime.start()
        log.info("HTTP app ready preset=%s", runtime.service.preset.slug)
        try:
            yield
        finally:
            await runtime.stop()
            await ws_runtime.stop()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(build_http_router(runtime.service))
    app.include_router(build_ws_router(ws_server, runtime.service))
    return app
