from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from wallboard.domain.events import AccessDenied, RenderState

log = logging.getLogger(__name__)


class WebSocketServerAdapter:
    """Browser displays connected to the wallboard feed."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._connections: set[WebSocket] = set()

    async def connect(self, ws: WebSocket, initial: dict[str, Any] | None = None) -> None:
        await ws.accept()
        if initial is not None:
            await ws.send_json(initial)
        async with self._lock:
            self._connections.add(ws)
            count = len(self._connections)
        log.info("Display connected client=%s displays=%s", ws.client, count)

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(ws)
            count = len(self._connections)
        log.info("Display disconnected client=%s displays=%s", ws.client, count)

    async def broadcast(self, payload: dict[str, Any]) -> None:
        async with self._lock:
            targets = list(self._connections)
        dead: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_json(payload)
            except Exception:  # noqa: BLE001
                dead.append(ws)
        if dead:
            async with self._lock:
                for ws in dead:
                    self._connections.discard(ws)
            log.info("Display broadcast dropped dead=%s", len(dead))

    async def event_pump(self, queue: asyncio.Queue[Any]) -> None:
        while True:
            event = await queue.get()
            payload = event_to_payload(event)
            if payload is None:
                continue
            await self.broadcast(payload)


def event_to_payload(event: Any) -> dict[str, Any] | None:
    if isinstance(event, (RenderState, AccessDenied)):
        return event.to_dict()
    return None
