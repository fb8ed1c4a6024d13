from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from wallboard.application.services.wallboard_service import WallboardService
from wallboard.application.use_cases.build_calendar import DAY_LABELS, month_label

log = logging.getLogger(__name__)


class PresetRequest(BaseModel):
    slug: str = Field(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_\-]+$")


def build_http_router(service: WallboardService) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health() -> dict:
        log.debug("HTTP GET /health")
        status = service.status()
        return {"status": "denied" if status.fatal_error else "ok", **status.to_dict()}

    @router.get("/state")
    async def state() -> dict:
        log.debug("HTTP GET /state")
        _ensure_access(service)
        return service.render_state("http").to_dict()

    @router.get("/calendar")
    async def calendar() -> dict:
        log.debug("HTTP GET /calendar")
        _ensure_access(service)
        feeds = service.feeds
        cells = service.calendar_cells()
        return {
            "month": month_label(feeds.calendar.window) if feeds is not None else None,
            "day_labels": list(DAY_LABELS),
            "cells": [cell.to_dict() for cell in cells],
        }

    @router.post("/refresh")
    async def manual_refresh() -> dict:
        log.info("HTTP POST /refresh")
        state = await service.manual_refresh()
        _ensure_access(service)
        return state.to_dict()

    @router.post("/preset")
    async def apply_preset(req: PresetRequest) -> dict:
        log.info("HTTP POST /preset slug=%s", req.slug)
        preset = await service.load_preset(req.slug)
        return preset.to_dict()

    return router


def _ensure_access(service: WallboardService) -> None:
    if service.fatal_error is not None:
        raise HTTPException(status_code=403, detail=service.fatal_error)
