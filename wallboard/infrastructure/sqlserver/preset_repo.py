from __future__ import annotations

import json
import logging
from typing import Any

from wallboard.config import settings
from wallboard.domain.models.records import PresetRecord
from wallboard.infrastructure.sqlserver.connection import SQLServerConnection

log = logging.getLogger(__name__)


class PresetRepo:
    def __init__(self, connection: SQLServerConnection) -> None:
        self._conn = connection
        self._table = SQLServerConnection.table_name(settings.sql_schema, "wallboard_presets")

    async def load_preset(self, slug: str) -> PresetRecord | None:
        query = (
            "SELECT TOP 1 slug, panel_order, panel_durations, rotation_fallback_seconds, "
            "highlight_ttl_seconds, ticker_poll_interval_seconds "
            f"FROM {self._table} WHERE slug = ?"
        )
        rows = await self._conn.query_rows(query, [slug])
        if not rows:
            log.info("Preset row not found slug=%s", slug)
            return None
        row = rows[0]
        order = _parse_json(row.get("panel_order"))
        durations = _parse_json(row.get("panel_durations"))
        return PresetRecord(
            slug=str(row.get("slug") or slug),
            panel_order=[str(item) for item in order] if isinstance(order, list) else None,
            panel_durations=durations if isinstance(durations, dict) else {},
            rotation_fallback_seconds=row.get("rotation_fallback_seconds"),
            highlight_ttl_seconds=row.get("highlight_ttl_seconds"),
            ticker_poll_interval_seconds=row.get("ticker_poll_interval_seconds"),
        )


def _parse_json(value: Any) -> Any | None:
    if isinstance(value, (dict, list)):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        log.debug("Preset column is not valid JSON preview=%s", text[:80])
        return None
