from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Iterable, Iterator
from typing import Any

import aioodbc
import pyodbc

from wallboard.config import Settings, settings
from wallboard.domain.errors import WallboardAccessError

log = logging.getLogger(__name__)
_DRIVER_VERSION_PATTERN = re.compile(r"^ODBC Driver (\d+) for SQL Server$", re.IGNORECASE)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ACCESS_SQLSTATES = frozenset({"28000", "28P01"})
_ACCESS_MARKERS = ("login failed", "permission was denied", "password has expired", "account is locked")
_LEGACY_DRIVER = "sql server"
_MAX_POOL_SIZE = 8
SLOW_QUERY_MS = 2000

# SQL Server caps a statement at 2100 parameters.
MAX_IN_PARAMS = 1000


class SQLServerConnection:
    """Shared aioodbc pool for the wallboard's read queries and its few writes.

    Login and permission failures surface as ``WallboardAccessError`` so the
    display can stop and show the denied screen; other errors propagate as-is.
    """

    def __init__(self, config: Settings = settings) -> None:
        self._config = config
        self._pool: aioodbc.pool.Pool | None = None
        self._gate: asyncio.Semaphore | None = None

    @property
    def started(self) -> bool:
        return self._pool is not None

    async def start(self) -> None:
        if self._pool is not None:
            return
        configured = self._config.sql_driver
        candidates = build_driver_candidates(configured)
        if not candidates:
            raise RuntimeError("No SQL Server ODBC driver installed; set SQL_DRIVER to an installed driver")
        log.info("SQL pool starting candidates=%s", candidates)

        last_error: Exception | None = None
        for driver in candidates:
            try:
                await self._open_pool(driver)
            except WallboardAccessError:
                raise
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                log.warning("SQL pool open failed driver=%s error=%r", driver, exc)
                continue
            if driver != configured:
                log.warning("SQL driver fallback configured=%s using=%s", configured, driver)
            return

        installed = ", ".join(list_sql_server_drivers()) or "<none>"
        raise RuntimeError(
            f"Cannot reach SQL Server; tried [{', '.join(candidates)}], installed [{installed}]"
        ) from last_error

    async def _open_pool(self, driver: str) -> None:
        limit = self._config.sql_max_concurrent_queries
        if driver.strip().lower() == _LEGACY_DRIVER and limit != 1:
            # Legacy "SQL Server" driver is not stable under concurrency.
            log.warning("SQL concurrency forced to 1 driver=%s configured=%s", driver, limit)
            limit = 1
        try:
            pool = await aioodbc.create_pool(
                dsn=self._config.build_odbc_dsn(driver=driver),
                autocommit=True,
                minsize=1,
                maxsize=min(_MAX_POOL_SIZE, limit),
            )
        except Exception as exc:
            if is_access_error(exc):
                raise WallboardAccessError(f"SQL Server rejected the wallboard credentials: {exc}") from exc
            raise
        self._pool = pool
        self._gate = asyncio.Semaphore(limit)
        log.info("SQL pool ready driver=%s concurrency=%s", driver, limit)

    async def close(self) -> None:
        pool, self._pool, self._gate = self._pool, None, None
        if pool is None:
            return
        pool.close()
        await pool.wait_closed()
        log.info("SQL pool closed")

    async def query_rows(self, query: str, params: list[Any]) -> list[dict[str, Any]]:
        rows, _ = await self._run(query, params, fetch=True)
        return rows

    async def execute(self, query: str, params: list[Any]) -> int:
        _, rowcount = await self._run(query, params, fetch=False)
        return rowcount

    async def query_rows_in(
        self,
        query_template: str,
        values: Iterable[Any],
        params_before: list[Any] | None = None,
        params_after: list[Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run ``query_template`` once per chunk of ``values``.

        The template holds one ``{placeholders}`` slot for the IN list.
        """
        out: list[dict[str, Any]] = []
        for chunk in chunked(values, MAX_IN_PARAMS):
            query = query_template.format(placeholders=placeholders(len(chunk)))
            out.extend(await self.query_rows(query, [*(params_before or []), *chunk, *(params_after or [])]))
        return out

    async def _run(self, query: str, params: list[Any], *, fetch: bool) -> tuple[list[dict[str, Any]], int]:
        if self._pool is None or self._gate is None:
            raise RuntimeError("SQL connection has not started")
        preview = _compact_sql(query, max_chars=self._config.log_sql_preview_chars)
        started_at = time.perf_counter()
        rows: list[dict[str, Any]] = []
        async with self._gate:
            try:
                async with self._pool.acquire() as conn:
                    async with conn.cursor() as cur:
                        cur.timeout = self._config.sql_query_timeout_seconds
                        await cur.execute(query, params)
                        if fetch:
                            columns = [col[0] for col in cur.description]
                            rows = [dict(zip(columns, row, strict=True)) for row in await cur.fetchall()]
                            rowcount = len(rows)
                        else:
                            rowcount = int(cur.rowcount or 0)
            except Exception as exc:  # noqa: BLE001
                elapsed_ms = _elapsed_ms(started_at)
                if is_access_error(exc):
                    log.error("SQL access denied elapsed_ms=%s sql=%s error=%r", elapsed_ms, preview, exc)
                    raise WallboardAccessError(f"SQL Server denied access: {exc}") from exc
                log.exception("SQL query failed elapsed_ms=%s params=%s sql=%s", elapsed_ms, len(params), preview)
                raise
        elapsed_ms = _elapsed_ms(started_at)
        level = logging.WARNING if elapsed_ms >= SLOW_QUERY_MS else logging.DEBUG
        log.log(level, "SQL query done elapsed_ms=%s rows=%s params=%s sql=%s", elapsed_ms, rowcount, len(params), preview)
        return rows, rowcount

    @staticmethod
    def table_name(schema: str, table: str) -> str:
        if not _IDENTIFIER.match(schema) or not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid table name: {schema}.{table}")
        return f"[{schema}].[{table}]"


def is_access_error(exc: BaseException) -> bool:
    args = getattr(exc, "args", ()) or ()
    if isinstance(exc, pyodbc.Error) and args and str(args[0]).strip() in _ACCESS_SQLSTATES:
        return True
    text = " ".join(str(item) for item in args).lower()
    return any(marker in text for marker in _ACCESS_MARKERS)


def placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def chunked(values: Iterable[Any], size: int) -> Iterator[list[Any]]:
    chunk: list[Any] = []
    for value in values:
        chunk.append(value)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def list_sql_server_drivers() -> list[str]:
    return [driver for driver in pyodbc.drivers() if "SQL Server" in driver]


def build_driver_candidates(preferred_driver: str) -> list[str]:
    """Configured driver first, then installed ones newest version first."""
    out: list[str] = [preferred_driver.strip()] if preferred_driver.strip() else []
    for driver in sorted(list_sql_server_drivers(), key=_driver_sort_key, reverse=True):
        if driver not in out:
            out.append(driver)
    return out


def _driver_sort_key(driver: str) -> tuple[int, str]:
    match = _DRIVER_VERSION_PATTERN.match(driver.strip())
    return (int(match.group(1)), driver) if match else (-1, driver)


def _elapsed_ms(started_at: float) -> int:
    return int((time.perf_counter() - started_at) * 1000)


def _compact_sql(sql: str, *, max_chars: int) -> str:
    single_line = " ".join(sql.split())
    if len(single_line) <= max_chars:
        return single_line
    return f"{single_line[: max_chars - 3]}..."
