"""Async MySQL connection pool with lazy, retry-safe construction.

The pool is built on first use, not at import or startup. A failed build is
not cached: the next caller tries again.
"""
import re
import ssl
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

import aiomysql
from pymysql.constants import CLIENT

from mysql_mcp.config import MySQLConfig
from mysql_mcp.exceptions import PoolCreationError

logger = logging.getLogger(__name__)

PoolFactory = Callable[..., Awaitable[Any]]

_CHANGED_ROWS = re.compile(r"Changed:\s*(\d+)")


class ConnectionSource(Protocol):
    """Anything that can hand out the pool queries should run against."""

    @property
    def default_schema(self) -> Optional[str]: ...

    @property
    def multi_db_mode(self) -> bool: ...

    async def acquire_pool(self) -> Any: ...

    async def close(self) -> None: ...


@dataclass
class StatementResult:
    """Driver result normalized to either a row set or a write header."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    has_rows: bool = False
    affected_rows: int = 0
    insert_id: Optional[int] = None
    changed_rows: Optional[int] = None


def build_pool_kwargs(
    config: MySQLConfig, database: Optional[str] = None
) -> dict[str, Any]:
    """Translate config into aiomysql.create_pool keyword arguments."""
    client_flag = CLIENT.FOUND_ROWS
    if config.multi_statements:
        client_flag |= CLIENT.MULTI_STATEMENTS

    kwargs: dict[str, Any] = {
        "host": config.host,
        "port": config.port,
        "user": config.user,
        "password": config.password,
        "db": database if database is not None else (config.database or None),
        "minsize": config.pool_min_size,
        "maxsize": config.pool_max_size,
        "connect_timeout": config.connect_timeout_seconds,
        "autocommit": True,
        "charset": "utf8mb4",
        "client_flag": client_flag,
    }
    if config.ssl:
        context = ssl.create_default_context()
        if not config.ssl_reject_unauthorized:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        kwargs["ssl"] = context
    return kwargs


async def close_pool(pool: Any) -> None:
    pool.close()
    await pool.wait_closed()


class MySQLPool:
    """Single shared pool for the configured MySQL server.

    ``acquire_pool`` constructs the pool once, on first use. Concurrent first
    callers wait on the same lock and receive the same instance.
    """

    def __init__(self, config: MySQLConfig, pool_factory: PoolFactory = None):
        self._config = config
        self._factory = pool_factory or aiomysql.create_pool
        self._pool: Any = None
        self._lock = asyncio.Lock()

    @property
    def default_schema(self) -> Optional[str]:
        return self._config.default_schema

    @property
    def multi_db_mode(self) -> bool:
        return self._config.multi_db_mode

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def acquire_pool(self) -> Any:
        if self._pool is not None:
            return self._pool
        async with self._lock:
            if self._pool is None:
                try:
                    self._pool = await self._factory(**build_pool_kwargs(self._config))
                except Exception as e:
                    logger.error(f"Error creating MySQL pool: {e}")
                    raise PoolCreationError(
                        f"Could not create MySQL pool for "
                        f"{self._config.host}:{self._config.port}: {e}"
                    ) from e
                logger.info(
                    f"MySQL pool created ({self._config.host}:{self._config.port}, "
                    f"database={self._config.database or 'MULTI_DB_MODE'})"
                )
        return self._pool

    async def close(self):
        """Close the pool if it was ever created. Safe to call repeatedly."""
        async with self._lock:
            if self._pool is None:
                return
            pool, self._pool = self._pool, None
        await close_pool(pool)
        logger.info("MySQL pool closed")


def _changed_rows(cursor: Any) -> Optional[int]:
    # pymysql keeps the server's OK-packet info ("Rows matched: 1  Changed: 1 ...")
    # on the raw result only.
    message = getattr(getattr(cursor, "_result", None), "message", None)
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    if not message:
        return None
    match = _CHANGED_ROWS.search(message)
    return int(match.group(1)) if match else None


async def execute_statement(
    conn: Any, sql: str, params: Optional[Sequence[Any]] = None
) -> StatementResult:
    """Run SQL text on a borrowed connection and drain every result set."""
    result = StatementResult()
    async with conn.cursor(aiomysql.DictCursor) as cur:
        await cur.execute(sql, params)
        while True:
            if cur.description:
                result.has_rows = True
                result.rows.extend(dict(row) for row in await cur.fetchall())
            else:
                result.affected_rows += max(cur.rowcount or 0, 0)
                if cur.lastrowid:
                    result.insert_id = cur.lastrowid
                changed = _changed_rows(cur)
                if changed is not None:
                    result.changed_rows = (result.changed_rows or 0) + changed
            if not await cur.nextset():
                break
    return result


async def fetch_all(
    source: ConnectionSource, sql: str, params: Optional[Sequence[Any]] = None
) -> list[dict[str, Any]]:
    """Run a metadata query outside the read-only discipline."""
    pool = await source.acquire_pool()
    conn = await pool.acquire()
    try:
        result = await execute_statement(conn, sql, params)
        return result.rows
    except Exception as e:
        logger.error(f"Error executing query: {e}")
        raise
    finally:
        pool.release(conn)
        logger.debug("Connection released")
