"""Transactional execution of classified, authorized SQL.

Two strategies share the acquire/release scaffolding:

- read-only: session set to READ ONLY, statement run inside a transaction
  that is always rolled back, session reset to READ WRITE. Failures are
  re-raised after cleanup.
- write: statement run inside a transaction, committed on success, rolled
  back on failure. Failures are returned as error envelopes.

Every path releases the borrowed connection exactly once. Errors raised
while cleaning up are logged and never replace the primary error.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from mysql_mcp.db import ConnectionSource, execute_statement
from mysql_mcp.governance.sql_guard import StatementKind, primary_kind, requires_write
from mysql_mcp.utils.errors import handle_error
from mysql_mcp.utils.formatting import ResponseEnvelope, format_error, format_result

logger = logging.getLogger(__name__)

SET_READ_ONLY = "SET SESSION TRANSACTION READ ONLY"
SET_READ_WRITE = "SET SESSION TRANSACTION READ WRITE"


@dataclass(frozen=True)
class QueryPlan:
    """Classification of one incoming SQL text."""

    sql: str
    kinds: Sequence[StatementKind]
    schema: Optional[str] = None

    @property
    def is_write(self) -> bool:
        return requires_write(self.kinds)

    @property
    def primary_kind(self) -> StatementKind:
        return primary_kind(self.kinds)


async def _run_session_statement(conn: Any, statement: str):
    async with conn.cursor() as cur:
        await cur.execute(statement)


class TransactionExecutor:
    """Runs a QueryPlan against the pool handed out by a ConnectionSource."""

    def __init__(self, source: ConnectionSource):
        self._source = source

    async def execute(self, plan: QueryPlan) -> ResponseEnvelope:
        """Execute an authorized plan.

        Returns an envelope for successes and for failed writes. Raises for
        failed reads and for pool/connection failures on the read path.
        """
        if plan.is_write:
            return await self._execute_write(plan)
        return await self._execute_read_only(plan)

    async def _execute_read_only(self, plan: QueryPlan) -> ResponseEnvelope:
        pool = await self._source.acquire_pool()
        conn = await pool.acquire()
        logger.debug("Read-only connection acquired")
        try:
            await _run_session_statement(conn, SET_READ_ONLY)
            await conn.begin()
            result = await execute_statement(conn, plan.sql)
        except Exception as e:
            logger.error(f"Error executing read-only query: {e}")
            raise
        finally:
            await self._end_read_only(conn)
            pool.release(conn)
            logger.debug("Read-only connection released")
        return format_result(plan.primary_kind, result)

    async def _end_read_only(self, conn: Any):
        try:
            await conn.rollback()
        except Exception as e:
            logger.warning(f"Rollback of read-only transaction failed: {e}")
        try:
            await _run_session_statement(conn, SET_READ_WRITE)
        except Exception as e:
            # A connection stuck in READ ONLY must not go back to the pool.
            logger.warning(f"Could not reset session to READ WRITE, discarding connection: {e}")
            conn.close()

    async def _execute_write(self, plan: QueryPlan) -> ResponseEnvelope:
        try:
            pool = await self._source.acquire_pool()
            conn = await pool.acquire()
            logger.debug("Write connection acquired")
        except Exception as e:
            logger.error(f"Error acquiring write connection: {e}")
            return format_error(handle_error(e))

        try:
            await conn.begin()
            result = await execute_statement(conn, plan.sql)
            await conn.commit()
        except Exception as e:
            logger.error(f"Error executing write query: {e}")
            await self._rollback_write(conn)
            return format_error(handle_error(e))
        finally:
            pool.release(conn)
            logger.debug("Write connection released")

        logger.info(
            f"{plan.primary_kind.value.upper()} committed on schema "
            f"'{plan.schema or 'default'}' (affected rows: {result.affected_rows})"
        )
        return format_result(plan.primary_kind, result)

    async def _rollback_write(self, conn: Any):
        try:
            await conn.rollback()
        except Exception as e:
            logger.warning(f"Rollback after failed write also failed: {e}")
