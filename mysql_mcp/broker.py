"""Classify → authorize → execute → format pipeline for incoming SQL."""
import logging

from mysql_mcp.db import ConnectionSource
from mysql_mcp.executor import QueryPlan, TransactionExecutor
from mysql_mcp.governance.permissions import PermissionPolicy
from mysql_mcp.governance.schema_resolver import resolve_schema
from mysql_mcp.governance.sql_guard import classify
from mysql_mcp.utils.formatting import ResponseEnvelope, format_denial

logger = logging.getLogger(__name__)


class QueryBroker:
    """Enforces the permission policy before any connection is borrowed."""

    def __init__(
        self,
        source: ConnectionSource,
        policy: PermissionPolicy,
        executor: TransactionExecutor = None,
    ):
        self._source = source
        self._policy = policy
        self._executor = executor or TransactionExecutor(source)

    def plan(self, sql: str) -> QueryPlan:
        """Classify SQL and resolve its target schema. Raises SQLParseError."""
        kinds = classify(sql)
        schema = resolve_schema(
            sql, self._source.default_schema, self._source.multi_db_mode
        )
        return QueryPlan(sql=sql, kinds=tuple(kinds), schema=schema)

    async def run(self, sql: str) -> ResponseEnvelope:
        plan = self.plan(sql)
        denial = self._policy.authorize(plan.kinds, plan.schema)
        if denial is not None:
            logger.warning(denial.message)
            return format_denial(denial)
        return await self._executor.execute(plan)
