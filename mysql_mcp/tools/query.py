"""SQL query tool with permission-governed execution."""
import logging

from pydantic import Field
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import CallToolResult

from mysql_mcp.broker import QueryBroker
from mysql_mcp.governance.permissions import PermissionPolicy
from mysql_mcp.utils.errors import handle_error

logger = logging.getLogger(__name__)

MAX_SQL_LENGTH = 100_000


def register_query_tools(
    mcp: FastMCP, broker: QueryBroker, policy: PermissionPolicy, multi_db_mode: bool
):

    @mcp.tool(
        name="mysql_query",
        description=policy.describe(multi_db_mode),
        annotations={
            "title": "Run SQL Query",
            "readOnlyHint": False,
            "destructiveHint": True,
            "idempotentHint": False,
            "openWorldHint": False,
        },
    )
    async def mysql_query(
        sql: str = Field(
            ...,
            description="The SQL query to execute",
            min_length=1,
            max_length=MAX_SQL_LENGTH,
        ),
    ) -> CallToolResult:
        try:
            envelope = await broker.run(sql)
        except Exception as e:
            logger.error(f"mysql_query failed: {e}")
            raise ToolError(handle_error(e)) from e
        return envelope.to_call_tool_result()
