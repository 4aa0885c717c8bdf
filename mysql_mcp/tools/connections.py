"""Tools for switching between named database connections."""
import json

from pydantic import BaseModel, ConfigDict, Field
from mcp.server.fastmcp import FastMCP
from mcp.types import CallToolResult

from mysql_mcp.connections import ConnectionManager
from mysql_mcp.utils.errors import handle_error
from mysql_mcp.utils.formatting import ResponseEnvelope, format_error


class ConnectInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    connection_id: str = Field(
        ..., description="ID of a configured connection profile", min_length=1
    )


def describe_connections(manager: ConnectionManager) -> str:
    active = manager.current_connection()
    return json.dumps(
        [
            {
                "id": p.id,
                "host": p.host,
                "port": p.port,
                "database": p.database_name,
                "active": p.id == active,
            }
            for p in manager.list_connections()
        ],
        indent=2,
    )


def describe_current(manager: ConnectionManager) -> str:
    profile = manager.active_profile
    if profile is None:
        return (
            "No active database connection. "
            "Use connect_to_database to establish a connection."
        )
    return f"Current active connection: {profile.display}"


def register_connection_tools(mcp: FastMCP, manager: ConnectionManager):

    @mcp.tool(
        name="list_connections",
        annotations={
            "title": "List Database Connections",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def list_connections() -> str:
        """List the configured named database connections (passwords omitted)."""
        return describe_connections(manager)

    @mcp.tool(
        name="connect_to_database",
        annotations={
            "title": "Connect To Database",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def connect_to_database(params: ConnectInput) -> CallToolResult:
        """Open (or reuse) the pool for a named connection and make it active.
        All subsequent mysql_query calls run against the active connection."""
        try:
            result = await manager.connect(params.connection_id)
        except Exception as e:
            return format_error(handle_error(e)).to_call_tool_result()
        return ResponseEnvelope(text=result.message).to_call_tool_result()

    @mcp.tool(
        name="get_current_connection",
        annotations={
            "title": "Get Current Connection",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def get_current_connection() -> str:
        """Show which named connection queries currently run against."""
        return describe_current(manager)

    @mcp.tool(
        name="disconnect_from_database",
        annotations={
            "title": "Disconnect From Database",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def disconnect_from_database() -> CallToolResult:
        """Close the active connection's pool and clear the active selection."""
        try:
            result = await manager.disconnect()
        except Exception as e:
            return format_error(handle_error(e)).to_call_tool_result()
        return ResponseEnvelope(text=result.message).to_call_tool_result()
