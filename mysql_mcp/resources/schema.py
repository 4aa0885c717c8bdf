"""Table-schema resources: one resource per visible table."""
import json
import logging

from mcp.server.fastmcp import FastMCP
from mcp.types import Resource

from mysql_mcp.db import ConnectionSource, fetch_all

logger = logging.getLogger(__name__)

SYSTEM_SCHEMAS = frozenset({"information_schema", "mysql", "performance_schema", "sys"})
SCHEMA_URI_TEMPLATE = "mysql://{database}/{table}/schema"


def table_schema_uri(database: str, table: str) -> str:
    return SCHEMA_URI_TEMPLATE.format(database=database, table=table)


def _row_value(row: dict, key: str):
    # information_schema column names come back upper-cased on MySQL 8
    return row.get(key, row.get(key.upper()))


async def list_table_resources(source: ConnectionSource) -> list[Resource]:
    """Enumerate tables of the default schema, or of every user schema in multi-DB mode."""
    resources: list[Resource] = []

    if source.multi_db_mode:
        databases = await fetch_all(source, "SHOW DATABASES")
        for db in databases:
            database = db.get("Database")
            if not database or database in SYSTEM_SCHEMAS:
                continue
            tables = await fetch_all(
                source,
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = %s ORDER BY table_name",
                (database,),
            )
            for row in tables:
                table = _row_value(row, "table_name")
                resources.append(
                    Resource(
                        uri=table_schema_uri(database, table),
                        name=f'"{database}.{table}" database schema',
                        mimeType="application/json",
                    )
                )
        return resources

    rows = await fetch_all(
        source,
        "SELECT table_schema, table_name FROM information_schema.tables "
        "WHERE table_schema = DATABASE() ORDER BY table_name",
    )
    for row in rows:
        database = _row_value(row, "table_schema") or source.default_schema
        table = _row_value(row, "table_name")
        resources.append(
            Resource(
                uri=table_schema_uri(database, table),
                name=f'"{table}" database schema',
                mimeType="application/json",
            )
        )
    return resources


async def read_table_schema(source: ConnectionSource, database: str, table: str) -> str:
    """Column name / data type pairs for one table, as JSON text."""
    rows = await fetch_all(
        source,
        "SELECT column_name, data_type FROM information_schema.columns "
        "WHERE table_schema = %s AND table_name = %s ORDER BY ordinal_position",
        (database, table),
    )
    columns = [
        {
            "column_name": _row_value(r, "column_name"),
            "data_type": _row_value(r, "data_type"),
        }
        for r in rows
    ]
    return json.dumps(columns, indent=2, default=str)


def register_schema_resources(mcp: FastMCP, source: ConnectionSource):

    @mcp.resource(
        SCHEMA_URI_TEMPLATE,
        name="table_schema",
        description="Column names and data types of one table",
        mime_type="application/json",
    )
    async def table_schema(database: str, table: str) -> str:
        try:
            return await read_table_schema(source, database, table)
        except Exception as e:
            logger.error(f"Error reading schema for {database}.{table}: {e}")
            raise

    # FastMCP only lists static resources; replace the handler so every
    # table shows up as a concrete resource.
    @mcp._mcp_server.list_resources()
    async def list_resources() -> list[Resource]:
        try:
            return await list_table_resources(source)
        except Exception as e:
            logger.error(f"Error listing table resources: {e}")
            raise
