"""Application context: every long-lived object, built once at startup."""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from mcp.server.fastmcp import FastMCP

from mysql_mcp.broker import QueryBroker
from mysql_mcp.config import MySQLConfig
from mysql_mcp.connections import ConnectionManager, load_connection_profiles
from mysql_mcp.db import ConnectionSource, MySQLPool, PoolFactory
from mysql_mcp.executor import TransactionExecutor
from mysql_mcp.governance.permissions import (
    PermissionConfig,
    PermissionPolicy,
    build_permission_policy,
    load_permission_config,
)
from mysql_mcp.resources.schema import register_schema_resources
from mysql_mcp.tools.connections import register_connection_tools
from mysql_mcp.tools.query import register_query_tools

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    config: MySQLConfig
    policy: PermissionPolicy
    source: ConnectionSource
    executor: TransactionExecutor
    broker: QueryBroker
    manager: Optional[ConnectionManager] = None


def build_app_context(
    config: MySQLConfig = None,
    permission_config: PermissionConfig = None,
    pool_factory: PoolFactory = None,
) -> AppContext:
    """Wire config, permissions and the connection source together."""
    if config is None:
        config = MySQLConfig()
    if permission_config is None:
        permission_config = load_permission_config(config.permissions_config_path)
    policy = build_permission_policy(permission_config)

    manager = None
    if config.connections_file:
        manager = ConnectionManager(
            load_connection_profiles(config.connections_file),
            base_config=config,
            pool_factory=pool_factory,
        )
        source: ConnectionSource = manager
    else:
        source = MySQLPool(config, pool_factory=pool_factory)
        if config.multi_db_mode and not config.multi_db_write_mode:
            logger.warning(
                "Multi-DB mode detected (MYSQL_DB not set). Write permissions still "
                "apply per schema; set MULTI_DB_WRITE_MODE=true to silence this warning."
            )

    executor = TransactionExecutor(source)
    return AppContext(
        config=config,
        policy=policy,
        source=source,
        executor=executor,
        broker=QueryBroker(source, policy, executor),
        manager=manager,
    )


def create_server(context: AppContext) -> FastMCP:
    """Build the MCP server for a context and register tools and resources."""

    @asynccontextmanager
    async def app_lifespan(server: FastMCP):
        """Warm the pool up and close it on shutdown."""
        if context.manager is None:
            try:
                await context.source.acquire_pool()
                logger.info("MySQL MCP Server started (pool connected)")
            except Exception as e:
                logger.warning(
                    f"Pool initialization failed (tools will retry on first call): {e}"
                )
        else:
            logger.info(
                f"MySQL MCP Server started with "
                f"{len(context.manager.list_connections())} named connections"
            )

        yield context

        try:
            await context.source.close()
        except Exception as e:
            logger.error(f"Error closing pool: {e}")
        logger.info("MySQL MCP Server stopped")

    mcp = FastMCP(
        "mysql_mcp",
        lifespan=app_lifespan,
        host="0.0.0.0",
        port=context.config.app_port,
    )

    multi_db_mode = context.manager is None and context.config.multi_db_mode
    register_query_tools(mcp, context.broker, context.policy, multi_db_mode)
    if context.manager is not None:
        register_connection_tools(mcp, context.manager)
    register_schema_resources(mcp, context.source)
    return mcp
