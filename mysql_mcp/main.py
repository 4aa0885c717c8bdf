"""MySQL MCP Server — main entry point.

One governed SQL tool (mysql_query), table-schema resources and, when named
connection profiles are configured, connection-management tools.
"""
import logging

from mysql_mcp.config import MySQLConfig
from mysql_mcp.context import build_app_context, create_server

config = MySQLConfig()

logging.basicConfig(level=logging.INFO if config.enable_logging else logging.WARNING)
logger = logging.getLogger(__name__)

logger.info(
    f"MySQL configuration: host={config.host} port={config.port} user={config.user} "
    f"password={'******' if config.password else 'not set'} "
    f"database={config.database or 'MULTI_DB_MODE'} "
    f"ssl={'enabled' if config.ssl else 'disabled'}"
)

context = build_app_context(config)
mcp = create_server(context)


def main():
    mcp.run(transport=config.transport)


if __name__ == "__main__":
    main()
