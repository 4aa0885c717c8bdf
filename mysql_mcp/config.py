"""Configuration for the MySQL MCP Server.

Connection, pool and transport settings. Write permissions live in
mysql_mcp/governance/permissions.py.
"""
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("true", "1")


@dataclass
class MySQLConfig:
    """Server configuration loaded from environment variables."""

    # MySQL connection
    host: str = field(
        default_factory=lambda: os.environ.get("MYSQL_HOST", "127.0.0.1")
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("MYSQL_PORT", "3306"))
    )
    user: str = field(default_factory=lambda: os.environ.get("MYSQL_USER", "root"))
    password: str = field(
        default_factory=lambda: os.environ.get("MYSQL_PASS", ""), repr=False
    )
    # Blank database = multi-DB mode
    database: str = field(
        default_factory=lambda: os.environ.get("MYSQL_DB", "").strip()
    )

    # TLS
    ssl: bool = field(default_factory=lambda: _env_flag("MYSQL_SSL"))
    ssl_reject_unauthorized: bool = field(
        default_factory=lambda: _env_flag("MYSQL_SSL_REJECT_UNAUTHORIZED")
    )

    # Pool settings
    pool_min_size: int = field(
        default_factory=lambda: int(os.environ.get("MYSQL_POOL_MIN", "1"))
    )
    pool_max_size: int = field(
        default_factory=lambda: int(os.environ.get("MYSQL_POOL_MAX", "10"))
    )
    connect_timeout_seconds: int = field(
        default_factory=lambda: int(os.environ.get("MYSQL_CONNECT_TIMEOUT", "10"))
    )
    multi_statements: bool = field(
        default_factory=lambda: _env_flag("MYSQL_MULTI_STATEMENTS")
    )

    # Safety
    multi_db_write_mode: bool = field(
        default_factory=lambda: _env_flag("MULTI_DB_WRITE_MODE")
    )
    permissions_config_path: str = field(
        default_factory=lambda: os.environ.get("MYSQL_MCP_PERMISSIONS_CONFIG", "")
    )

    # Named connection profiles (multi-connection variant)
    connections_file: str = field(
        default_factory=lambda: os.environ.get("MYSQL_MCP_CONNECTIONS_FILE", "")
    )

    # Server
    enable_logging: bool = field(default_factory=lambda: _env_flag("ENABLE_LOGGING"))
    transport: str = field(
        default_factory=lambda: os.environ.get("MYSQL_MCP_TRANSPORT", "stdio")
    )
    app_port: int = field(
        default_factory=lambda: int(os.environ.get("APP_PORT", "8000"))
    )

    @property
    def multi_db_mode(self) -> bool:
        return not self.database

    @property
    def default_schema(self) -> Optional[str]:
        return self.database or None
