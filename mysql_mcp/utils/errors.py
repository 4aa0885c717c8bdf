"""Centralized error handling with actionable messages."""
from pymysql import err as mysql_errors

from mysql_mcp.exceptions import (
    NoActiveConnectionError,
    PoolCreationError,
    SQLParseError,
    UnknownConnectionError,
)

# MySQL server / client error codes
ER_DBACCESS_DENIED = 1044
ER_ACCESS_DENIED = 1045
ER_BAD_DB = 1049
ER_DUP_ENTRY = 1062
ER_PARSE = 1064
ER_TABLEACCESS_DENIED = 1142
ER_NO_SUCH_TABLE = 1146
ER_CANT_EXECUTE_IN_READ_ONLY_TRANSACTION = 1792
CR_CONN_HOST_ERROR = 2003
CR_SERVER_LOST = 2013


def _mysql_code(e: mysql_errors.MySQLError) -> int:
    if e.args and isinstance(e.args[0], int):
        return e.args[0]
    return 0


def _mysql_message(e: mysql_errors.MySQLError) -> str:
    if len(e.args) > 1:
        return str(e.args[1])
    return str(e)


def handle_error(e: Exception) -> str:
    """Return a human-readable, actionable error message.

    Distinguishes between:
    - Broker-level failures (unparseable SQL, no pool, no active connection)
    - Connection / authentication problems
    - Statement errors reported by the MySQL server
    """
    if isinstance(e, SQLParseError):
        return f"Error: Could not parse SQL — {e}. Check the statement syntax."

    if isinstance(e, NoActiveConnectionError):
        return (
            "Error: No active database connection. "
            "Use connect_to_database to select one of list_connections."
        )

    if isinstance(e, UnknownConnectionError):
        return (
            f"Error: Unknown connection '{e.connection_id}'. "
            "Use list_connections to see the configured connection IDs."
        )

    if isinstance(e, PoolCreationError):
        return f"Database connection error: {e}"

    if isinstance(e, mysql_errors.MySQLError):
        code = _mysql_code(e)
        msg = _mysql_message(e)

        if code in (ER_ACCESS_DENIED, ER_DBACCESS_DENIED, ER_TABLEACCESS_DENIED):
            return (
                f"Error: Access denied by the MySQL server — {msg}. "
                "The configured MySQL user lacks the required privileges."
            )
        if code == ER_BAD_DB:
            return f"Error: Unknown database — {msg}. Check the schema name."
        if code == ER_NO_SUCH_TABLE:
            return (
                f"Error: Table does not exist — {msg}. "
                "List the available table resources to discover table names."
            )
        if code == ER_PARSE:
            return f"Error: SQL syntax error — {msg}. Check your query and try again."
        if code == ER_DUP_ENTRY:
            return f"Error: Duplicate key — {msg}."
        if code == ER_CANT_EXECUTE_IN_READ_ONLY_TRANSACTION:
            return (
                f"Error: Statement attempted a write inside a read-only transaction — {msg}."
            )
        if code in (CR_CONN_HOST_ERROR, CR_SERVER_LOST) or isinstance(
            e, mysql_errors.InterfaceError
        ):
            return (
                f"Database connection error: {msg}. "
                "Check that the MySQL server is reachable and retry."
            )
        return f"Error: MySQL error {code} — {msg}" if code else f"Error: {msg}"

    if isinstance(e, (ConnectionError, OSError, TimeoutError)):
        return f"Database connection error: {e}"

    return f"Error: {type(e).__name__} — {str(e)}"
