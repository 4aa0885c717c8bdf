"""SQL statement classification using sqlglot AST parsing.

Only coarse, per-statement effect classification is done here:
- Multi-statement SQL (semicolon-separated) yields one kind per statement
- CTEs and subqueries classify by their top-level statement
- Keyword comparison is case-insensitive
"""
import logging
from enum import Enum
from typing import Optional, Sequence

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from mysql_mcp.exceptions import SQLParseError

logger = logging.getLogger(__name__)


class StatementKind(str, Enum):
    """Closed set of statement kinds the permission layer understands."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    CREATE = "create"
    ALTER = "alter"
    DROP = "drop"
    TRUNCATE = "truncate"
    OTHER = "other"


DDL_KINDS = frozenset(
    {
        StatementKind.CREATE,
        StatementKind.ALTER,
        StatementKind.DROP,
        StatementKind.TRUNCATE,
    }
)

WRITE_KINDS = DDL_KINDS | {
    StatementKind.INSERT,
    StatementKind.UPDATE,
    StatementKind.DELETE,
}

# Map sqlglot expression types to statement kinds.
# Insert must stay ahead of the query types: INSERT ... SELECT is rooted at Insert.
_EXPRESSION_MAP: dict[type, StatementKind] = {
    exp.Insert: StatementKind.INSERT,
    exp.Update: StatementKind.UPDATE,
    exp.Delete: StatementKind.DELETE,
    exp.Create: StatementKind.CREATE,
    exp.Alter: StatementKind.ALTER,
    exp.Drop: StatementKind.DROP,
    exp.TruncateTable: StatementKind.TRUNCATE,
    exp.Select: StatementKind.SELECT,
    exp.Union: StatementKind.SELECT,
    exp.Intersect: StatementKind.SELECT,
    exp.Except: StatementKind.SELECT,
    exp.Subquery: StatementKind.SELECT,
}

# Statements sqlglot leaves as raw Command nodes
_COMMAND_MAP: dict[str, StatementKind] = {
    "INSERT": StatementKind.INSERT,
    "REPLACE": StatementKind.INSERT,
    "UPDATE": StatementKind.UPDATE,
    "DELETE": StatementKind.DELETE,
    "CREATE": StatementKind.CREATE,
    "ALTER": StatementKind.ALTER,
    "DROP": StatementKind.DROP,
    "TRUNCATE": StatementKind.TRUNCATE,
    "RENAME": StatementKind.ALTER,
}


def classify(sql: str) -> list[StatementKind]:
    """Classify a SQL string into one statement kind per statement.

    Raises SQLParseError if the text cannot be parsed for the MySQL dialect
    or contains no statement at all.
    """
    try:
        statements = sqlglot.parse(sql, read="mysql")
    except (ParseError, TokenError) as e:
        logger.warning(f"Could not parse SQL: {sql[:100]!r}")
        raise SQLParseError(f"Parsing failed: {e}") from e

    kinds = [_classify_expression(stmt) for stmt in statements if stmt is not None]
    if not kinds:
        raise SQLParseError("No SQL statement found")
    logger.debug(f"Classified SQL as {[k.value for k in kinds]}")
    return kinds


def _classify_expression(node: exp.Expression) -> StatementKind:
    for expr_type, kind in _EXPRESSION_MAP.items():
        if isinstance(node, expr_type):
            return kind

    if isinstance(node, exp.Command):
        cmd = node.this.upper() if isinstance(node.this, str) else ""
        return _COMMAND_MAP.get(cmd, StatementKind.OTHER)

    return StatementKind.OTHER


def is_write_kind(kind: StatementKind) -> bool:
    return kind in WRITE_KINDS


def requires_write(kinds: Sequence[StatementKind]) -> bool:
    """True when any statement would mutate data or schema."""
    return any(is_write_kind(k) for k in kinds)


def primary_kind(kinds: Sequence[StatementKind]) -> StatementKind:
    """Pick the kind that decides how a (compound) result is reported."""
    for kind in (StatementKind.INSERT, StatementKind.UPDATE, StatementKind.DELETE):
        if kind in kinds:
            return kind
    ddl: Optional[StatementKind] = next((k for k in kinds if k in DDL_KINDS), None)
    return ddl or StatementKind.SELECT
