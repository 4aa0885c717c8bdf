"""Response envelope and result formatting helpers."""
import json
from dataclasses import dataclass
from typing import Any

from mcp.types import CallToolResult, TextContent

from mysql_mcp.db import StatementResult
from mysql_mcp.governance.permissions import PermissionDenial
from mysql_mcp.governance.sql_guard import DDL_KINDS, StatementKind


@dataclass(frozen=True)
class ResponseEnvelope:
    """A single-item text response; ``is_error`` is the discriminant."""

    text: str
    is_error: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }

    def to_call_tool_result(self) -> CallToolResult:
        return CallToolResult(
            content=[TextContent(type="text", text=self.text)],
            isError=self.is_error,
        )


def format_rows(rows: list[dict]) -> str:
    return json.dumps(rows, indent=2, default=str)


def format_result(kind: StatementKind, result: StatementResult) -> ResponseEnvelope:
    """Reduce a driver result to the message for its statement kind."""
    if kind == StatementKind.INSERT:
        text = (
            f"Insert successful. Affected rows: {result.affected_rows}, "
            f"Last insert ID: {result.insert_id}"
        )
    elif kind == StatementKind.UPDATE:
        text = (
            f"Update successful. Affected rows: {result.affected_rows}, "
            f"Changed rows: {result.changed_rows or 0}"
        )
    elif kind == StatementKind.DELETE:
        text = f"Delete successful. Affected rows: {result.affected_rows}"
    elif kind in DDL_KINDS:
        text = "DDL operation successful."
    else:
        text = format_rows(result.rows)
    return ResponseEnvelope(text=text)


def format_denial(denial: PermissionDenial) -> ResponseEnvelope:
    return ResponseEnvelope(text=f"Error: {denial.message}", is_error=True)


def format_error(message: str) -> ResponseEnvelope:
    return ResponseEnvelope(text=message, is_error=True)
