"""Heuristic target-schema detection for permission lookups.

This is a text scan, not a parser: unusual quoting or comments can fool it.
"""
import re
from typing import Optional

_USE_PATTERN = re.compile(r"\bUSE\s+`?([a-zA-Z0-9_]+)`?", re.IGNORECASE)
_QUALIFIED_PATTERN = re.compile(r"`?([a-zA-Z0-9_]+)`?\.`?[a-zA-Z0-9_]+`?")


def resolve_schema(
    sql: str, configured_default: Optional[str], multi_db_mode: bool
) -> Optional[str]:
    """Return the schema a statement targets, or None if unknown.

    Priority:
    1. Single-database deployments always use the configured schema.
    2. A ``USE <db>`` statement anywhere in the text.
    3. The first ``<db>.<table>`` qualification.
    4. The configured default (may be None).
    """
    default = configured_default or None
    if default and not multi_db_mode:
        return default

    use_match = _USE_PATTERN.search(sql)
    if use_match:
        return use_match.group(1)

    qualified_match = _QUALIFIED_PATTERN.search(sql)
    if qualified_match:
        return qualified_match.group(1)

    return default
