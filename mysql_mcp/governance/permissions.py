"""Per-category write permissions with per-schema overrides.

Loads config from env vars (primary) and an optional YAML file.
One generic CategoryPermission per OperationCategory replaces four
hand-written insert/update/delete/DDL code paths.
"""
import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

import yaml

from mysql_mcp.governance.sql_guard import DDL_KINDS, StatementKind

logger = logging.getLogger(__name__)


class OperationCategory(str, Enum):
    """The four independently gated write categories."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    DDL = "ddl"

    @property
    def label(self) -> str:
        return self.value.upper()

    @property
    def global_env_var(self) -> str:
        return f"ALLOW_{self.label}_OPERATION"

    @property
    def schema_env_var(self) -> str:
        return f"SCHEMA_{self.label}_PERMISSIONS"


def category_for(kind: StatementKind) -> Optional[OperationCategory]:
    """Map a statement kind to its permission category (None for reads)."""
    if kind in DDL_KINDS:
        return OperationCategory.DDL
    try:
        return OperationCategory(kind.value)
    except ValueError:
        return None


@dataclass(frozen=True)
class CategoryPermission:
    """Global default plus per-schema overrides for one category."""

    allowed: bool = False
    overrides: Mapping[str, bool] = field(default_factory=dict)

    def is_allowed(self, schema: Optional[str]) -> bool:
        if not schema:
            return self.allowed
        return self.overrides.get(schema, self.allowed)


@dataclass(frozen=True)
class PermissionDenial:
    """Why a statement was refused."""

    category: OperationCategory
    schema: Optional[str]

    @property
    def message(self) -> str:
        return (
            f"{self.category.label} operations are not allowed for schema "
            f"'{self.schema or 'default'}'. Ask the administrator to update "
            f"{self.category.schema_env_var}."
        )


class PermissionPolicy:
    """Resolved permission matrix — the runtime enforcement object."""

    def __init__(self, permissions: Mapping[OperationCategory, CategoryPermission]):
        self._permissions = MappingProxyType(
            {
                category: permissions.get(category, CategoryPermission())
                for category in OperationCategory
            }
        )

    def permission(self, category: OperationCategory) -> CategoryPermission:
        return self._permissions[category]

    def is_allowed(self, category: OperationCategory, schema: Optional[str]) -> bool:
        return self._permissions[category].is_allowed(schema)

    def authorize(
        self, kinds: Sequence[StatementKind], schema: Optional[str]
    ) -> Optional[PermissionDenial]:
        """Return None if every write in ``kinds`` is allowed, else the first denial.

        Select and other read kinds never block on their own.
        """
        present = {category_for(k) for k in kinds} - {None}
        for category in OperationCategory:
            if category in present and not self.is_allowed(category, schema):
                return PermissionDenial(category=category, schema=schema)
        return None

    @property
    def has_schema_overrides(self) -> bool:
        return any(p.overrides for p in self._permissions.values())

    def describe(self, multi_db_mode: bool = False) -> str:
        """Human-readable tool description reflecting the active permissions."""
        description = "Run SQL queries against MySQL database"
        if multi_db_mode:
            description += " (Multi-DB mode enabled)"

        enabled = [c.label for c in OperationCategory if self._permissions[c].allowed]
        if not enabled:
            return description + " (READ-ONLY)"

        description += f" with support for: {', '.join(enabled)} and READ operations"
        if self.has_schema_overrides:
            description += " (Schema-specific permissions enabled)"
        return description


@dataclass
class PermissionConfig:
    """Parsed permission configuration."""

    allow: dict[OperationCategory, bool] = field(default_factory=dict)
    schema_overrides: dict[OperationCategory, dict[str, bool]] = field(
        default_factory=dict
    )


def parse_schema_permissions(value: Optional[str]) -> dict[str, bool]:
    """Parse ``"schema1:true,schema2:false"`` into a mapping.

    Pairs without a schema or a value are skipped.
    """
    permissions: dict[str, bool] = {}
    if not value:
        return permissions
    for pair in value.split(","):
        schema, _, flag = pair.partition(":")
        schema, flag = schema.strip(), flag.strip()
        if schema and flag:
            permissions[schema] = flag.lower() == "true"
    return permissions


def _load_yaml_config(path: str) -> dict:
    """Load permission config from YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Permissions config file not found: {path}")
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _yaml_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def load_permission_config(yaml_path: Optional[str] = None) -> PermissionConfig:
    """Load permission config from env vars + optional YAML.

    Env vars take precedence over YAML: a set ALLOW_* flag wins over the YAML
    ``allow`` value and SCHEMA_* entries win over YAML entries for the same schema.
    """
    config = PermissionConfig()

    if yaml_path is None:
        yaml_path = os.environ.get("MYSQL_MCP_PERMISSIONS_CONFIG", "")
    yaml_data = _load_yaml_config(yaml_path) if yaml_path else {}
    section = yaml_data.get("permissions", {}) or {}

    for category in OperationCategory:
        category_section = section.get(category.value, {}) or {}

        env_flag = os.environ.get(category.global_env_var, "").strip()
        if env_flag:
            config.allow[category] = env_flag.lower() == "true"
        else:
            config.allow[category] = _yaml_bool(category_section.get("allow", False))

        overrides = {
            str(schema): _yaml_bool(flag)
            for schema, flag in (category_section.get("schemas", {}) or {}).items()
        }
        overrides.update(
            parse_schema_permissions(os.environ.get(category.schema_env_var))
        )
        config.schema_overrides[category] = overrides

    return config


def build_permission_policy(config: PermissionConfig = None) -> PermissionPolicy:
    """Build the runtime permission policy from config.

    Unconfigured categories default to denied.
    """
    if config is None:
        config = load_permission_config()

    policy = PermissionPolicy(
        {
            category: CategoryPermission(
                allowed=config.allow.get(category, False),
                overrides=MappingProxyType(
                    dict(config.schema_overrides.get(category, {}))
                ),
            )
            for category in OperationCategory
        }
    )
    logger.info(
        "Permissions: "
        + ", ".join(
            f"{c.value}={policy.permission(c).allowed}"
            f"(+{len(policy.permission(c).overrides)} overrides)"
            for c in OperationCategory
        )
    )
    return policy
