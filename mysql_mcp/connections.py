"""Named connection profiles and the active-connection selector.

Only one connection is active at a time; queries always run against it.
The active selection is process-wide state without locking: concurrent
connect/disconnect calls may race with in-flight queries.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import aiomysql
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mysql_mcp.config import MySQLConfig
from mysql_mcp.db import PoolFactory, build_pool_kwargs, close_pool
from mysql_mcp.exceptions import (
    ConnectionConfigError,
    NoActiveConnectionError,
    UnknownConnectionError,
)

logger = logging.getLogger(__name__)


class ConnectionProfile(BaseModel):
    """One reachable database target, loaded from the profile store."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    host: str = Field(..., min_length=1)
    port: int = Field(..., gt=0)
    user: str
    password: str = Field(..., repr=False)
    database_name: str = Field(..., alias="name", min_length=1)

    @field_validator("id", "host", "database_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @property
    def display(self) -> str:
        return f"{self.id} ({self.host}:{self.port}/{self.database_name})"


def load_connection_profiles(path: str) -> list[ConnectionProfile]:
    """Load and validate profiles from a JSON array file.

    A missing file means no profiles. Duplicate ids are rejected.
    """
    config_path = Path(path).expanduser()
    if not config_path.exists():
        logger.info(f"Connections file not found at {config_path}, no profiles loaded")
        return []

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConnectionConfigError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(data, list):
        raise ConnectionConfigError("Configuration must be an array")

    profiles = []
    for index, entry in enumerate(data):
        try:
            profiles.append(ConnectionProfile.model_validate(entry))
        except ValidationError as e:
            raise ConnectionConfigError(
                f"Connection at index {index} is invalid: {e}"
            ) from e

    ids = [p.id for p in profiles]
    if len(ids) != len(set(ids)):
        raise ConnectionConfigError("Duplicate connection IDs found in configuration")

    logger.info(f"Loaded {len(profiles)} connection configurations")
    return profiles


@dataclass(frozen=True)
class ConnectionResult:
    connection_id: Optional[str]
    message: str
    reused: bool = False


class ConnectionManager:
    """Named pools with a single active selection."""

    def __init__(
        self,
        profiles: list[ConnectionProfile],
        base_config: MySQLConfig = None,
        pool_factory: PoolFactory = None,
    ):
        self._profiles = {p.id: p for p in profiles}
        self._base_config = base_config or MySQLConfig()
        self._factory = pool_factory or aiomysql.create_pool
        self._pools: dict[str, Any] = {}
        self._active_id: Optional[str] = None

    def list_connections(self) -> list[ConnectionProfile]:
        return list(self._profiles.values())

    def current_connection(self) -> Optional[str]:
        return self._active_id

    @property
    def active_profile(self) -> Optional[ConnectionProfile]:
        if self._active_id is None:
            return None
        return self._profiles[self._active_id]

    @property
    def default_schema(self) -> Optional[str]:
        profile = self.active_profile
        return profile.database_name if profile else None

    @property
    def multi_db_mode(self) -> bool:
        return self.default_schema is None

    def _pool_kwargs(self, profile: ConnectionProfile) -> dict[str, Any]:
        kwargs = build_pool_kwargs(self._base_config, database=profile.database_name)
        kwargs.update(
            host=profile.host,
            port=profile.port,
            user=profile.user,
            password=profile.password,
        )
        return kwargs

    async def connect(self, connection_id: str) -> ConnectionResult:
        profile = self._profiles.get(connection_id)
        if profile is None:
            raise UnknownConnectionError(connection_id)

        if connection_id in self._pools:
            self._active_id = connection_id
            logger.info(f"Switched to existing connection: {connection_id}")
            return ConnectionResult(
                connection_id=connection_id,
                message=f"Successfully switched to existing connection: {profile.display}",
                reused=True,
            )

        pool = None
        try:
            pool = await self._factory(**self._pool_kwargs(profile))
            conn = await pool.acquire()
            try:
                await conn.ping()
            finally:
                pool.release(conn)
        except Exception as e:
            logger.error(f"Failed to connect to database {connection_id}: {e}")
            if pool is not None:
                try:
                    await close_pool(pool)
                except Exception as close_error:
                    logger.warning(f"Error closing failed pool {connection_id}: {close_error}")
            raise ConnectionError(
                f"Failed to connect to database {connection_id}: {e}"
            ) from e

        self._pools[connection_id] = pool
        self._active_id = connection_id
        logger.info(f"Successfully connected to database: {connection_id}")
        return ConnectionResult(
            connection_id=connection_id,
            message=f"Successfully connected to: {profile.display}",
        )

    async def disconnect(self) -> ConnectionResult:
        if self._active_id is None:
            return ConnectionResult(
                connection_id=None, message="No active connection to disconnect."
            )

        disconnected_id = self._active_id
        pool = self._pools.pop(disconnected_id, None)
        self._active_id = None
        if pool is not None:
            await close_pool(pool)

        logger.info(f"Disconnected from database: {disconnected_id}")
        return ConnectionResult(
            connection_id=disconnected_id,
            message=f"Successfully disconnected from: {disconnected_id}",
        )

    async def acquire_pool(self) -> Any:
        if self._active_id is None:
            raise NoActiveConnectionError(
                "No active database connection. Use connect_to_database first."
            )
        return self._pools[self._active_id]

    async def close(self):
        """Close every open pool (shutdown)."""
        pools, self._pools = self._pools, {}
        self._active_id = None
        for connection_id, pool in pools.items():
            try:
                await close_pool(pool)
                logger.info(f"Closed connection: {connection_id}")
            except Exception as e:
                logger.error(f"Error closing connection {connection_id}: {e}")
