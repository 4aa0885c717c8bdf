"""Shared test fixtures for MySQL MCP tests.

The fakes mirror the slice of the aiomysql API the server uses:
pool.acquire()/release()/close()/wait_closed() and
conn.cursor()/begin()/commit()/rollback()/ping()/close().
"""
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from mysql_mcp.governance.permissions import (
    CategoryPermission,
    OperationCategory,
    PermissionPolicy,
)


@dataclass
class FakeResultSet:
    rows: Optional[list[dict]] = None
    rowcount: int = 0
    lastrowid: int = 0
    message: Any = None


def rows(*items: dict) -> list[FakeResultSet]:
    return [FakeResultSet(rows=list(items), rowcount=len(items))]


def header(rowcount: int = 0, lastrowid: int = 0, message: Any = None) -> list[FakeResultSet]:
    return [FakeResultSet(rowcount=rowcount, lastrowid=lastrowid, message=message)]


class _RawResult:
    def __init__(self, message):
        self.message = message


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self._sets: list[FakeResultSet] = []
        self._index = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, params=None):
        self._conn.calls.append(("execute", sql))
        self._conn.params.append(params)
        error = self._conn.errors.get(sql)
        if error is not None:
            raise error
        if sql.startswith("SET SESSION"):
            self._sets = header()
        elif self._conn.results:
            self._sets = self._conn.results.pop(0)
        else:
            self._sets = rows()
        self._index = 0

    @property
    def _current(self) -> FakeResultSet:
        return self._sets[self._index]

    @property
    def description(self):
        if self._current.rows is None:
            return None
        keys = self._current.rows[0].keys() if self._current.rows else ["col"]
        return [(k,) for k in keys]

    @property
    def rowcount(self):
        return self._current.rowcount

    @property
    def lastrowid(self):
        return self._current.lastrowid

    @property
    def _result(self):
        return _RawResult(self._current.message)

    async def fetchall(self):
        return list(self._current.rows or [])

    async def nextset(self):
        if self._index + 1 < len(self._sets):
            self._index += 1
            return True
        return None


@dataclass
class FakeConnection:
    results: list[list[FakeResultSet]] = field(default_factory=list)
    errors: dict[str, Exception] = field(default_factory=dict)
    rollback_error: Optional[Exception] = None
    commit_error: Optional[Exception] = None
    ping_error: Optional[Exception] = None
    calls: list[tuple] = field(default_factory=list)
    params: list[Any] = field(default_factory=list)
    closed: bool = False

    def cursor(self, *cursor_classes):
        return FakeCursor(self)

    async def begin(self):
        self.calls.append(("begin",))

    async def commit(self):
        self.calls.append(("commit",))
        if self.commit_error is not None:
            raise self.commit_error

    async def rollback(self):
        self.calls.append(("rollback",))
        if self.rollback_error is not None:
            raise self.rollback_error

    async def ping(self):
        self.calls.append(("ping",))
        if self.ping_error is not None:
            raise self.ping_error

    def close(self):
        self.closed = True

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    @property
    def executed(self) -> list[str]:
        return [c[1] for c in self.calls if c[0] == "execute"]


class FakePool:
    def __init__(self, conn: FakeConnection = None, **kwargs):
        self.conn = conn or FakeConnection()
        self.kwargs = kwargs
        self.acquired = 0
        self.released = 0
        self.closed = False
        self.wait_closed_calls = 0

    async def acquire(self):
        self.acquired += 1
        return self.conn

    def release(self, conn):
        assert conn is self.conn
        self.released += 1

    def close(self):
        self.closed = True

    async def wait_closed(self):
        self.wait_closed_calls += 1


class FakeSource:
    """Connection source handing out a fixed FakePool."""

    def __init__(
        self,
        pool: FakePool = None,
        default_schema: Optional[str] = "app",
        multi_db_mode: bool = False,
        error: Exception = None,
    ):
        self.pool = pool or FakePool()
        self.default_schema = default_schema
        self.multi_db_mode = multi_db_mode
        self.error = error
        self.acquire_calls = 0
        self.closed = False

    async def acquire_pool(self):
        self.acquire_calls += 1
        if self.error is not None:
            raise self.error
        return self.pool

    async def close(self):
        self.closed = True


def make_policy(**categories: tuple[bool, dict]) -> PermissionPolicy:
    """make_policy(insert=(False, {"sales": True}))"""
    return PermissionPolicy(
        {
            OperationCategory(name): CategoryPermission(allowed=allowed, overrides=overrides)
            for name, (allowed, overrides) in categories.items()
        }
    )


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def fake_pool(fake_conn):
    return FakePool(fake_conn)


@pytest.fixture
def fake_source(fake_pool):
    return FakeSource(fake_pool)


@pytest.fixture
def multi_db_source(fake_pool):
    return FakeSource(fake_pool, default_schema=None, multi_db_mode=True)


@pytest.fixture
def sample_rows():
    return [
        {"id": 1, "name": "Alice", "email": "alice@example.com"},
        {"id": 2, "name": "Bob", "email": "bob@example.com"},
    ]
