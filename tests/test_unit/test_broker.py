"""Unit tests for the classify → authorize → execute pipeline."""
import pytest

from mysql_mcp.broker import QueryBroker
from mysql_mcp.exceptions import SQLParseError
from mysql_mcp.executor import SET_READ_ONLY
from mysql_mcp.governance.sql_guard import StatementKind

from conftest import FakeConnection, FakePool, FakeSource, header, make_policy


@pytest.fixture
def sales_policy():
    # global insert=false, SCHEMA_INSERT_PERMISSIONS="sales:true"
    return make_policy(insert=(False, {"sales": True}))


class TestSchemaOverrideScenario:

    async def test_insert_into_allowed_schema_commits(self, sales_policy):
        conn = FakeConnection(results=[header(rowcount=1, lastrowid=5)])
        source = FakeSource(FakePool(conn), default_schema=None, multi_db_mode=True)
        broker = QueryBroker(source, sales_policy)

        envelope = await broker.run("INSERT INTO sales.orders (id) VALUES (5)")

        assert envelope.is_error is False
        assert "Last insert ID: 5" in envelope.text
        assert conn.count("commit") == 1

    async def test_insert_into_other_schema_denied_without_connection(self, sales_policy):
        source = FakeSource(default_schema=None, multi_db_mode=True)
        broker = QueryBroker(source, sales_policy)

        envelope = await broker.run("INSERT INTO hr.payroll (id) VALUES (1)")

        assert envelope.is_error is True
        assert "INSERT operations are not allowed for schema 'hr'" in envelope.text
        assert envelope.text.startswith("Error: ")
        assert source.acquire_calls == 0
        assert source.pool.acquired == 0


class TestCompositeScripts:

    async def test_allowed_insert_with_denied_delete_is_denied(self):
        policy = make_policy(insert=(True, {}), delete=(False, {}))
        source = FakeSource(default_schema="sales")
        broker = QueryBroker(source, policy)

        envelope = await broker.run(
            "INSERT INTO orders VALUES (1); DELETE FROM orders WHERE id = 2"
        )

        assert envelope.is_error is True
        assert "DELETE operations are not allowed for schema 'sales'" in envelope.text
        assert source.acquire_calls == 0


class TestReadPath:

    async def test_select_is_never_denied(self):
        conn = FakeConnection()
        source = FakeSource(FakePool(conn))
        broker = QueryBroker(source, make_policy())

        envelope = await broker.run("SELECT * FROM t")

        assert envelope.is_error is False
        assert conn.executed[0] == SET_READ_ONLY

    async def test_parse_error_propagates_before_acquisition(self):
        source = FakeSource()
        broker = QueryBroker(source, make_policy())

        with pytest.raises(SQLParseError):
            await broker.run("SELECT (1")

        assert source.acquire_calls == 0
        assert source.pool.acquired == 0
        assert source.pool.released == 0


class TestPlan:

    def test_multi_db_use_statement(self):
        source = FakeSource(default_schema=None, multi_db_mode=True)
        broker = QueryBroker(source, make_policy())

        plan = broker.plan("USE reporting; SELECT * FROM events;")

        assert plan.schema == "reporting"
        assert plan.kinds == (StatementKind.OTHER, StatementKind.SELECT)
        assert plan.is_write is False

    def test_single_db_uses_source_default(self):
        broker = QueryBroker(FakeSource(default_schema="app"), make_policy())
        assert broker.plan("DELETE FROM other.t").schema == "app"
