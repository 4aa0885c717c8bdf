"""Test heuristic target-schema resolution."""
import pytest

from mysql_mcp.governance.schema_resolver import resolve_schema


class TestSingleDatabaseMode:

    def test_configured_default_always_wins(self):
        sql = "INSERT INTO sales.orders VALUES (1)"
        assert resolve_schema(sql, "app", multi_db_mode=False) == "app"

    def test_use_ignored_in_single_db_mode(self):
        assert resolve_schema("USE other; SELECT 1", "app", multi_db_mode=False) == "app"


class TestMultiDatabaseMode:

    def test_use_statement(self):
        sql = "USE reporting; SELECT * FROM events;"
        assert resolve_schema(sql, None, multi_db_mode=True) == "reporting"

    @pytest.mark.parametrize("sql", [
        "use reporting",
        "USE `reporting`",
        "  Use   reporting ;",
    ])
    def test_use_case_whitespace_backticks(self, sql):
        assert resolve_schema(sql, None, multi_db_mode=True) == "reporting"

    def test_qualified_table(self):
        sql = "INSERT INTO sales.orders (id) VALUES (1)"
        assert resolve_schema(sql, None, multi_db_mode=True) == "sales"

    def test_backticked_qualified_table(self):
        sql = "DELETE FROM `hr`.`payroll` WHERE id = 1"
        assert resolve_schema(sql, None, multi_db_mode=True) == "hr"

    def test_use_beats_qualification(self):
        sql = "USE reporting; SELECT * FROM sales.orders"
        assert resolve_schema(sql, None, multi_db_mode=True) == "reporting"

    def test_first_qualification_wins(self):
        sql = "INSERT INTO hr.audit SELECT * FROM sales.orders"
        assert resolve_schema(sql, None, multi_db_mode=True) == "hr"

    def test_unqualified_returns_none(self):
        assert resolve_schema("SELECT * FROM events", None, multi_db_mode=True) is None

    def test_unqualified_falls_back_to_default(self):
        # multi-DB mode with a default is only reachable through explicit callers
        assert resolve_schema("SELECT * FROM events", "app", multi_db_mode=True) == "app"

    def test_empty_default_treated_as_absent(self):
        assert resolve_schema("SELECT 1", "", multi_db_mode=False) is None
