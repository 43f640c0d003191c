from __future__ import annotations

import pytest

from customstore.compiler import DEFAULT_OFFSET_LIMIT, StatementCompiler
from customstore.domain.query import RecordQuery
from customstore.exceptions import ValidationError

NOW_TEXT = "2026-01-15 12:00:00"


def _where(sql: str) -> str:
    """The part of a compiled SELECT after WHERE ('' when there is none)."""
    return sql.split("WHERE", 1)[1] if "WHERE" in sql else ""


class TestSoftDeleteVisibility:
    def test_default_query_hides_soft_deleted_rows(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery())
        assert "custom_records.soft_deleted_at >" in _where(stmt.sql)
        assert NOW_TEXT in stmt.params.values()

    def test_including_soft_deleted_drops_the_predicate(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_soft_deleted_included(True))
        assert "WHERE" not in stmt.sql
        assert stmt.params == {}

    def test_including_soft_deleted_keeps_other_filters(self, compiler: StatementCompiler):
        query = RecordQuery().set_soft_deleted_included(True).set_type("note").set_id("a")
        where = _where(compiler.compile(query).sql)
        assert "custom_records.type =" in where
        assert "custom_records.id =" in where
        assert "soft_deleted_at" not in where

    def test_now_comes_from_the_clock(self, compiler: StatementCompiler, clock):
        clock.advance(days=1)
        stmt = compiler.compile(RecordQuery())
        assert "2026-01-16 12:00:00" in stmt.params.values()


class TestFilters:
    def test_id_filter(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_id("rec_1"))
        assert "custom_records.id = :" in stmt.sql
        assert "rec_1" in stmt.params.values()

    def test_cleared_id_adds_no_predicate(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_id("rec_1").set_id(""))
        assert "custom_records.id =" not in stmt.sql
        assert "rec_1" not in stmt.params.values()

    def test_id_list_expands_into_one_parameter_per_id(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_id_list(["rec_1", "rec_3"]))
        assert "custom_records.id IN (" in stmt.sql
        assert "POSTCOMPILE" not in stmt.sql
        values = list(stmt.params.values())
        assert "rec_1" in values
        assert "rec_3" in values

    def test_type_filter(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_type("analysis_report"))
        assert "custom_records.type = :" in stmt.sql
        assert "analysis_report" in stmt.params.values()

    def test_invalid_query_is_never_compiled(self, compiler: StatementCompiler):
        with pytest.raises(ValidationError, match="type is required"):
            compiler.compile(RecordQuery().set_type(""))
        with pytest.raises(ValidationError, match="id list contains empty strings"):
            compiler.compile(RecordQuery().set_id_list(["a", "", "b"]))


class TestPayloadSearch:
    def test_includes_are_or_ed_and_excludes_and_ed(self, compiler: StatementCompiler):
        query = (
            RecordQuery()
            .add_payload_search("x")
            .add_payload_search("y")
            .add_payload_search_not("z")
            .add_payload_search_not("w")
        )
        where = _where(compiler.compile(query).sql)
        assert where.count(" OR ") == 1
        assert where.count("NOT LIKE") == 2
        assert where.count("LIKE") == 4
        assert "(custom_records.payload LIKE" in where

    def test_wildcards_in_needles_are_escaped(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().add_payload_search("50%_off"))
        assert "ESCAPE" in stmt.sql
        assert "50/%/_off" in stmt.params.values()

    def test_no_needles_no_payload_predicate(self, compiler: StatementCompiler):
        assert "payload LIKE" not in compiler.compile(RecordQuery()).sql


class TestPaginationAndOrdering:
    def test_offset_without_limit_implies_default_limit(self, compiler: StatementCompiler):
        query = RecordQuery().set_offset(20)
        stmt = compiler.compile(query)
        assert "LIMIT" in stmt.sql
        assert "OFFSET" in stmt.sql
        assert DEFAULT_OFFSET_LIMIT in stmt.params.values()
        assert 20 in stmt.params.values()
        assert not query.is_limit_set()

    def test_explicit_limit_is_kept(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_limit(3).set_offset(6))
        assert 3 in stmt.params.values()
        assert DEFAULT_OFFSET_LIMIT not in stmt.params.values()

    def test_order_by_defaults_to_descending(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_order_by("created_at"))
        assert "ORDER BY custom_records.created_at DESC" in stmt.sql

    def test_order_by_ascending_on_request(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_order_by("id").set_sort_order("asc"))
        assert "ORDER BY custom_records.id ASC" in stmt.sql

    def test_count_only_ignores_pagination_ordering_and_projection(self, compiler: StatementCompiler):
        query = (
            RecordQuery()
            .set_count_only(True)
            .set_limit(5)
            .set_offset(10)
            .set_order_by("created_at")
            .set_columns(["id"])
            .set_type("note")
        )
        stmt = compiler.compile(query)
        assert "count(*)" in stmt.sql
        assert "LIMIT" not in stmt.sql
        assert "ORDER BY" not in stmt.sql
        assert stmt.columns == []
        assert "note" in stmt.params.values()


class TestProjection:
    def test_projected_columns_are_selected_and_returned(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery().set_columns(["id", "payload"]))
        assert stmt.sql.startswith("SELECT custom_records.id, custom_records.payload")
        assert stmt.columns == ["id", "payload"]

    def test_no_projection_selects_every_column(self, compiler: StatementCompiler):
        stmt = compiler.compile(RecordQuery())
        assert "custom_records.soft_deleted_at" in stmt.sql.split("FROM")[0]
        assert stmt.columns == []


class TestDialects:
    def test_postgres_uses_pyformat_parameters(self, clock):
        compiler = StatementCompiler("postgres", "custom_records", clock=clock)
        stmt = compiler.compile(RecordQuery().set_id("rec_1").add_payload_search("x"))
        assert "%(" in stmt.sql
        assert ":id" not in stmt.sql
        assert "rec_1" in stmt.params.values()

    def test_mysql_is_supported(self, clock):
        stmt = StatementCompiler("mysql", "custom_records", clock=clock).compile(
            RecordQuery().set_limit(2)
        )
        assert "LIMIT" in stmt.sql

    def test_postgres_soft_delete_bind_is_typed_as_timestamp(self, clock):
        stmt = StatementCompiler("postgres", "custom_records", clock=clock).compile(RecordQuery())
        where = _where(stmt.sql)
        assert "custom_records.soft_deleted_at >" in where
        assert "VARCHAR" not in where
        assert NOW_TEXT in stmt.params.values()

    def test_unknown_dialect_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown dialect"):
            StatementCompiler("oracle-ish", "custom_records")


class TestWrites:
    def test_insert_binds_every_value(self, compiler: StatementCompiler):
        stmt = compiler.insert({"id": "a", "type": "note", "payload": "{}"})
        assert stmt.sql.startswith("INSERT INTO custom_records")
        assert set(stmt.params.values()) >= {"a", "note", "{}"}

    def test_update_is_keyed_by_id(self, compiler: StatementCompiler):
        stmt = compiler.update("a", {"memo": "changed"})
        assert stmt.sql.startswith("UPDATE custom_records SET memo=")
        assert "WHERE custom_records.id = :" in stmt.sql
        assert set(stmt.params.values()) == {"a", "changed"}

    def test_delete_is_keyed_by_id(self, compiler: StatementCompiler):
        stmt = compiler.delete("a")
        assert stmt.sql.startswith("DELETE FROM custom_records WHERE custom_records.id = :")
        assert list(stmt.params.values()) == ["a"]
