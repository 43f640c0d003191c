from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from customstore.infrastructure.db_factory import SqliteExecutor
from customstore.infrastructure.schema import (
    available_dialects,
    create_table_sql,
    migrate_table,
    resolve_dialect,
)
from customstore.utils.clock import MAX_DATETIME, format_datetime, parse_datetime, utc_now
from customstore.utils.ids import new_id


class TestClock:
    def test_utc_now_has_whole_seconds(self):
        now = utc_now()
        assert now.microsecond == 0
        assert now.tzinfo is not None

    def test_format_converts_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        assert format_datetime(datetime(2026, 1, 15, 14, 0, 0, tzinfo=plus_two)) == "2026-01-15 12:00:00"

    def test_max_datetime_text(self):
        assert format_datetime(MAX_DATETIME) == "9999-12-31 23:59:59"

    @pytest.mark.parametrize(
        "raw",
        [
            "2026-01-15 12:00:00",
            "2026-01-15T12:00:00",
            "2026-01-15T12:00:00Z",
            "2026-01-15 12:00:00.250000",
            datetime(2026, 1, 15, 12, 0, 0),
        ],
    )
    def test_parse_accepts_column_iso_and_native_values(self, raw):
        assert parse_datetime(raw) == datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def test_parse_empty_is_none(self):
        assert parse_datetime(None) is None
        assert parse_datetime("") is None


class TestIds:
    def test_ids_are_32_digits(self):
        value = new_id()
        assert len(value) == 32
        assert value.isdigit()

    def test_ids_are_unique(self):
        assert len({new_id() for _ in range(200)}) == 200


class TestSchema:
    def test_known_dialects(self):
        assert {"sqlite", "postgres", "mysql"} <= set(available_dialects())
        assert resolve_dialect("SQLite").name == "sqlite"

    def test_unknown_dialect(self):
        with pytest.raises(ValueError, match="Unknown dialect 'db2'"):
            resolve_dialect("db2")

    def test_create_table_sql_is_idempotent_ddl(self):
        sql = create_table_sql("sqlite", "custom_records")
        assert sql.startswith("CREATE TABLE IF NOT EXISTS custom_records")
        for column in ("id", "type", "payload", "memo", "metas", "soft_deleted_at"):
            assert column in sql

    def test_migrate_table_twice(self):
        executor = SqliteExecutor(":memory:")
        try:
            migrate_table(executor, "custom_records")
            migrate_table(executor, "custom_records")
            assert executor.fetch_all("SELECT count(*) AS n FROM custom_records", {}) == [{"n": 0}]
        finally:
            executor.close()
