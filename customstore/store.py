"""
RecordStore: record persistence over a single SQL table.

The store maps Records to rows and back, and drives the StatementCompiler
for every operation:

    store = RecordStore(SqliteExecutor("records.db"), "custom_records", automigrate=True)
    record = store.create(new_record("analysis_report", payload_map={"score": 0.9}))
    reports = store.list(RecordQuery().set_type("analysis_report").set_order_by("created_at"))
    store.soft_delete(record)

Each call is one self-contained round trip. There is no caching, locking or
retrying here; concurrent writers get whatever isolation the database gives.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping

from customstore.compiler import COUNT_LABEL, CompiledStatement, StatementCompiler
from customstore.config import get_settings
from customstore.domain.models import Record
from customstore.domain.query import (
    COLUMN_CREATED_AT,
    COLUMN_ID,
    COLUMN_MEMO,
    COLUMN_METAS,
    COLUMN_PAYLOAD,
    COLUMN_RECORD_TYPE,
    COLUMN_SOFT_DELETED_AT,
    COLUMN_UPDATED_AT,
    RecordQuery,
)
from customstore.exceptions import NotFoundError, ValidationError
from customstore.infrastructure.db_factory import SqlExecutor, get_executor
from customstore.infrastructure.schema import migrate_table
from customstore.utils.clock import (
    MAX_DATETIME,
    Clock,
    format_datetime,
    parse_datetime,
    to_utc,
    utc_now,
)
from customstore.utils.ids import new_id
from customstore.utils.logging import get_logger

log = get_logger(__name__)


def record_to_row(record: Record) -> Dict[str, Any]:
    """Column values for *record*, timestamps in the persisted format."""
    row = {
        COLUMN_ID: record.id,
        COLUMN_RECORD_TYPE: record.record_type,
        COLUMN_PAYLOAD: record.payload,
        COLUMN_MEMO: record.memo,
        COLUMN_METAS: record.metas,
    }
    for name in (COLUMN_CREATED_AT, COLUMN_UPDATED_AT, COLUMN_SOFT_DELETED_AT):
        value = getattr(record, name)
        if value is not None:
            row[name] = format_datetime(value)
    return row


def row_to_record(row: Mapping[str, Any]) -> Record:
    """
    Build a Record from a (possibly projected) row.

    Columns missing from the row keep the Record defaults; a row projected
    without the type column yields an empty record_type.
    """
    values: Dict[str, Any] = {}
    for name in (COLUMN_ID, COLUMN_PAYLOAD, COLUMN_MEMO, COLUMN_METAS):
        if row.get(name) is not None:
            values[name] = row[name]
    values["type"] = row.get(COLUMN_RECORD_TYPE) or ""
    for name in (COLUMN_CREATED_AT, COLUMN_UPDATED_AT, COLUMN_SOFT_DELETED_AT):
        parsed = parse_datetime(row.get(name))
        if parsed is not None:
            values[name] = parsed
    return Record(**values)


class RecordStore:
    """
    CRUD, list and count operations for records kept in one table.

    Parameters
    ----------
    executor : SqlExecutor
        Runs the compiled statements; its ``dialect`` selects the SQL syntax.
    table_name : str
        Record table name.
    automigrate : bool
        Create the table on construction when it does not exist.
    clock : Clock
        Source of "now" for timestamps and soft-delete visibility.
    id_factory : Callable[[], str]
        Produces ids for records created without one.
    """

    def __init__(
        self,
        executor: SqlExecutor,
        table_name: str,
        *,
        automigrate: bool = False,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._executor = executor
        self._clock = clock
        self._id_factory = id_factory
        self._compiler = StatementCompiler(executor.dialect, table_name, clock=clock)
        if automigrate:
            self.migrate()

    @classmethod
    def from_settings(cls) -> "RecordStore":
        """Build a store from environment settings (DB_DRIVER, STORE_TABLE, ...)."""
        settings = get_settings()
        return cls(
            get_executor(settings),
            settings.store_table,
            automigrate=settings.store_automigrate,
        )

    @property
    def table_name(self) -> str:
        return self._compiler.table_name

    @property
    def compiler(self) -> StatementCompiler:
        return self._compiler

    def migrate(self) -> None:
        """Create the record table if it does not exist."""
        migrate_table(self._executor, self.table_name)

    # -- internal helpers -------------------------------------------------

    def _fetch(self, stmt: CompiledStatement) -> List[Dict[str, Any]]:
        log.debug("SQL query", extra={"sql": stmt.sql, "params": stmt.params})
        return self._executor.fetch_all(stmt.sql, stmt.params)

    def _write(self, stmt: CompiledStatement) -> int:
        log.debug("SQL write", extra={"sql": stmt.sql, "params": stmt.params})
        return self._executor.execute(stmt.sql, stmt.params)

    def _now(self) -> datetime:
        # stored timestamps are whole seconds in UTC
        return to_utc(self._clock()).replace(microsecond=0)

    # -- public API -------------------------------------------------------

    def create(self, record: Record) -> Record:
        """
        Insert *record*, assigning an id when it has none.

        Both timestamps are set to now and the record starts undeleted. The
        passed record is updated in place once the row is written, and returned.
        """
        if not record.record_type:
            raise ValidationError("type is required")
        now = self._now()
        assigned = {
            COLUMN_ID: record.id or self._id_factory(),
            COLUMN_CREATED_AT: now,
            COLUMN_UPDATED_AT: now,
            COLUMN_SOFT_DELETED_AT: MAX_DATETIME,
        }
        self._write(self._compiler.insert(record_to_row(record.model_copy(update=assigned))))
        for name, value in assigned.items():
            setattr(record, name, value)
        log.info(
            "Record created",
            extra={"record_id": record.id, "record_type": record.record_type, "table": self.table_name},
        )
        return record

    def find_by_id(self, record_id: str) -> Record:
        """
        Return the record with *record_id*.

        Soft-deleted records are not found.

        Raises
        ------
        ValidationError
            If record_id is empty.
        NotFoundError
            If no visible record has that id.
        """
        if not record_id:
            raise ValidationError("id is required")
        records = self.list(RecordQuery().set_id(record_id).set_limit(1))
        if not records:
            raise NotFoundError(f"record '{record_id}' not found")
        return records[0]

    def list(self, query: RecordQuery | None = None) -> List[Record]:
        """Return the records matching *query* (all visible records if None)."""
        query = replace(query or RecordQuery(), count_only=False)
        rows = self._fetch(self._compiler.compile(query))
        return [row_to_record(row) for row in rows]

    def count(self, query: RecordQuery | None = None) -> int:
        """Count the records matching *query*, ignoring pagination and projection."""
        query = replace(query or RecordQuery(), count_only=True)
        rows = self._fetch(self._compiler.compile(query))
        return int(rows[0][COUNT_LABEL]) if rows else 0

    def update(self, record: Record) -> Record:
        """
        Replace the stored fields of *record* and refresh its updated_at.

        created_at is never rewritten. The record is only touched once the
        row has been written.

        Raises
        ------
        NotFoundError
            If no row has the record's id.
        """
        self._update(record, {COLUMN_UPDATED_AT: self._now()})
        log.info("Record updated", extra={"record_id": record.id, "table": self.table_name})
        return record

    def soft_delete(self, record: Record) -> Record:
        """Mark *record* deleted as of now; it stays in the table."""
        now = self._now()
        self._update(record, {COLUMN_UPDATED_AT: now, COLUMN_SOFT_DELETED_AT: now})
        log.info("Record soft-deleted", extra={"record_id": record.id, "table": self.table_name})
        return record

    def _update(self, record: Record, stamps: Dict[str, datetime]) -> None:
        if not record.id:
            raise ValidationError("id is required")
        values = record_to_row(record)
        values.update({name: format_datetime(value) for name, value in stamps.items()})
        del values[COLUMN_ID]
        values.pop(COLUMN_CREATED_AT, None)

        if self._write(self._compiler.update(record.id, values)) == 0:
            raise NotFoundError(f"record '{record.id}' not found")
        for name, value in stamps.items():
            setattr(record, name, value)

    def soft_delete_by_id(self, record_id: str) -> Record:
        return self.soft_delete(self.find_by_id(record_id))

    def delete(self, record: Record) -> None:
        """Remove *record*'s row permanently."""
        self.delete_by_id(record.id)

    def delete_by_id(self, record_id: str) -> None:
        """
        Remove the row with *record_id*, soft-deleted or not.

        Raises
        ------
        NotFoundError
            If no row has that id.
        """
        if not record_id:
            raise ValidationError("id is required")
        if self._write(self._compiler.delete(record_id)) == 0:
            raise NotFoundError(f"record '{record_id}' not found")
        log.info("Record deleted", extra={"record_id": record_id, "table": self.table_name})


__all__ = ["RecordStore", "record_to_row", "row_to_record"]
