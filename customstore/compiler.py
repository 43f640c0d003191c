"""
Statement compiler: RecordQuery -> dialect-specific SQL.

The compiler is a straight pipeline of AND-ed predicates applied to a SELECT
over the record table, with two special cases:

- payload "must contain" needles form a single OR group;
- including soft-deleted records drops the soft-delete predicate outright
  rather than adding an alternative to it.

Output is a CompiledStatement holding SQL text in the dialect's parameter
style plus the bound parameters, ready for a SqlExecutor.

Usage:
    compiler = StatementCompiler("sqlite", "custom_records")
    stmt = compiler.compile(RecordQuery().set_type("note").set_limit(5))
    rows = executor.fetch_all(stmt.sql, stmt.params)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from sqlalchemy import DateTime, and_, delete, func, insert, literal, or_, select, update
from sqlalchemy.sql import ClauseElement, Select

from customstore.domain.query import (
    COLUMN_ID,
    COLUMN_PAYLOAD,
    COLUMN_RECORD_TYPE,
    COLUMN_SOFT_DELETED_AT,
    SORT_ASC,
    RecordQuery,
)
from customstore.infrastructure.schema import build_record_table, resolve_dialect
from customstore.utils.clock import Clock, format_datetime, utc_now

DEFAULT_OFFSET_LIMIT = 10
COUNT_LABEL = "count"


@dataclass(frozen=True)
class CompiledStatement:
    """
    SQL text plus bound parameters for one statement.

    ``columns`` lists the explicitly projected columns; empty means all.
    """

    sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    columns: List[str] = field(default_factory=list)


class StatementCompiler:
    """
    Compiles record queries and writes for one table in one SQL dialect.

    Parameters
    ----------
    dialect : str
        Dialect name ("sqlite", "postgres", "mysql").
    table : str
        Record table name.
    clock : Clock
        Source of "now" for the soft-delete predicate.
    """

    def __init__(self, dialect: str, table: str, clock: Clock = utc_now) -> None:
        self.dialect_name = dialect
        self._dialect = resolve_dialect(dialect)
        self._table = build_record_table(table)
        self._clock = clock

    @property
    def table_name(self) -> str:
        return self._table.name

    # -- queries ----------------------------------------------------------

    def build(self, query: RecordQuery) -> Tuple[Select, List[str]]:
        """
        Translate *query* into a SQLAlchemy SELECT and its projected columns.

        Raises ValidationError (from ``query.validate``) before building anything.
        The query itself is left untouched.
        """
        query.validate()
        t = self._table

        columns = list(query.columns)
        if query.count_only:
            stmt = select(func.count().label(COUNT_LABEL)).select_from(t)
        elif columns:
            stmt = select(*(t.c[name] for name in columns))
        else:
            stmt = select(t)

        include_soft_deleted = query.soft_deleted_included

        if query.is_id_set():
            stmt = stmt.where(t.c[COLUMN_ID] == query.id)

        if query.is_id_list_set():
            ids = query.sanitized_id_list()
            if ids:
                stmt = stmt.where(t.c[COLUMN_ID].in_(ids))

        payload_where = self._payload_where(query)
        if payload_where is not None:
            stmt = stmt.where(payload_where)

        if not query.count_only:
            stmt = self._apply_pagination(stmt, query)
            stmt = self._apply_order_by(stmt, query)

        if query.is_type_set():
            stmt = stmt.where(t.c[COLUMN_RECORD_TYPE] == query.record_type)

        if not include_soft_deleted:
            # typed bind: a bare string would be compared as VARCHAR on postgres
            now = literal(format_datetime(self._clock()), DateTime)
            stmt = stmt.where(t.c[COLUMN_SOFT_DELETED_AT] > now)

        return stmt, columns

    def compile(self, query: RecordQuery) -> CompiledStatement:
        """Build and render *query*; count-only queries render a COUNT(*)."""
        stmt, columns = self.build(query)
        return self._render(stmt, [] if query.count_only else columns)

    def _payload_where(self, query: RecordQuery) -> ClauseElement | None:
        payload = self._table.c[COLUMN_PAYLOAD]
        conds = []
        if query.payload_search:
            conds.append(
                or_(*(payload.contains(needle, autoescape=True) for needle in query.payload_search))
            )
        for needle in query.payload_search_not:
            conds.append(~payload.contains(needle, autoescape=True))
        if not conds:
            return None
        return and_(*conds)

    def _apply_pagination(self, stmt: Select, query: RecordQuery) -> Select:
        limit = query.limit
        if query.is_offset_set() and not query.is_limit_set():
            limit = DEFAULT_OFFSET_LIMIT  # offset requires a bound
        if limit is not None:
            stmt = stmt.limit(limit)
        if query.is_offset_set():
            stmt = stmt.offset(query.offset)
        return stmt

    def _apply_order_by(self, stmt: Select, query: RecordQuery) -> Select:
        if not query.is_order_by_set():
            return stmt
        col = self._table.c[query.order_by]
        if query.sort_order == SORT_ASC:
            return stmt.order_by(col.asc())
        return stmt.order_by(col.desc())

    # -- writes -----------------------------------------------------------

    def insert(self, values: Mapping[str, Any]) -> CompiledStatement:
        return self._render(insert(self._table).values(dict(values)))

    def update(self, record_id: str, values: Mapping[str, Any]) -> CompiledStatement:
        stmt = (
            update(self._table)
            .where(self._table.c[COLUMN_ID] == record_id)
            .values(dict(values))
        )
        return self._render(stmt)

    def delete(self, record_id: str) -> CompiledStatement:
        return self._render(delete(self._table).where(self._table.c[COLUMN_ID] == record_id))

    # -- rendering --------------------------------------------------------

    def _render(self, stmt: ClauseElement, columns: List[str] | None = None) -> CompiledStatement:
        # render_postcompile expands IN lists into one bound parameter per id
        compiled = stmt.compile(
            dialect=self._dialect, compile_kwargs={"render_postcompile": True}
        )
        return CompiledStatement(
            sql=str(compiled),
            params=dict(compiled.params),
            columns=list(columns or []),
        )


__all__ = [
    "COUNT_LABEL",
    "CompiledStatement",
    "DEFAULT_OFFSET_LIMIT",
    "StatementCompiler",
]
