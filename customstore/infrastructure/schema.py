"""
Record table definition, SQL dialect registry, and table migrator.

The table layout is fixed; only its name varies per store. Statements are
built with SQLAlchemy Core against this definition and compiled for the
executor's dialect, but never executed through a SQLAlchemy engine: the
compiled SQL text and bound parameters go to a SqlExecutor.
"""

from __future__ import annotations

from typing import Callable, Dict

from sqlalchemy import Column, DateTime, MetaData, String, Table, Text
from sqlalchemy.engine import Dialect
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.schema import CreateTable

from customstore.domain.query import (
    COLUMN_CREATED_AT,
    COLUMN_ID,
    COLUMN_MEMO,
    COLUMN_METAS,
    COLUMN_PAYLOAD,
    COLUMN_RECORD_TYPE,
    COLUMN_SOFT_DELETED_AT,
    COLUMN_UPDATED_AT,
)
from customstore.utils.logging import get_logger

log = get_logger(__name__)

ID_LENGTH = 40
TYPE_LENGTH = 100

# sqlite3 takes :name parameters; psycopg and pymysql take %(name)s.
_DIALECTS: Dict[str, Callable[[], Dialect]] = {
    "sqlite": lambda: sqlite.dialect(paramstyle="named"),
    "postgres": lambda: postgresql.dialect(paramstyle="pyformat"),
    "postgresql": lambda: postgresql.dialect(paramstyle="pyformat"),
    "mysql": lambda: mysql.dialect(paramstyle="pyformat"),
}


def available_dialects() -> list[str]:
    """List supported dialect names."""
    return sorted(_DIALECTS.keys())


def resolve_dialect(name: str) -> Dialect:
    factory = _DIALECTS.get(name.lower())
    if factory is None:
        raise ValueError(f"Unknown dialect '{name}'. Available: {', '.join(available_dialects())}")
    return factory()


def build_record_table(name: str, metadata: MetaData | None = None) -> Table:
    """Describe the record table called *name*."""
    if not name:
        raise ValueError("table name is required")
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column(COLUMN_ID, String(ID_LENGTH), primary_key=True),
        Column(COLUMN_RECORD_TYPE, String(TYPE_LENGTH), nullable=False),
        Column(COLUMN_PAYLOAD, Text, nullable=False),
        Column(COLUMN_MEMO, Text, nullable=False),
        Column(COLUMN_METAS, Text, nullable=False),
        Column(COLUMN_CREATED_AT, DateTime, nullable=False),
        Column(COLUMN_UPDATED_AT, DateTime, nullable=False),
        Column(COLUMN_SOFT_DELETED_AT, DateTime, nullable=False),
    )


def create_table_sql(dialect_name: str, table_name: str) -> str:
    """Render ``CREATE TABLE IF NOT EXISTS`` for the record table."""
    ddl = CreateTable(build_record_table(table_name), if_not_exists=True)
    return str(ddl.compile(dialect=resolve_dialect(dialect_name))).strip()


def migrate_table(executor, table_name: str) -> None:
    """
    Ensure the record table exists on *executor*'s database.

    Parameters
    ----------
    executor : SqlExecutor
        Executor whose ``dialect`` selects the DDL syntax.
    table_name : str
        Name of the record table.
    """
    sql = create_table_sql(executor.dialect, table_name)
    log.info("Ensuring record table", extra={"table": table_name, "dialect": executor.dialect})
    executor.execute(sql, {})


__all__ = [
    "available_dialects",
    "build_record_table",
    "create_table_sql",
    "migrate_table",
    "resolve_dialect",
]
