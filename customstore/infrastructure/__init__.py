"""
Infrastructure package for customstore.

Centralizes database concerns: the record table definition and migrator,
dialect resolution, and the SQL executors (sqlite, psycopg pooling).
Keep this layer focused on I/O and resource management.
"""

from customstore.infrastructure.db_factory import (
    PsycopgExecutor,
    SqlExecutor,
    SqliteExecutor,
    get_executor,
)
from customstore.infrastructure.schema import migrate_table, resolve_dialect

__all__ = [
    "PsycopgExecutor",
    "SqlExecutor",
    "SqliteExecutor",
    "get_executor",
    "migrate_table",
    "resolve_dialect",
]
