"""
customstore - JSON document records on top of a single SQL table.

Records carry a type, a unique id, a JSON payload, a memo, string metas and
lifecycle timestamps. The package provides:

- a fluent RecordQuery builder (type, id, id list, payload substring search,
  pagination, ordering, soft-delete visibility)
- a StatementCompiler that turns a query into dialect-specific SQL
  (sqlite, PostgreSQL, MySQL)
- a RecordStore implementing create/find/update/delete/soft-delete/list/count
  over any SqlExecutor
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from customstore.compiler import CompiledStatement, StatementCompiler
from customstore.config import Settings, get_settings
from customstore.domain.models import Record, new_record
from customstore.domain.query import RecordQuery
from customstore.exceptions import (
    CustomStoreError,
    EncodingError,
    ExecutionError,
    NotFoundError,
    ValidationError,
)
from customstore.infrastructure.db_factory import PsycopgExecutor, SqlExecutor, SqliteExecutor
from customstore.store import RecordStore
from customstore.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records and queries
    "Record",
    "RecordQuery",
    "new_record",
    # Compilation and persistence
    "CompiledStatement",
    "StatementCompiler",
    "RecordStore",
    # Executors
    "SqlExecutor",
    "SqliteExecutor",
    "PsycopgExecutor",
    # Errors
    "CustomStoreError",
    "EncodingError",
    "ExecutionError",
    "NotFoundError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
