"""
SQL executors and connection management for customstore.

A SqlExecutor is the narrow seam between the store and a database: it runs
one compiled statement with its bound parameters and reports the dialect its
SQL must be written in. Two implementations ship here:

- SqliteExecutor: stdlib sqlite3, one connection per executor.
- PsycopgExecutor: PostgreSQL via psycopg 3, either borrowing connections
  from a pool or opening a dedicated connection per statement.

The PoolManager singleton owns the shared psycopg pool and closes it at exit.
Driver errors are re-raised as ExecutionError; statements are never retried.
Only opening a dedicated Postgres connection retries transient failures.
"""

from __future__ import annotations

import atexit
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Mapping, Optional, Protocol, runtime_checkable

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from customstore.config import Settings, get_settings
from customstore.exceptions import ExecutionError
from customstore.utils.logging import get_logger

log = get_logger(__name__)

Row = Dict[str, Any]


@runtime_checkable
class SqlExecutor(Protocol):
    """
    Runs compiled statements against one database.

    Attributes
    ----------
    dialect : str
        Dialect name the statements must be compiled for (e.g. "sqlite").
    """

    dialect: str

    def fetch_all(self, sql: str, params: Mapping[str, Any]) -> List[Row]:
        """Run a query and return every row as a column-name mapping."""
        ...

    def execute(self, sql: str, params: Mapping[str, Any]) -> int:
        """Run a write statement, commit it, and return the affected row count."""
        ...


def build_dsn(settings: Settings | None = None) -> str:
    """Compose a PostgreSQL DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


class SqliteExecutor:
    """
    SqlExecutor over a single sqlite3 connection.

    Pass ":memory:" for a throwaway database (handy in tests); the connection
    lives as long as the executor, so the data does too.
    """

    dialect: str = "sqlite"

    def __init__(self, path: str | Path = ":memory:") -> None:
        self._path = str(path)
        if self._path != ":memory:":
            Path(self._path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._path)
        self._conn.row_factory = sqlite3.Row

    def fetch_all(self, sql: str, params: Mapping[str, Any]) -> List[Row]:
        try:
            rows = self._conn.execute(sql, dict(params)).fetchall()
        except sqlite3.Error as exc:
            raise ExecutionError(str(exc)) from exc
        return [dict(row) for row in rows]

    def execute(self, sql: str, params: Mapping[str, Any]) -> int:
        try:
            with self._conn:
                cur = self._conn.execute(sql, dict(params))
        except sqlite3.Error as exc:
            raise ExecutionError(str(exc)) from exc
        return cur.rowcount

    def close(self) -> None:
        self._conn.close()


class PoolManager:
    """
    Thread-safe singleton for managing the psycopg connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._sync_pool = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_sync_pool(self, min_size: int | None = None, max_size: int | None = None) -> ConnectionPool:
        """
        Get or create the synchronous connection pool.

        Parameters
        ----------
        min_size : int | None
            Minimum number of idle connections to keep. Defaults to settings.
        max_size : int | None
            Maximum total connections in the pool. Defaults to settings.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        with self._lock:
            if self._sync_pool is None:
                settings = get_settings()
                self._sync_pool = ConnectionPool(
                    conninfo=build_dsn(settings),
                    min_size=min_size or settings.db_pool_min_size,
                    max_size=max_size or settings.db_pool_max_size,
                    open=True,
                )
            return self._sync_pool

    def close_all(self) -> None:
        """
        Close the managed pool and release its connections.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            if self._sync_pool is not None:
                pool, self._sync_pool = self._sync_pool, None
                try:
                    pool.close()
                except psycopg.Error as exc:
                    log.warning("Pool close failed", extra={"error": str(exc)})


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: str | None = None) -> Connection:
    """
    Open a dedicated psycopg connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


class PsycopgExecutor:
    """
    SqlExecutor for PostgreSQL.

    With a pool, each statement borrows a connection and the pool commits on
    return. Without one, each statement opens (and closes) a dedicated
    connection to ``dsn``.
    """

    dialect: str = "postgres"

    def __init__(self, pool: ConnectionPool | None = None, dsn: str | None = None) -> None:
        self._pool = pool
        self._dsn = dsn

    @classmethod
    def from_settings(cls) -> "PsycopgExecutor":
        return cls(pool=PoolManager().get_sync_pool())

    @contextmanager
    def _connection(self) -> Generator[Connection, None, None]:
        if self._pool is not None:
            with self._pool.connection() as conn:
                yield conn
            return
        conn = get_sync_connection(self._dsn)
        try:
            with conn.transaction():
                yield conn
        finally:
            conn.close()

    def fetch_all(self, sql: str, params: Mapping[str, Any]) -> List[Row]:
        try:
            with self._connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(sql, dict(params))
                    return cur.fetchall()
        except psycopg.Error as exc:
            raise ExecutionError(str(exc)) from exc

    def execute(self, sql: str, params: Mapping[str, Any]) -> int:
        try:
            with self._connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, dict(params))
                    return cur.rowcount
        except psycopg.Error as exc:
            raise ExecutionError(str(exc)) from exc


def get_executor(settings: Settings | None = None) -> SqlExecutor:
    """Build the executor selected by ``DB_DRIVER``."""
    settings = settings or get_settings()
    if settings.db_driver == "postgres":
        return PsycopgExecutor.from_settings()
    return SqliteExecutor(settings.sqlite_path)


__all__ = [
    "PoolManager",
    "PsycopgExecutor",
    "SqlExecutor",
    "SqliteExecutor",
    "build_dsn",
    "get_executor",
    "get_sync_connection",
]
