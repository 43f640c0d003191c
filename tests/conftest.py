"""
Pytest configuration for customstore.

Provides fixtures for:
- A frozen, manually advanced clock
- In-memory sqlite executors, compilers and stores
- Settings isolation and Postgres connection details for integration tests
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest

from customstore.compiler import StatementCompiler
from customstore.config import Settings, get_settings
from customstore.infrastructure.db_factory import SqliteExecutor, build_dsn
from customstore.store import RecordStore

TABLE_NAME = "custom_records"
START = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def executor() -> Generator[SqliteExecutor, None, None]:
    ex = SqliteExecutor(":memory:")
    try:
        yield ex
    finally:
        ex.close()


@pytest.fixture
def compiler(clock: FrozenClock) -> StatementCompiler:
    return StatementCompiler("sqlite", TABLE_NAME, clock=clock)


@pytest.fixture
def store(executor: SqliteExecutor, clock: FrozenClock) -> RecordStore:
    """Fresh store over an in-memory sqlite table."""
    return RecordStore(executor, TABLE_NAME, automigrate=True, clock=clock)


@pytest.fixture
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Drop the cached Settings and any environment overrides around a test.
    """
    for name in (
        "DB_DRIVER",
        "SQLITE_PATH",
        "STORE_TABLE",
        "STORE_AUTOMIGRATE",
        "LOG_LEVEL",
        "LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(os.path.dirname(__file__))  # keep a developer .env out of the way
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings for Postgres integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_driver="postgres",
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "customstore"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for integration tests.
    """
    return build_dsn(test_settings)
