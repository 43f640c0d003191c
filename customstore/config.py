"""
Configuration settings for customstore.

Uses Pydantic Settings to load environment variables (or a local ``.env``)
for the database connection, the record table, and logging. Library users
who wire their own executor do not need any of this; the CLI and
``RecordStore.from_settings`` read it.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_driver: Literal["sqlite", "postgres"] = Field("sqlite", alias="DB_DRIVER")
    sqlite_path: str = Field("customstore.db", alias="SQLITE_PATH")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("customstore", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")

    # Store
    store_table: str = Field("custom_records", alias="STORE_TABLE")
    store_automigrate: bool = Field(True, alias="STORE_AUTOMIGRATE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
