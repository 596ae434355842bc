"""
Pytest configuration for sqlrecord.

Provides fixtures for:
- An in-memory SQLite connection with the demo schema applied
- A statement recorder to assert exactly which SQL a call issued
- Settings for the PostgreSQL integration tests
"""

from __future__ import annotations

import os
from typing import Any, Dict, Generator, List, Optional, Tuple

import pytest

from scripts.seed_demo import apply_schema
from sqlrecord.config import ConnectionConfig, Settings, get_settings
from sqlrecord.infrastructure.connection import Connection


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    return ConnectionConfig(driver="sqlite", database=":memory:")


@pytest.fixture
def db(sqlite_config: ConnectionConfig) -> Generator[Connection, None, None]:
    """
    Fresh in-memory database with the demo blog schema.
    """
    connection = Connection(sqlite_config)
    apply_schema(connection)
    try:
        yield connection
    finally:
        connection.close()


@pytest.fixture
def statements(db: Connection, monkeypatch: pytest.MonkeyPatch) -> List[Tuple[str, Any]]:
    """
    Record every (sql, params) pair sent through ``db.query`` from now on.
    """
    recorded: List[Tuple[str, Any]] = []
    original = db.query

    def _recording(sql: str, params: Any = None) -> Any:
        recorded.append((sql, params))
        return original(sql, params)

    monkeypatch.setattr(db, "query", _recording)
    return recorded


class RecordingConnection:
    """
    Stand-in for Connection that captures builder output and returns canned rows.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None) -> None:
        self.rows = rows or []
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def fetch_all(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        self.calls.append((sql, params))
        return list(self.rows)


@pytest.fixture
def recording_connection() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture for the PostgreSQL integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_driver="pgsql",
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_username=os.getenv("DB_USERNAME", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_database=os.getenv("DB_DATABASE", "sqlrecord"),
        log_level="DEBUG",
    )
