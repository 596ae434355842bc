from __future__ import annotations

from typing import Any, Dict, List

import psycopg
import pytest
from psycopg.rows import dict_row

from sqlrecord.config import ConnectionConfig
from sqlrecord.exceptions import DatabaseConnectionError, QueryError
from sqlrecord.infrastructure import drivers
from sqlrecord.infrastructure.connection import Connection
from sqlrecord.infrastructure.drivers import (
    PostgresDriver,
    SqliteDriver,
    available_drivers,
    named_to_pyformat,
    resolve_driver,
)

GENERATED_ID = 41
PG_PORT = 5433


def _pg_config(**overrides: Any) -> ConnectionConfig:
    values: Dict[str, Any] = {
        "driver": "pgsql",
        "host": "db.internal",
        "port": PG_PORT,
        "database": "blog",
        "username": "app",
        "password": "secret",
    }
    values.update(overrides)
    return ConnectionConfig(**values)


class _FakeCursor:
    def __init__(self, rows: List[Dict[str, Any]]) -> None:
        self.rows = rows
        self.executed: List[Any] = []
        self.rowcount = len(rows)
        self.closed = False

    def execute(self, sql: str, params: Any = None) -> "_FakeCursor":
        self.executed.append((sql, params))
        return self

    def fetchall(self) -> List[Dict[str, Any]]:
        return self.rows

    def fetchone(self) -> Any:
        return self.rows[0] if self.rows else None

    def close(self) -> None:
        self.closed = True


class _FakePgConnection:
    def __init__(self, conninfo: str, **kwargs: Any) -> None:
        self.conninfo = conninfo
        self.kwargs = kwargs
        self.autocommit = kwargs.get("autocommit", False)
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.cursors: List[_FakeCursor] = []
        self.lastval_calls = 0
        self.commit_error: Any = None

    def cursor(self) -> _FakeCursor:
        cursor = _FakeCursor([{"id": 1}])
        self.cursors.append(cursor)
        return cursor

    def execute(self, sql: str) -> _FakeCursor:
        assert sql == "SELECT lastval()"
        self.lastval_calls += 1
        return _FakeCursor([{"lastval": GENERATED_ID}])

    def commit(self) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_psycopg(monkeypatch: pytest.MonkeyPatch) -> List[_FakePgConnection]:
    opened: List[_FakePgConnection] = []

    def _connect(conninfo: str, **kwargs: Any) -> _FakePgConnection:
        connection = _FakePgConnection(conninfo, **kwargs)
        opened.append(connection)
        return connection

    monkeypatch.setattr(drivers.psycopg, "connect", _connect)
    return opened


def test_named_to_pyformat_rewrites_placeholders_only():
    sql = "SELECT * FROM t WHERE a = :param_0 AND b::int > 1 AND c LIKE '5%' AND d = :d"
    assert named_to_pyformat(sql) == (
        "SELECT * FROM t WHERE a = %(param_0)s AND b::int > 1 AND c LIKE '5%%' AND d = %(d)s"
    )


def test_named_to_pyformat_leaves_time_literals_alone():
    assert named_to_pyformat("SELECT '12:30'") == "SELECT '12:30'"


def test_postgres_prepare_by_param_style():
    driver = PostgresDriver()
    assert driver.prepare("SELECT :a", {"a": 1}) == ("SELECT %(a)s", {"a": 1})
    assert driver.prepare("SELECT '100%'", {}) == ("SELECT '100%'", None)
    assert driver.prepare("SELECT %s", [1]) == ("SELECT %s", [1])


def test_sqlite_prepare_defaults_to_empty_tuple():
    driver = SqliteDriver()
    assert driver.prepare("SELECT 1", None) == ("SELECT 1", ())
    assert driver.prepare("SELECT ?", [1]) == ("SELECT ?", (1,))


def test_resolve_driver_aliases():
    assert isinstance(resolve_driver("postgresql"), PostgresDriver)
    assert isinstance(resolve_driver("pgsql"), PostgresDriver)
    assert isinstance(resolve_driver("sqlite"), SqliteDriver)
    assert "sqlite" in available_drivers()
    with pytest.raises(DatabaseConnectionError):
        resolve_driver("mysql")


def test_conninfo_built_from_config():
    conninfo = PostgresDriver().conninfo(_pg_config())
    for part in ("host=db.internal", f"port={PG_PORT}", "dbname=blog", "user=app", "client_encoding=utf8"):
        assert part in conninfo


def test_postgres_connect_options(fake_psycopg):
    connection = Connection(_pg_config(options={"connect_timeout": 5}))
    connection.connect()

    opened = fake_psycopg[0]
    assert opened.kwargs["autocommit"] is True
    assert opened.kwargs["row_factory"] is dict_row
    assert opened.kwargs["connect_timeout"] == 5
    assert connection.connect() is opened
    assert len(fake_psycopg) == 1


def test_postgres_query_translates_placeholders(fake_psycopg):
    connection = Connection(_pg_config())
    rows = connection.select().from_("authors").where("name", "=", "Ada").get()

    cursor = fake_psycopg[0].cursors[0]
    assert cursor.executed == [
        ("SELECT * FROM authors WHERE name = %(param_0)s", {"param_0": "Ada"})
    ]
    assert rows == [{"id": 1}]


def test_postgres_insert_reads_lastval(fake_psycopg):
    connection = Connection(_pg_config())
    assert connection.insert("authors", {"name": "Ada"}) == GENERATED_ID


def test_postgres_transactions_toggle_autocommit(fake_psycopg):
    connection = Connection(_pg_config())

    connection.begin_transaction()
    handle = fake_psycopg[0]
    assert handle.autocommit is False
    connection.commit()
    assert handle.autocommit is True
    assert handle.commits == 1

    connection.begin_transaction()
    connection.rollback()
    assert handle.autocommit is True
    assert handle.rollbacks == 1


def test_postgres_connect_failure_is_wrapped(monkeypatch):
    def _refuse(conninfo: str, **kwargs: Any) -> None:
        raise psycopg.OperationalError("connection refused: boom")

    monkeypatch.setattr(drivers.psycopg, "connect", _refuse)
    connection = Connection(_pg_config())

    with pytest.raises(DatabaseConnectionError, match="boom") as info:
        connection.connect()
    assert info.value.dsn == f"pgsql:host=db.internal;port={PG_PORT};dbname=blog;charset=utf8"
    assert "secret" not in str(info.value)


def test_postgres_execute_failure_is_wrapped(fake_psycopg, monkeypatch):
    connection = Connection(_pg_config())
    handle = connection.connect()

    def _broken_cursor() -> Any:
        class _Cursor:
            def execute(self, sql: str, params: Any = None) -> None:
                raise psycopg.errors.UndefinedTable('relation "nope" does not exist')

        return _Cursor()

    monkeypatch.setattr(handle, "cursor", _broken_cursor)
    with pytest.raises(QueryError, match="nope") as info:
        connection.fetch_all("SELECT * FROM nope")
    assert info.value.sql == "SELECT * FROM nope"


def test_postgres_failed_commit_restores_autocommit(fake_psycopg):
    connection = Connection(_pg_config())
    connection.begin_transaction()
    handle = fake_psycopg[0]
    handle.commit_error = psycopg.errors.SerializationFailure("could not serialize access")

    with pytest.raises(QueryError, match="COMMIT failed"):
        connection.commit()

    assert handle.autocommit is True
    assert handle.commits == 0


def test_postgres_insert_with_own_key_skips_lastval(fake_psycopg):
    connection = Connection(_pg_config())

    assert connection.insert("settings", {"key": "theme"}, returning_id=False) is None
    assert fake_psycopg[0].lastval_calls == 0

    assert connection.insert("authors", {"name": "Ada"}) == GENERATED_ID
    assert fake_psycopg[0].lastval_calls == 1


def test_postgres_fetch_closes_cursor(fake_psycopg):
    connection = Connection(_pg_config())
    assert connection.fetch("SELECT 1") == {"id": 1}
    assert fake_psycopg[0].cursors[0].closed
