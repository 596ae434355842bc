"""
Driver adapters used by ``Connection``.

The connection layer speaks one placeholder dialect (``:name`` named
parameters, as rendered by the query builder) and one row shape (a dict per
row). Each adapter maps that onto a concrete DB-API module:

- ``PostgresDriver``: psycopg 3, named placeholders rewritten to ``%(name)s``.
- ``SqliteDriver``: stdlib sqlite3, which accepts ``:name`` natively.
"""

from __future__ import annotations

import abc
import re
import sqlite3
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Type, runtime_checkable

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row

from sqlrecord.config import ConnectionConfig
from sqlrecord.exceptions import DatabaseConnectionError, Params

# ``:name`` not preceded by another colon or word char, so ``::int`` casts and
# ``12:30`` literals are left alone.
_NAMED_PARAM = re.compile(r"(?<![:\w]):([A-Za-z_]\w*)")


def named_to_pyformat(sql: str) -> str:
    """
    Rewrite ``:name`` placeholders to psycopg's ``%(name)s`` style.

    Literal ``%`` characters are doubled so psycopg does not read them as
    placeholders.
    """
    escaped = sql.replace("%", "%%")
    return _NAMED_PARAM.sub(r"%(\1)s", escaped)


@runtime_checkable
class Driver(Protocol):
    """
    Interface every driver adapter implements.

    Attributes
    ----------
    name : str
        Canonical driver name.
    error_types : tuple
        Exception classes raised by the underlying DB-API module.
    """

    name: str
    error_types: Tuple[Type[BaseException], ...]

    def connect(self, config: ConnectionConfig) -> Any: ...

    def prepare(self, sql: str, params: Params) -> Tuple[str, Params]: ...

    def last_insert_id(self, handle: Any, cursor: Any) -> str: ...

    def begin(self, handle: Any) -> None: ...

    def commit(self, handle: Any) -> None: ...

    def rollback(self, handle: Any) -> None: ...


class AbstractDriver(abc.ABC):
    """
    ABC helper for driver adapters.

    Subclasses set ``name`` and ``error_types`` and implement ``connect``,
    ``last_insert_id`` and the transaction hooks.
    """

    name: str
    error_types: Tuple[Type[BaseException], ...] = ()

    @abc.abstractmethod
    def connect(self, config: ConnectionConfig) -> Any:  # pragma: no cover - interface only
        """Open and return a native connection handle."""
        raise NotImplementedError

    def prepare(self, sql: str, params: Params) -> Tuple[str, Params]:
        """Adapt SQL and parameters to the driver's paramstyle."""
        return sql, params

    @abc.abstractmethod
    def last_insert_id(self, handle: Any, cursor: Any) -> str:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def begin(self, handle: Any) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def commit(self, handle: Any) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self, handle: Any) -> None:  # pragma: no cover
        raise NotImplementedError


class PostgresDriver(AbstractDriver):
    """
    PostgreSQL through psycopg 3.

    The connection runs in autocommit mode; ``begin`` switches autocommit off
    so the next statement opens a transaction, and ``commit``/``rollback``
    switch it back on.
    """

    name = "pgsql"
    error_types = (psycopg.Error,)

    def conninfo(self, config: ConnectionConfig) -> str:
        params: Dict[str, Any] = {
            "host": config.host,
            "port": config.port,
            "dbname": config.database,
            "user": config.username,
            "password": config.password,
            "client_encoding": config.charset,
        }
        return make_conninfo(**{k: v for k, v in params.items() if v is not None})

    def connect(self, config: ConnectionConfig) -> psycopg.Connection:
        return psycopg.connect(
            self.conninfo(config),
            autocommit=True,
            row_factory=dict_row,
            **config.options,
        )

    def prepare(self, sql: str, params: Params) -> Tuple[str, Params]:
        if isinstance(params, Mapping):
            if not params:
                return sql, None
            return named_to_pyformat(sql), dict(params)
        return sql, params

    def last_insert_id(self, handle: psycopg.Connection, cursor: Any) -> str:
        row = handle.execute("SELECT lastval()").fetchone()
        return str(next(iter(row.values())))

    def begin(self, handle: psycopg.Connection) -> None:
        handle.autocommit = False

    def commit(self, handle: psycopg.Connection) -> None:
        # Autocommit comes back even when COMMIT fails.
        try:
            handle.commit()
        finally:
            handle.autocommit = True

    def rollback(self, handle: psycopg.Connection) -> None:
        try:
            handle.rollback()
        finally:
            handle.autocommit = True


class SqliteDriver(AbstractDriver):
    """
    SQLite through the standard library module.

    ``database`` is a file path or ``:memory:``. Host, port and credentials
    are ignored.
    """

    name = "sqlite"
    error_types = (sqlite3.Error,)

    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        handle = sqlite3.connect(config.database, isolation_level=None, **config.options)
        handle.row_factory = sqlite3.Row
        return handle

    def prepare(self, sql: str, params: Params) -> Tuple[str, Params]:
        if params is None:
            return sql, ()
        if isinstance(params, Mapping):
            return sql, dict(params)
        return sql, tuple(params)

    def last_insert_id(self, handle: sqlite3.Connection, cursor: Optional[sqlite3.Cursor]) -> str:
        if cursor is not None and cursor.lastrowid is not None:
            return str(cursor.lastrowid)
        return str(handle.execute("SELECT last_insert_rowid()").fetchone()[0])

    def begin(self, handle: sqlite3.Connection) -> None:
        handle.execute("BEGIN")

    def commit(self, handle: sqlite3.Connection) -> None:
        handle.execute("COMMIT")

    def rollback(self, handle: sqlite3.Connection) -> None:
        handle.execute("ROLLBACK")


_DRIVERS: Dict[str, Type[AbstractDriver]] = {
    "pgsql": PostgresDriver,
    "postgres": PostgresDriver,
    "postgresql": PostgresDriver,
    "sqlite": SqliteDriver,
}


def available_drivers() -> List[str]:
    """List accepted driver names."""
    return sorted(_DRIVERS.keys())


def resolve_driver(name: str, dsn: Optional[str] = None) -> AbstractDriver:
    if name not in _DRIVERS:
        raise DatabaseConnectionError(
            f"Unsupported driver '{name}'. Available: {', '.join(available_drivers())}",
            dsn=dsn,
        )
    return _DRIVERS[name]()


__all__ = [
    "AbstractDriver",
    "Driver",
    "PostgresDriver",
    "SqliteDriver",
    "available_drivers",
    "named_to_pyformat",
    "resolve_driver",
]
