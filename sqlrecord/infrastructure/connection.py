"""
Database connection: lazy native handle, raw execution primitives and the
table-qualified CRUD helpers used by the models.

A ``Connection`` owns exactly one native handle, opened on first use and then
reused. There is no pooling and no per-thread handle: overlapping statements
from several threads need external synchronization. A dropped connection is
not reopened; it surfaces as a ``QueryError`` on the next statement.

Transactions are explicit and non-nested. Calling ``begin_transaction`` while
a transaction is already open is the caller's responsibility and is not
guarded here.
"""

from __future__ import annotations

import threading
from contextlib import closing
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlrecord.config import ConnectionConfig
from sqlrecord.exceptions import DatabaseConnectionError, Params, QueryError
from sqlrecord.infrastructure.drivers import AbstractDriver, resolve_driver
from sqlrecord.infrastructure.query_builder import QueryBuilder
from sqlrecord.utils.logging import get_logger

log = get_logger(__name__)


def _param_names(params: Params) -> Any:
    """Parameter keys (or count) for logging; values are never logged."""
    if isinstance(params, Mapping):
        return list(params.keys())
    if params is None:
        return 0
    return len(params)


class Connection:
    """
    A single lazily-opened database connection.

    Parameters
    ----------
    config : ConnectionConfig | Mapping
        Connection settings. Plain mappings are validated into a frozen
        ``ConnectionConfig``.

    Example
    -------
        with Connection({"driver": "sqlite", "database": ":memory:"}) as db:
            db.execute("CREATE TABLE authors (id INTEGER PRIMARY KEY, name TEXT)")
            author_id = db.insert("authors", {"name": "Ada"})
    """

    def __init__(self, config: Union[ConnectionConfig, Mapping[str, Any]]) -> None:
        if not isinstance(config, ConnectionConfig):
            config = ConnectionConfig.from_mapping(config)
        self._config = config
        self._driver: AbstractDriver = resolve_driver(config.driver, dsn=config.dsn)
        self._handle: Any = None
        self._lock = threading.Lock()

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def driver(self) -> AbstractDriver:
        return self._driver

    @property
    def is_connected(self) -> bool:
        return self._handle is not None

    # Connection lifecycle

    def connect(self) -> Any:
        """
        Open the native connection on first use and return it.

        Raises
        ------
        DatabaseConnectionError
            If the driver fails to open the connection. The message includes
            the driver's own error text.
        """
        with self._lock:
            if self._handle is None:
                dsn = self._config.dsn
                try:
                    self._handle = self._driver.connect(self._config)
                except self._driver.error_types as exc:
                    log.error("Connection failed", extra={"dsn": dsn})
                    raise DatabaseConnectionError(
                        f"Database connection failed: {exc}", dsn=dsn
                    ) from exc
                log.info(f"Connected to {dsn}", extra={"dsn": dsn})
            return self._handle

    @property
    def handle(self) -> Any:
        return self.connect()

    def close(self) -> None:
        """Close the native handle if one was opened. Safe to call twice."""
        with self._lock:
            if self._handle is not None:
                try:
                    self._handle.close()
                finally:
                    self._handle = None
                log.info("Connection closed", extra={"dsn": self._config.dsn})

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Raw execution primitives

    def query(self, sql: str, params: Params = None) -> Any:
        """
        Prepare and execute a statement with bound parameters.

        Parameters
        ----------
        sql : str
            Statement text using ``:name`` placeholders for mapping params,
            or the driver's positional placeholder for sequence params.
        params : Mapping | Sequence | None
            Values to bind. Never interpolated into the SQL text.

        Returns
        -------
        Any
            The executed DB-API cursor.

        Raises
        ------
        QueryError
            On any driver error while preparing or executing.
        """
        handle = self.connect()
        prepared_sql, prepared_params = self._driver.prepare(sql, params)
        log.debug("Executing statement", extra={"sql": sql, "params": _param_names(params)})
        try:
            cursor = handle.cursor()
            cursor.execute(prepared_sql, prepared_params)
        except self._driver.error_types as exc:
            raise QueryError(f"Query failed: {exc}", sql=sql, params=params) from exc
        return cursor

    def fetch_all(self, sql: str, params: Params = None) -> List[Dict[str, Any]]:
        with closing(self.query(sql, params)) as cursor:
            try:
                return [dict(row) for row in cursor.fetchall()]
            except self._driver.error_types as exc:
                raise QueryError(f"Fetch failed: {exc}", sql=sql, params=params) from exc

    def fetch(self, sql: str, params: Params = None) -> Optional[Dict[str, Any]]:
        """Return the first row of the result, or None when there is none."""
        with closing(self.query(sql, params)) as cursor:
            try:
                row = cursor.fetchone()
            except self._driver.error_types as exc:
                raise QueryError(f"Fetch failed: {exc}", sql=sql, params=params) from exc
        return dict(row) if row is not None else None

    def execute(self, sql: str, params: Params = None) -> int:
        """Execute a statement and return the affected-row count."""
        return self.query(sql, params).rowcount

    def last_insert_id(self, cursor: Any = None) -> str:
        """
        Identifier generated by the most recent insert on this connection.

        ``insert()`` passes its own cursor so drivers that track the id per
        cursor can read it directly.
        """
        try:
            return self._driver.last_insert_id(self.connect(), cursor)
        except self._driver.error_types as exc:
            raise QueryError(f"Could not read last insert id: {exc}") from exc

    def begin_transaction(self) -> bool:
        self._transaction_call(self._driver.begin, "BEGIN")
        return True

    def commit(self) -> bool:
        self._transaction_call(self._driver.commit, "COMMIT")
        return True

    def rollback(self) -> bool:
        self._transaction_call(self._driver.rollback, "ROLLBACK")
        return True

    def _transaction_call(self, hook: Any, label: str) -> None:
        handle = self.connect()
        log.debug(f"Transaction {label}", extra={"sql": label})
        try:
            hook(handle)
        except self._driver.error_types as exc:
            raise QueryError(f"{label} failed: {exc}", sql=label) from exc

    # Builder entry points

    def select(self, *columns: Any) -> QueryBuilder:
        """Start a fresh builder scope with the given columns."""
        return QueryBuilder(self).select(*columns)

    def table(self, name: str) -> QueryBuilder:
        """Start a fresh ``SELECT * FROM name`` builder scope."""
        return QueryBuilder(self).select().from_(name)

    # CRUD helpers (bypass any builder state)

    def insert(self, table: str, data: Mapping[str, Any], returning_id: bool = True) -> Optional[int]:
        """
        Insert one row and return the generated identifier.

        Columns are rendered in the mapping's iteration order and the mapping
        itself is the parameter set. With ``returning_id=False`` the generated
        id is not read and None is returned; use it when the row carries its
        own key.
        """
        if not data:
            raise QueryError(f"Cannot insert an empty row into {table}")
        columns = list(data.keys())
        sql = (
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(':' + column for column in columns)})"
        )
        cursor = self.query(sql, dict(data))
        if not returning_id:
            return None
        return int(self.last_insert_id(cursor))

    def update(self, table: str, data: Mapping[str, Any], where: Mapping[str, Any]) -> int:
        """
        Update rows matching every ``column = value`` pair in ``where``.

        Where-parameters are prefixed ``where_`` so they never collide with
        SET parameters on the same column.
        """
        if not data:
            raise QueryError(f"Cannot update {table} without any columns to set")
        if not where:
            raise QueryError(f"Refusing to update {table} without a WHERE condition")
        assignments = ", ".join(f"{column} = :{column}" for column in data)
        conditions = " AND ".join(f"{column} = :where_{column}" for column in where)
        sql = f"UPDATE {table} SET {assignments} WHERE {conditions}"
        params = dict(data)
        params.update({f"where_{column}": value for column, value in where.items()})
        return self.execute(sql, params)

    def delete(self, table: str, where: Mapping[str, Any]) -> int:
        """Delete rows matching every ``column = value`` pair in ``where``."""
        if not where:
            raise QueryError(f"Refusing to delete from {table} without a WHERE condition")
        conditions = " AND ".join(f"{column} = :{column}" for column in where)
        sql = f"DELETE FROM {table} WHERE {conditions}"
        return self.execute(sql, dict(where))

    def __repr__(self) -> str:
        state = "open" if self.is_connected else "closed"
        return f"<Connection {self._config.dsn} ({state})>"


__all__ = ["Connection"]
