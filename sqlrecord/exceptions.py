"""
Error taxonomy for the sqlrecord data-access layer.

Every failure propagates to the caller immediately; nothing in this package
retries. Driver exceptions are wrapped so callers only need to know these
types, while the original error stays reachable through ``__cause__``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Union

Params = Union[Mapping[str, Any], Sequence[Any], None]


class SqlRecordError(Exception):
    """Base class for all sqlrecord errors."""


class DatabaseConnectionError(SqlRecordError):
    """
    Opening the native connection failed (or the driver is unknown).

    Fatal to any subsequent operation on the same Connection; there is no
    automatic reconnect.
    """

    def __init__(self, message: str, dsn: Optional[str] = None) -> None:
        super().__init__(message)
        self.dsn = dsn


class QueryError(SqlRecordError):
    """
    Preparing or executing a statement failed.

    Carries the attempted SQL and its parameters for diagnostics.
    """

    def __init__(self, message: str, sql: Optional[str] = None, params: Params = None) -> None:
        super().__init__(message)
        self.message = message
        self.sql = sql
        self.params = params

    def __str__(self) -> str:
        if self.sql:
            return f"{self.message} [SQL: {self.sql}]"
        return self.message


class NotFoundError(SqlRecordError):
    """Raised by ``Model.find_or_fail`` when no row matches the primary key."""

    def __init__(self, model: str, id: Any) -> None:
        super().__init__(f"{model} not found with ID: {id}")
        self.model = model
        self.id = id


__all__ = [
    "SqlRecordError",
    "DatabaseConnectionError",
    "QueryError",
    "NotFoundError",
]
