"""
Infrastructure package for sqlrecord.

Centralizes database connectivity: driver adapters, the lazily-opened
Connection with its raw execution and CRUD primitives, and the query builder.
Keep this layer focused on I/O, decoupled from the model layer.
"""

from sqlrecord.infrastructure.connection import Connection
from sqlrecord.infrastructure.drivers import (
    AbstractDriver,
    Driver,
    PostgresDriver,
    SqliteDriver,
    available_drivers,
    resolve_driver,
)
from sqlrecord.infrastructure.query_builder import Predicate, QueryBuilder, QueryState

__all__ = [
    "AbstractDriver",
    "Connection",
    "Driver",
    "PostgresDriver",
    "Predicate",
    "QueryBuilder",
    "QueryState",
    "SqliteDriver",
    "available_drivers",
    "resolve_driver",
]
