"""
sqlrecord - a fluent SQL query builder fused with an active-record layer.

This package provides:

- A lazily-opened ``Connection`` with parameterized raw execution, explicit
  transactions and table-qualified insert/update/delete helpers
- A stateful ``QueryBuilder`` rendering SELECTs with bound ``:param_<n>`` values
- A ``Model`` base class tracking row identity and dirty attributes, driving
  insert-vs-update through its ``exists`` state

Values are always bound through the driver; only identifiers are interpolated.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from sqlrecord.config import ConnectionConfig, Settings, get_settings
from sqlrecord.domain.model import Model, default_table_name
from sqlrecord.exceptions import (
    DatabaseConnectionError,
    NotFoundError,
    QueryError,
    SqlRecordError,
)
from sqlrecord.infrastructure.connection import Connection
from sqlrecord.infrastructure.query_builder import QueryBuilder, QueryState
from sqlrecord.migrations import Migration
from sqlrecord.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "ConnectionConfig",
    "Settings",
    "get_settings",
    # Data access
    "Connection",
    "QueryBuilder",
    "QueryState",
    "Model",
    "default_table_name",
    "Migration",
    # Errors
    "SqlRecordError",
    "DatabaseConnectionError",
    "QueryError",
    "NotFoundError",
    # Logging
    "configure_logging",
    "get_logger",
]
