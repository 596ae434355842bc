"""
Utilities package for sqlrecord.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of data-access logic.
"""

from sqlrecord.utils.logging import JsonFormatter, configure_logging, get_logger

__all__ = [
    "JsonFormatter",
    "configure_logging",
    "get_logger",
]
