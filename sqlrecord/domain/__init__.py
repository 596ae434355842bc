"""
Domain package for sqlrecord.

Exports the active-record base class that concrete entity types extend.
"""

from sqlrecord.domain.model import Model, default_table_name

__all__ = [
    "Model",
    "default_table_name",
]
