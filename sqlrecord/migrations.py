"""
Schema migration interface.

A migration is a pair of reversible schema changes run against a
``Connection``. Ordering and bookkeeping of applied migrations are left to
the caller; this module only fixes the contract.
"""

from __future__ import annotations

import abc

from sqlrecord.infrastructure.connection import Connection


class Migration(abc.ABC):
    """
    Subclasses implement ``up`` (apply) and ``down`` (revert).

    Example
    -------
        class CreateAuthorsTable(Migration):
            def up(self, connection):
                connection.execute("CREATE TABLE authors (...)")

            def down(self, connection):
                connection.execute("DROP TABLE IF EXISTS authors")
    """

    @abc.abstractmethod
    def up(self, connection: Connection) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def down(self, connection: Connection) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    @property
    def name(self) -> str:
        return type(self).__name__


__all__ = ["Migration"]
