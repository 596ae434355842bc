"""
Active-record base class.

Each concrete model maps one table to one in-memory entity type. A model
instance holds an attribute mapping, a snapshot of the attributes as last
loaded or persisted (``original``) and an ``exists`` flag that decides
whether ``save()`` inserts or updates.

The connection is always passed explicitly; there is no global database
handle:

    class Author(Model):
        fillable = frozenset({"name", "email", "bio"})
        hidden = frozenset({"email"})

    author = Author.create(db, {"name": "Ada", "email": "ada@x.io"})
    same = Author.find(db, author.get_key())

Lifecycle: transient (``exists`` False) -> persisted after a successful
insert or when loaded from a row -> deleted (``exists`` False again). A
deleted instance keeps its attributes, and saving it again performs a fresh
insert.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, Iterator, List, Mapping, Optional, Type, TypeVar

from sqlrecord.exceptions import NotFoundError
from sqlrecord.infrastructure.connection import Connection
from sqlrecord.infrastructure.query_builder import QueryBuilder
from sqlrecord.utils.logging import get_logger

log = get_logger(__name__)

M = TypeVar("M", bound="Model")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_WORD_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def default_table_name(class_name: str) -> str:
    """
    Derive a table name from a class name.

    ``BlogPost`` -> ``blog_posts``, ``Category`` -> ``categories``,
    ``Box`` -> ``boxes``, ``Match`` -> ``matches``.

    Pluralization is a suffix heuristic only. Irregular plurals are not
    handled (``Person`` -> ``persons``); set ``table`` explicitly for those.
    """
    name = _WORD_BOUNDARY.sub("_", class_name).lower()
    if name.endswith("y"):
        return name[:-1] + "ies"
    if name.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


class Model:
    """
    Base class for database-backed entities.

    Subclasses configure themselves by overriding the class attributes below.

    Attributes
    ----------
    table : str
        Table name. Empty means "derive from the class name".
    primary_key : str
        Primary-key column, ``id`` by default.
    fillable : frozenset[str]
        Names writable through ``fill``/``create``. Empty allows every key.
    hidden : frozenset[str]
        Names excluded from ``to_dict``/``to_json``.
    timestamps : bool
        Whether ``save`` stamps the created/updated columns.
    """

    table: ClassVar[str] = ""
    primary_key: ClassVar[str] = "id"
    fillable: ClassVar[FrozenSet[str]] = frozenset()
    hidden: ClassVar[FrozenSet[str]] = frozenset()
    timestamps: ClassVar[bool] = True
    created_at_column: ClassVar[str] = "created_at"
    updated_at_column: ClassVar[str] = "updated_at"

    def __init__(self, connection: Connection, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._connection = connection
        self._attributes: Dict[str, Any] = {}
        self._original: Dict[str, Any] = {}
        self._exists = False
        if attributes:
            self.fill(attributes)

    # Table metadata

    @classmethod
    def get_table(cls) -> str:
        return cls.table or default_table_name(cls.__name__)

    @classmethod
    def get_key_name(cls) -> str:
        return cls.primary_key

    def get_key(self) -> Any:
        return self.get_attribute(self.primary_key)

    # Attribute access

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def attributes(self) -> Dict[str, Any]:
        return dict(self._attributes)

    @property
    def original(self) -> Dict[str, Any]:
        return dict(self._original)

    @classmethod
    def is_fillable(cls, key: str) -> bool:
        return not cls.fillable or key in cls.fillable

    def fill(self: M, attributes: Mapping[str, Any]) -> M:
        """
        Assign every fillable key from ``attributes``.

        Keys outside ``fillable`` are dropped silently.
        """
        for key, value in attributes.items():
            if self.is_fillable(key):
                self.set_attribute(key, value)
        return self

    def set_attribute(self, key: str, value: Any) -> None:
        """Set one attribute. Not subject to ``fillable``."""
        self._attributes[key] = value

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set_attribute(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._attributes

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    # Finders

    @classmethod
    def new_from_row(cls: Type[M], connection: Connection, row: Mapping[str, Any]) -> M:
        """Wrap a raw database row into a persisted instance."""
        model = cls(connection)
        model._attributes = dict(row)
        model._original = dict(row)
        model._exists = True
        return model

    @classmethod
    def query(cls, connection: Connection) -> QueryBuilder:
        """Fresh builder scoped to this model's table."""
        return connection.select().from_(cls.get_table())

    @classmethod
    def find(cls: Type[M], connection: Connection, id: Any) -> Optional[M]:
        row = cls.query(connection).where(cls.primary_key, "=", id).first()
        if row is None:
            return None
        return cls.new_from_row(connection, row)

    @classmethod
    def find_or_fail(cls: Type[M], connection: Connection, id: Any) -> M:
        model = cls.find(connection, id)
        if model is None:
            raise NotFoundError(cls.__name__, id)
        return model

    @classmethod
    def all(cls: Type[M], connection: Connection) -> List[M]:
        return [cls.new_from_row(connection, row) for row in cls.query(connection).get()]

    @classmethod
    def where(cls: Type[M], connection: Connection, column: str, operator: str, value: Any) -> List[M]:
        """Single-predicate filter. Use ``query()`` for anything compound."""
        rows = cls.query(connection).where(column, operator, value).get()
        return [cls.new_from_row(connection, row) for row in rows]

    @classmethod
    def create(cls: Type[M], connection: Connection, attributes: Mapping[str, Any]) -> M:
        model = cls(connection, attributes)
        model.save()
        return model

    # Persistence

    def save(self) -> bool:
        """
        Insert when the instance does not exist yet, otherwise update.

        Returns
        -------
        bool
            True on insert; on update, True when a row was affected or there
            was nothing to write. False when the update matched no row.
        """
        if self._exists:
            return self._perform_update()
        return self._perform_insert()

    def _fresh_timestamp(self) -> str:
        return datetime.now().strftime(TIMESTAMP_FORMAT)

    def _perform_insert(self) -> bool:
        if self.timestamps:
            now = self._fresh_timestamp()
            self.set_attribute(self.created_at_column, now)
            self.set_attribute(self.updated_at_column, now)

        table = self.get_table()
        payload = self._attributes_for_insert()
        # A caller-supplied key is kept; only a generated one is read back.
        key_supplied = self.primary_key in payload
        generated_id = self._connection.insert(table, payload, returning_id=not key_supplied)

        if not key_supplied:
            self.set_attribute(self.primary_key, generated_id)
        self._original = dict(self._attributes)
        self._exists = True
        log.debug(
            f"Inserted {type(self).__name__}",
            extra={"model": type(self).__name__, "table": table, "id": self.get_key()},
        )
        return True

    def _perform_update(self) -> bool:
        # Nothing changed: no statement, and updated_at is left untouched.
        if not self.is_dirty():
            return True

        if self.timestamps:
            self.set_attribute(self.updated_at_column, self._fresh_timestamp())
        dirty = self.get_dirty()

        table = self.get_table()
        affected = self._connection.update(table, dirty, {self.primary_key: self.get_key()})

        self._original = dict(self._attributes)
        log.debug(
            f"Updated {type(self).__name__}",
            extra={"model": type(self).__name__, "table": table, "id": self.get_key(), "affected": affected},
        )
        return affected > 0

    def delete(self) -> bool:
        """
        Delete the row by primary key.

        Returns False without issuing SQL when the instance does not exist.
        Attributes are kept in memory after deletion.
        """
        if not self._exists:
            return False

        table = self.get_table()
        affected = self._connection.delete(table, {self.primary_key: self.get_key()})
        self._exists = False
        log.debug(
            f"Deleted {type(self).__name__}",
            extra={"model": type(self).__name__, "table": table, "id": self.get_key(), "affected": affected},
        )
        return affected > 0

    def _attributes_for_insert(self) -> Dict[str, Any]:
        attributes = dict(self._attributes)
        # Let the database generate an empty key.
        if not attributes.get(self.primary_key):
            attributes.pop(self.primary_key, None)
        return attributes

    def get_dirty(self) -> Dict[str, Any]:
        """
        Attributes changed since the last load or save, primary key excluded.
        """
        return {
            key: value
            for key, value in self._attributes.items()
            if key != self.primary_key
            and (key not in self._original or self._original[key] != value)
        }

    def is_dirty(self) -> bool:
        return bool(self.get_dirty())

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in self._attributes.items() if key not in self.hidden}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        state = "persisted" if self._exists else "transient"
        return f"<{type(self).__name__} {self.primary_key}={self.get_key()!r} ({state})>"


__all__ = ["Model", "TIMESTAMP_FORMAT", "default_table_name"]
