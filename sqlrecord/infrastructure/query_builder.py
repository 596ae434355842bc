"""
Fluent SELECT builder over a mutable query state.

A builder is a single-use scope for one logical query: it is stateful, every
primitive mutates the state and returns ``self``, and it must not be shared
across concurrent queries. Obtain a fresh one per query via
``Connection.select()`` or ``Connection.table()``.

Note that ``select()`` is a reset point, not an accumulator: calling it
mid-chain discards any where/order/limit state gathered so far.

Example
-------
    rows = (
        db.select()
        .from_("articles")
        .where("status", "=", "draft")
        .order_by("created_at", "DESC")
        .limit(10)
        .get()
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from sqlrecord.exceptions import QueryError

if TYPE_CHECKING:
    from sqlrecord.infrastructure.connection import Connection

OPERATORS = frozenset(
    {
        "=", "!=", "<>", "<", ">", "<=", ">=",
        "LIKE", "NOT LIKE", "ILIKE", "NOT ILIKE", "SIMILAR TO", "NOT SIMILAR TO",
        "IS", "IS NOT", "IS DISTINCT FROM", "IS NOT DISTINCT FROM",
    }
)
DIRECTIONS = frozenset({"ASC", "DESC"})
BOOLEANS = frozenset({"AND", "OR"})


@dataclass(frozen=True)
class Predicate:
    """One WHERE condition; ``boolean`` joins it to the previous predicate."""

    column: str
    operator: str
    value: Any
    boolean: str = "AND"


@dataclass
class QueryState:
    columns: List[str] = field(default_factory=lambda: ["*"])
    table: Optional[str] = None
    wheres: List[Predicate] = field(default_factory=list)
    orders: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None


def _normalize(value: str, allowed: frozenset, kind: str) -> str:
    normalized = " ".join(value.split()).upper()
    if normalized not in allowed:
        raise ValueError(f"Unknown {kind} '{value}'. Allowed: {', '.join(sorted(allowed))}")
    return normalized


class QueryBuilder:
    """
    Builds parameterized SELECT statements and runs them on a Connection.

    Values are always bound as ``:param_<index>`` parameters; only
    identifiers (table and column names) are interpolated, and those are
    trusted input.
    """

    def __init__(self, connection: "Connection") -> None:
        self._connection = connection
        self._state = QueryState()

    @property
    def state(self) -> QueryState:
        return self._state

    def select(self, *columns: Any) -> "QueryBuilder":
        """
        Reset the entire query state, then set the selected columns.

        Accepts varargs (``select("id", "name")``) or a single sequence
        (``select(["id", "name"])``). No columns selects ``*``.
        """
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            columns = tuple(columns[0])
        self._state = QueryState(columns=list(columns) or ["*"])
        return self

    def from_(self, table: str) -> "QueryBuilder":
        self._state.table = table
        return self

    def where(self, column: str, operator: str, value: Any, boolean: str = "AND") -> "QueryBuilder":
        """
        Append ``column operator :param_<i>``, joined to the previous predicate
        by ``boolean``.

        ``operator`` is matched case-insensitively against ``OPERATORS``:
        the comparisons ``= != <> < > <= >=``, pattern matches ``LIKE``,
        ``NOT LIKE``, ``ILIKE``, ``NOT ILIKE``, ``SIMILAR TO``,
        ``NOT SIMILAR TO``, and ``IS``, ``IS NOT``, ``IS DISTINCT FROM``,
        ``IS NOT DISTINCT FROM``. Operators taking a list (``IN``) or two
        values (``BETWEEN``) cannot bind a single parameter and raise
        ``ValueError``.
        """
        self._state.wheres.append(
            Predicate(
                column=column,
                operator=_normalize(operator, OPERATORS, "operator"),
                value=value,
                boolean=_normalize(boolean, BOOLEANS, "boolean"),
            )
        )
        return self

    def or_where(self, column: str, operator: str, value: Any) -> "QueryBuilder":
        return self.where(column, operator, value, "OR")

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        self._state.orders.append(f"{column} {_normalize(direction, DIRECTIONS, 'direction')}")
        return self

    def limit(self, n: Optional[int]) -> "QueryBuilder":
        self._state.limit = n
        return self

    def offset(self, n: Optional[int]) -> "QueryBuilder":
        self._state.offset = n
        return self

    def to_sql(self) -> Tuple[str, Dict[str, Any]]:
        """
        Render the current state.

        Returns
        -------
        tuple[str, dict]
            The SQL text and its parameter map, keyed ``param_<index>`` in
            predicate order.
        """
        state = self._state
        if not state.table:
            raise QueryError("No table selected; call from_() before running the query")

        sql = f"SELECT {', '.join(state.columns)} FROM {state.table}"

        if state.wheres:
            clauses = []
            for index, predicate in enumerate(state.wheres):
                condition = f"{predicate.column} {predicate.operator} :param_{index}"
                clauses.append(condition if index == 0 else f"{predicate.boolean} {condition}")
            sql += " WHERE " + " ".join(clauses)

        if state.orders:
            sql += " ORDER BY " + ", ".join(state.orders)
        if state.limit:
            sql += f" LIMIT {int(state.limit)}"
        if state.offset:
            sql += f" OFFSET {int(state.offset)}"

        params = {f"param_{index}": p.value for index, p in enumerate(state.wheres)}
        return sql, params

    def get(self) -> List[Dict[str, Any]]:
        """Render the current state, execute it and return every row."""
        sql, params = self.to_sql()
        return self._connection.fetch_all(sql, params)

    def first(self) -> Optional[Dict[str, Any]]:
        """Force ``LIMIT 1`` and return the first row, or None."""
        self._state.limit = 1
        rows = self.get()
        return rows[0] if rows else None

    def __repr__(self) -> str:
        return f"<QueryBuilder table={self._state.table!r} wheres={len(self._state.wheres)}>"


__all__ = ["BOOLEANS", "DIRECTIONS", "OPERATORS", "Predicate", "QueryBuilder", "QueryState"]
