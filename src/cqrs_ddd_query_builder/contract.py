"""
QueryContract — what strategies may do to a query.

Filter, sort and include strategies are written purely against this
protocol. ``cqrs_ddd_query_builder.query.QueryHandle`` is the SQLAlchemy
implementation; nothing in the strategy modules imports SQLAlchemy.

Field names accepted by the contract:

* ``"name"`` — attribute of the root entity;
* ``"relation.name"`` — attribute reached through a relationship
  (``where`` renders an ``EXISTS`` constraint);
* ``"table.name"`` — column of a table joined with ``join_if_absent``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

Q = TypeVar("Q", bound="QueryContract")


@runtime_checkable
class QueryContract(Protocol):
    """Mutable query handle. Every mutator returns the handle itself."""

    def where(self: Q, field: str, operator: str, value: Any) -> Q: ...

    def where_in(self: Q, field: str, values: Sequence[Any]) -> Q: ...

    def where_not_in(self: Q, field: str, values: Sequence[Any]) -> Q: ...

    def where_null(self: Q, field: str, *, negate: bool = False) -> Q: ...

    def where_any(self: Q, field: str, operator: str, values: Sequence[Any]) -> Q:
        """OR together one comparison per value."""
        ...

    def where_has(self: Q, relation: str, *, exists: bool = True) -> Q: ...

    def order_by(self: Q, field: str, direction: str = "asc") -> Q: ...

    def join_if_absent(
        self: Q,
        table: Any,
        left: str,
        operator: str,
        right: str,
        *,
        outer: bool = False,
    ) -> Q:
        """Join ``table`` unless it is already part of the query."""
        ...

    def call_scope(self: Q, name: str, *args: Any) -> Q: ...

    def with_(self: Q, path: str, fields: dict[str, Sequence[str]] | None = None) -> Q:
        """Eager-load a dotted relation path.

        ``fields`` maps a relation path prefix to the columns to load for it.
        """
        ...

    def with_count(self: Q, relation: str, label: str | None = None) -> Q: ...

    def with_exists(self: Q, relation: str, label: str | None = None) -> Q: ...

    def select(self: Q, *fields: str) -> Q: ...

    def append(self: Q, attribute: str) -> Q: ...

    def with_trashed(self: Q) -> Q: ...

    def only_trashed(self: Q) -> Q: ...

    def without_global_scopes(self: Q, *names: str) -> Q: ...

    def clone(self: Q) -> Q: ...

    def to_sql(self, dialect: Any = None, *, literal_binds: bool = False) -> str: ...
