"""Sort strategies and their allow-list constructors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from .allow_list import AllowedSort

if TYPE_CHECKING:
    from .contract import QueryContract

SortCallback = Callable[["QueryContract", bool, str], "QueryContract | None"]


class Sort(ABC):
    """Strategy interface for applying one sort directive."""

    @abstractmethod
    def apply(
        self, query: QueryContract, descending: bool, property_name: str
    ) -> QueryContract: ...


class FieldSort(Sort):
    def apply(
        self, query: QueryContract, descending: bool, property_name: str
    ) -> QueryContract:
        return query.order_by(property_name, "desc" if descending else "asc")


class ScopeSort(Sort):
    """Call a model query scope with the requested direction."""

    def apply(
        self, query: QueryContract, descending: bool, property_name: str
    ) -> QueryContract:
        return query.call_scope(property_name, descending)


class CallbackSort(Sort):
    def __init__(self, callback: SortCallback) -> None:
        self.callback = callback

    def apply(
        self, query: QueryContract, descending: bool, property_name: str
    ) -> QueryContract:
        result = self.callback(query, descending, property_name)
        return query if result is None else result


def field(name: str, internal_name: str | None = None) -> AllowedSort:
    """Order by a column; ``internal_name`` may be ``"table.column"``."""
    return AllowedSort(name=name, strategy=FieldSort(), internal_name=internal_name or "")


def scope(name: str, scope_name: str | None = None) -> AllowedSort:
    return AllowedSort(name=name, strategy=ScopeSort(), internal_name=scope_name or "")


def callback(
    name: str, fn: SortCallback, internal_name: str | None = None
) -> AllowedSort:
    """``fn(query, descending, property_name)``; returning ``None`` keeps ``query``."""
    return AllowedSort(
        name=name, strategy=CallbackSort(fn), internal_name=internal_name or ""
    )


def custom(
    name: str, sort_obj: SortCallback, internal_name: str | None = None
) -> AllowedSort:
    """Same as :func:`callback` for objects implementing ``__call__``.

    Custom sorts that join must use ``query.join_if_absent`` so that a filter
    joining the same table does not produce a second join.
    """
    return callback(name, sort_obj, internal_name)
