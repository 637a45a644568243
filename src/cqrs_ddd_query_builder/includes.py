"""Include strategies and their allow-list constructors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING

from .allow_list import AllowedInclude

if TYPE_CHECKING:
    from .contract import QueryContract

IncludeCallback = Callable[
    ["QueryContract", str, Mapping[str, Sequence[str]]], "QueryContract | None"
]


class Include(ABC):
    """Strategy interface for applying one include directive."""

    @abstractmethod
    def apply(
        self,
        query: QueryContract,
        relation: str,
        fields: Mapping[str, Sequence[str]],
    ) -> QueryContract:
        """
        Attach the include.

        Args:
            query: The query handle.
            relation: Internal (dotted) relation path.
            fields: Validated column selections keyed by relation path.
        """
        ...


class RelationshipInclude(Include):
    def apply(
        self,
        query: QueryContract,
        relation: str,
        fields: Mapping[str, Sequence[str]],
    ) -> QueryContract:
        scoped = {
            path: cols
            for path, cols in fields.items()
            if path == relation or relation.startswith(f"{path}.")
        }
        return query.with_(relation, scoped or None)


class CountInclude(Include):
    def apply(
        self,
        query: QueryContract,
        relation: str,
        fields: Mapping[str, Sequence[str]],
    ) -> QueryContract:
        return query.with_count(relation)


class ExistsInclude(Include):
    def apply(
        self,
        query: QueryContract,
        relation: str,
        fields: Mapping[str, Sequence[str]],
    ) -> QueryContract:
        return query.with_exists(relation)


class CallbackInclude(Include):
    def __init__(self, callback: IncludeCallback) -> None:
        self.callback = callback

    def apply(
        self,
        query: QueryContract,
        relation: str,
        fields: Mapping[str, Sequence[str]],
    ) -> QueryContract:
        result = self.callback(query, relation, fields)
        return query if result is None else result


def relationship(name: str, internal_name: str | None = None) -> AllowedInclude:
    """Eager-load a (dotted) relation path."""
    return AllowedInclude(
        name=name, strategy=RelationshipInclude(), internal_name=internal_name or ""
    )


def count(name: str, internal_name: str | None = None) -> AllowedInclude:
    """Add a ``<relation>_count`` column to each result row.

    ``count("postsCount")`` counts the ``posts`` relation.
    """
    return AllowedInclude(
        name=name,
        strategy=CountInclude(),
        internal_name=internal_name or name.removesuffix("Count"),
    )


def exists(name: str, internal_name: str | None = None) -> AllowedInclude:
    """Add a ``<relation>_exists`` column to each result row."""
    return AllowedInclude(
        name=name,
        strategy=ExistsInclude(),
        internal_name=internal_name or name.removesuffix("Exists"),
    )


def callback(
    name: str, fn: IncludeCallback, internal_name: str | None = None
) -> AllowedInclude:
    return AllowedInclude(
        name=name, strategy=CallbackInclude(fn), internal_name=internal_name or ""
    )


def expand(include: AllowedInclude) -> list[AllowedInclude]:
    """
    Return ``include`` preceded by one entry per parent path.

    Allowing ``posts.comments`` also allows ``posts``. Parents are only
    derived for relationship includes whose public and internal paths have
    the same depth, so aliases map segment by segment.
    """
    if not isinstance(include.strategy, RelationshipInclude) or "." not in include.name:
        return [include]
    public = include.name.split(".")
    internal = include.internal_name.split(".")
    if len(public) != len(internal):
        return [include]
    parents = [
        AllowedInclude(
            name=".".join(public[:depth]),
            strategy=include.strategy,
            internal_name=".".join(internal[:depth]),
        )
        for depth in range(1, len(public))
    ]
    return [*parents, include]
