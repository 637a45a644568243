"""
Subject adaptation: anything a builder may be created for -> QueryHandle.

Accepted subjects:

* a ``QueryHandle`` (used as-is),
* a mapped class (``select(Model)``),
* an ORM ``Select`` whose first entity is mapped,
* a ``RelationshipQuery`` built with :func:`relation`, which keeps the
  parent constraint and exposes pivot columns of many-to-many secondaries,
* a ``WriteOnlyCollection`` (``parent.children`` with ``lazy="write_only"``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, inspect, select
from sqlalchemy.orm import WriteOnlyCollection, with_parent

from ..exceptions import FieldNotFoundError, InvalidSubject
from .handle import QueryHandle
from .utils import mapped_mapper

PIVOT_PREFIX = "pivot_"


@dataclass(frozen=True)
class RelationshipQuery:
    """Related rows of ``parent`` through relationship ``relation``.

    ``pivot`` names columns of the association table to add to each row as
    ``pivot_<column>``; ``options`` are loader options (``selectinload(...)``)
    attached to the statement.
    """

    parent: Any
    relation: str
    pivot: tuple[str, ...] = ()
    options: tuple[Any, ...] = ()

    def to_handle(self) -> QueryHandle:
        parent_mapper = inspect(type(self.parent))
        prop = parent_mapper.relationships.get(self.relation)
        if prop is None:
            raise FieldNotFoundError(
                self.relation,
                parent_mapper.class_.__name__,
                list(parent_mapper.relationships.keys()),
            )
        target = prop.mapper.class_
        stmt = select(target).where(
            with_parent(self.parent, getattr(type(self.parent), self.relation))
        )
        if self.pivot:
            if prop.secondary is None:
                raise FieldNotFoundError(
                    self.pivot[0], parent_mapper.class_.__name__, []
                )
            secondary = prop.secondary
            for column in self.pivot:
                if column not in secondary.c:
                    raise FieldNotFoundError(
                        column, secondary.name, list(secondary.c.keys())
                    )
                stmt = stmt.add_columns(
                    secondary.c[column].label(f"{PIVOT_PREFIX}{column}")
                )
        if prop.order_by:
            stmt = stmt.order_by(*prop.order_by)
        if self.options:
            stmt = stmt.options(*self.options)
        return QueryHandle(stmt, target)


def relation(
    parent: Any,
    name: str,
    *,
    pivot: tuple[str, ...] = (),
    options: tuple[Any, ...] = (),
) -> RelationshipQuery:
    """Query the rows related to ``parent`` through relationship ``name``."""
    return RelationshipQuery(parent, name, tuple(pivot), tuple(options))


def to_handle(subject: Any) -> QueryHandle:
    """
    Wrap ``subject`` in a fresh ``QueryHandle``.

    Raises:
        InvalidSubject: ``subject`` cannot be queried.
    """
    if isinstance(subject, QueryHandle):
        return subject
    if isinstance(subject, RelationshipQuery):
        return subject.to_handle()
    if isinstance(subject, WriteOnlyCollection):
        return QueryHandle.for_statement(subject.select())
    if isinstance(subject, Select):
        return QueryHandle.for_statement(subject)
    if mapped_mapper(subject) is not None:
        return QueryHandle.for_model(subject)
    raise InvalidSubject(subject)
