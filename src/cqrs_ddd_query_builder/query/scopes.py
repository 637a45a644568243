"""
Model query scopes and soft deletes.

A *query scope* is a named, reusable transformation of a ``Select``
declared on the model::

    class Post(Base):
        __tablename__ = "posts"
        ...

        @query_scope
        def published_before(cls, stmt, day):
            return stmt.where(cls.published_at < day)

        @global_scope
        def visible(cls, stmt):
            return stmt.where(cls.hidden.is_(False))

Local scopes are invoked explicitly (``QueryHandle.call_scope`` or a scope
filter/sort). Global scopes are applied to every statement rendered from a
handle until removed with ``without_global_scopes``.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column

ScopeFunction = Callable[..., Any]

SOFT_DELETE_SCOPE = "soft_deletes"


class QueryScope:
    """Descriptor wrapping a scope function ``fn(cls, stmt, *args) -> Select``."""

    def __init__(self, fn: ScopeFunction, *, is_global: bool = False) -> None:
        self.fn = fn
        self.is_global = is_global
        self.name = fn.__name__
        functools.update_wrapper(self, fn)

    def __set_name__(self, owner: type[Any], name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type[Any]) -> Callable[..., Any]:
        return functools.partial(self.fn, owner)

    def __call__(self, model: type[Any], stmt: Any, *args: Any) -> Any:
        return self.fn(model, stmt, *args)

    def __repr__(self) -> str:
        kind = "global" if self.is_global else "local"
        return f"<QueryScope {kind} {self.name!r}>"


def query_scope(fn: ScopeFunction) -> QueryScope:
    """Declare a local query scope on a model."""
    return QueryScope(fn)


def global_scope(fn: ScopeFunction) -> QueryScope:
    """Declare a scope applied to every query of the model."""
    return QueryScope(fn, is_global=True)


def find_scope(model: type[Any], name: str) -> QueryScope | None:
    """Return the scope ``name`` declared on ``model`` or one of its bases."""
    for klass in model.__mro__:
        candidate = vars(klass).get(name)
        if isinstance(candidate, QueryScope):
            return candidate
    return None


def global_scopes(model: type[Any]) -> dict[str, QueryScope]:
    """Global scopes of ``model`` keyed by name, base classes first."""
    scopes: dict[str, QueryScope] = {}
    for klass in reversed(model.__mro__):
        for name, candidate in vars(klass).items():
            if isinstance(candidate, QueryScope) and candidate.is_global:
                scopes[name] = candidate
    return scopes


def is_soft_deletable(model: type[Any]) -> bool:
    return isinstance(model, type) and issubclass(model, SoftDeleteMixin)


class SoftDeleteMixin:
    """
    Adds a nullable ``deleted_at`` column and hides deleted rows by default.

    ``QueryHandle.with_trashed()`` removes the ``soft_deletes`` global scope,
    ``only_trashed()`` inverts it.
    """

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, index=True
    )

    @global_scope
    def soft_deletes(cls, stmt: Any) -> Any:  # noqa: N805
        return stmt.where(cls.deleted_at.is_(None))

    def soft_delete(self) -> None:
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self) -> None:
        self.deleted_at = None

    @property
    def trashed(self) -> bool:
        return self.deleted_at is not None
