"""
QueryHandle — the SQLAlchemy implementation of the query contract.

A handle owns one ORM ``Select`` whose first entity is the *root model*.
``Select`` is immutable and generative, so every mutator rebinds the handle
to the new statement and returns the handle; ``clone()`` therefore yields a
fully independent copy without deep-copying SQL constructs.

Besides the statement the handle keeps only what the statement cannot
express yet: tables joined via ``join_if_absent`` and which global scopes
have been removed. Global scopes are applied when ``statement`` is read.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select, false, func, inspect, or_, select
from sqlalchemy.orm import ColumnProperty, load_only, selectinload, undefer
from sqlalchemy.schema import Table

from ..exceptions import ConfigurationError, FieldNotFoundError, InvalidSubject, ScopeNotFoundError
from .operators import DEFAULT_OPERATORS
from .scopes import SOFT_DELETE_SCOPE, find_scope, global_scopes, is_soft_deletable
from .utils import extract_tables_from_statement, mapped_mapper, root_entity

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from sqlalchemy import ColumnElement
    from sqlalchemy.engine import Dialect
    from sqlalchemy.orm.strategy_options import _AbstractLoad

    from .operators import OperatorRegistry

logger = logging.getLogger("cqrs_ddd.query_builder")

_DIRECTIONS = {"asc", "desc"}


class QueryHandle:
    """Mutable wrapper around an ORM ``Select``."""

    def __init__(
        self,
        stmt: Select[Any],
        model: type[Any],
        *,
        operators: OperatorRegistry | None = None,
    ) -> None:
        self._stmt = stmt
        self.model = model
        self._operators = operators or DEFAULT_OPERATORS
        self._joined: set[str] = set()
        # ``None`` means every global scope was removed.
        self._removed_scopes: set[str] | None = set()

    @classmethod
    def for_model(cls, model: type[Any]) -> QueryHandle:
        if mapped_mapper(model) is None:
            raise InvalidSubject(model)
        return cls(select(model), model)

    @classmethod
    def for_statement(cls, stmt: Select[Any]) -> QueryHandle:
        model = root_entity(stmt)
        if model is None:
            raise InvalidSubject(stmt)
        return cls(stmt, model)

    # -- statement ----------------------------------------------------------

    @property
    def statement(self) -> Select[Any]:
        """The statement with every remaining global scope applied."""
        stmt = self._stmt
        if self._removed_scopes is None:
            return stmt
        for name, scope in global_scopes(self.model).items():
            if name not in self._removed_scopes:
                stmt = scope(self.model, stmt)
        return stmt

    @property
    def raw_statement(self) -> Select[Any]:
        """The statement without global scopes."""
        return self._stmt

    def count_statement(self) -> Select[Any]:
        """``SELECT count(*)`` over the current statement, ordering removed."""
        return select(func.count()).select_from(self.statement.order_by(None).subquery())

    @property
    def selects_entity_only(self) -> bool:
        """Whether result rows hold just the root entity."""
        return len(self._stmt.column_descriptions) == 1

    def to_sql(self, dialect: Dialect | None = None, *, literal_binds: bool = False) -> str:
        compiled = self.statement.compile(
            dialect=dialect, compile_kwargs={"literal_binds": literal_binds}
        )
        return str(compiled)

    def clone(self) -> QueryHandle:
        twin = QueryHandle(self._stmt, self.model, operators=self._operators)
        twin._joined = set(self._joined)
        twin._removed_scopes = (
            None if self._removed_scopes is None else set(self._removed_scopes)
        )
        return twin

    def __copy__(self) -> QueryHandle:
        return self.clone()

    def __repr__(self) -> str:
        return f"<QueryHandle {self.model.__name__}>"

    def apply(self, fn: Callable[[Select[Any]], Select[Any]]) -> QueryHandle:
        """Rebind to ``fn(statement)`` for anything the contract does not cover."""
        return self._set(fn(self._stmt))

    def _set(self, stmt: Select[Any]) -> QueryHandle:
        self._stmt = stmt
        return self

    # -- constraints --------------------------------------------------------

    def where(self, field: str, operator: str, value: Any) -> QueryHandle:
        criterion = self._criterion(
            self.model, field, lambda col: self._operators.apply(operator, col, value)
        )
        return self._set(self._stmt.where(criterion))

    def where_in(self, field: str, values: Sequence[Any]) -> QueryHandle:
        values = list(values)
        criterion = self._criterion(self.model, field, lambda col: col.in_(values))
        return self._set(self._stmt.where(criterion))

    def where_not_in(self, field: str, values: Sequence[Any]) -> QueryHandle:
        values = list(values)
        criterion = self._criterion(self.model, field, lambda col: col.not_in(values))
        return self._set(self._stmt.where(criterion))

    def where_null(self, field: str, *, negate: bool = False) -> QueryHandle:
        criterion = self._criterion(
            self.model,
            field,
            lambda col: col.is_not(None) if negate else col.is_(None),
        )
        return self._set(self._stmt.where(criterion))

    def where_any(
        self, field: str, operator: str, values: Sequence[Any]
    ) -> QueryHandle:
        values = list(values)
        if not values:
            return self._set(self._stmt.where(false()))
        criterion = self._criterion(
            self.model,
            field,
            lambda col: or_(*(self._operators.apply(operator, col, v) for v in values)),
        )
        return self._set(self._stmt.where(criterion))

    def where_has(self, relation: str, *, exists: bool = True) -> QueryHandle:
        criterion = self._has(self.model, relation)
        return self._set(self._stmt.where(criterion if exists else ~criterion))

    # -- ordering and joins -------------------------------------------------

    def order_by(self, field: str, direction: str = "asc") -> QueryHandle:
        direction = direction.lower()
        if direction not in _DIRECTIONS:
            raise ValueError(f"Unsupported sort direction: {direction}")
        column = self._column(field)
        return self._set(
            self._stmt.order_by(column.desc() if direction == "desc" else column.asc())
        )

    def join_if_absent(
        self,
        table: Any,
        left: str,
        operator: str,
        right: str,
        *,
        outer: bool = False,
    ) -> QueryHandle:
        target = self._join_target(table)
        key = _table_name(target)
        if key in self._joined or key in self._tables_in_from():
            logger.debug("Skipping duplicate join to %s", key)
            return self
        onclause = self._operators.apply(operator, self._column(left), self._column(right))
        self._joined.add(key)
        return self._set(self._stmt.join(target, onclause, isouter=outer))

    # -- scopes -------------------------------------------------------------

    def call_scope(self, name: str, *args: Any) -> QueryHandle:
        scope = find_scope(self.model, name)
        if scope is None:
            raise ScopeNotFoundError(name, self.model.__name__)
        return self._set(scope(self.model, self._stmt, *args))

    def without_global_scopes(self, *names: str) -> QueryHandle:
        if not names:
            self._removed_scopes = None
        elif self._removed_scopes is not None:
            self._removed_scopes.update(names)
        return self

    def with_trashed(self) -> QueryHandle:
        self._require_soft_deletes()
        return self.without_global_scopes(SOFT_DELETE_SCOPE)

    def only_trashed(self) -> QueryHandle:
        self._require_soft_deletes()
        self.without_global_scopes(SOFT_DELETE_SCOPE)
        return self._set(self._stmt.where(self.model.deleted_at.is_not(None)))

    def _require_soft_deletes(self) -> None:
        if not is_soft_deletable(self.model):
            raise ConfigurationError(
                f"Model '{self.model.__name__}' does not use SoftDeleteMixin."
            )

    # -- eager loading and projection ---------------------------------------

    def with_(
        self, path: str, fields: Mapping[str, Sequence[str]] | None = None
    ) -> QueryHandle:
        loader = self._loader(self.model, path.split("."), "", fields or {})
        return self._set(self._stmt.options(loader))

    def with_count(self, relation: str, label: str | None = None) -> QueryHandle:
        prop = self._relationship(self.model, relation)
        source = prop.secondary if prop.secondary is not None else prop.target
        counter = (
            select(func.count())
            .select_from(source)
            .where(prop.primaryjoin)
            .correlate_except(source)
            .scalar_subquery()
        )
        return self._set(self._stmt.add_columns(counter.label(label or f"{relation}_count")))

    def with_exists(self, relation: str, label: str | None = None) -> QueryHandle:
        criterion = self._has(self.model, relation)
        label = label or f"{relation.replace('.', '_')}_exists"
        return self._set(self._stmt.add_columns(criterion.label(label)))

    def select(self, *fields: str) -> QueryHandle:
        if not fields:
            return self
        columns = [self._attribute(self.model, f) for f in fields]
        return self._set(self._stmt.options(load_only(*columns)))

    def append(self, attribute: str) -> QueryHandle:
        """Make sure a computed attribute is loaded with the entity.

        Deferred column properties are undeferred; plain and hybrid
        properties need nothing at query level but must exist.
        """
        prop = inspect(self.model).attrs.get(attribute)
        if isinstance(prop, ColumnProperty):
            if prop.deferred:
                return self._set(self._stmt.options(undefer(getattr(self.model, attribute))))
            return self
        if not hasattr(self.model, attribute):
            raise FieldNotFoundError(attribute, self.model.__name__, _public_names(self.model))
        return self

    # -- resolution helpers -------------------------------------------------

    def _attribute(self, model: type[Any], name: str) -> Any:
        descriptors = inspect(model).all_orm_descriptors
        if name.startswith("_") or name not in descriptors:
            raise FieldNotFoundError(name, model.__name__, _public_names(model))
        return getattr(model, name)

    def _relationship(self, model: type[Any], name: str) -> Any:
        prop = inspect(model).relationships.get(name)
        if prop is None:
            raise FieldNotFoundError(
                name, model.__name__, list(inspect(model).relationships.keys())
            )
        return prop

    def _column(self, field: str) -> Any:
        """Column for ordering/joining: ``name`` or ``table.name``."""
        head, dot, rest = field.partition(".")
        if not dot:
            return self._attribute(self.model, field)
        table: Table | None = self.model.metadata.tables.get(head)
        if table is None or rest not in table.c:
            available = list(table.c.keys()) if table is not None else []
            raise FieldNotFoundError(field, head, available)
        return table.c[rest]

    def _criterion(
        self,
        model: type[Any],
        field: str,
        build: Callable[[Any], ColumnElement[bool]],
    ) -> ColumnElement[bool]:
        """Build a predicate, traversing relationships for dotted names."""
        head, dot, rest = field.partition(".")
        if dot:
            prop = inspect(model).relationships.get(head)
            if prop is not None:
                attr = getattr(model, head)
                inner = self._criterion(prop.mapper.class_, rest, build)
                return attr.any(inner) if prop.uselist else attr.has(inner)
            if model is self.model:
                return build(self._column(field))
        return build(self._attribute(model, field))

    def _has(self, model: type[Any], path: str) -> ColumnElement[bool]:
        head, _, rest = path.partition(".")
        prop = self._relationship(model, head)
        attr = getattr(model, head)
        if rest:
            inner = self._has(prop.mapper.class_, rest)
            return attr.any(inner) if prop.uselist else attr.has(inner)
        return attr.any() if prop.uselist else attr.has()

    def _loader(
        self,
        model: type[Any],
        segments: list[str],
        prefix: str,
        fields: Mapping[str, Sequence[str]],
    ) -> _AbstractLoad:
        head, *rest = segments
        prop = self._relationship(model, head)
        target = prop.mapper.class_
        path = f"{prefix}.{head}" if prefix else head
        loader = selectinload(getattr(model, head))
        sub_options: list[Any] = []
        columns = fields.get(path)
        if columns:
            sub_options.append(load_only(*(self._attribute(target, c) for c in columns)))
        if rest:
            sub_options.append(self._loader(target, rest, path, fields))
        return loader.options(*sub_options) if sub_options else loader

    def _join_target(self, table: Any) -> Any:
        if isinstance(table, str):
            resolved = self.model.metadata.tables.get(table)
            if resolved is None:
                raise FieldNotFoundError(
                    table, "metadata", list(self.model.metadata.tables.keys())
                )
            return resolved
        return table

    def _tables_in_from(self) -> set[str]:
        return {t.name for t in extract_tables_from_statement(self._stmt)}


def _table_name(target: Any) -> str:
    if isinstance(target, Table):
        return target.name
    table = getattr(target, "__table__", None)
    if table is not None:
        return str(table.name)
    return str(getattr(target, "name", target))


def _public_names(model: type[Any]) -> list[str]:
    return [k for k in inspect(model).all_orm_descriptors.keys() if not k.startswith("_")]
