"""
SQLAlchemy comparison operators used by ``QueryHandle.where``.

Each operator is an isolated strategy registered in an
``OperatorRegistry`` keyed by its contract symbol (``"="``, ``"icontains"``,
...). LIKE-based operators escape ``%`` and ``_`` in client values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, cast

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement


class SQLAlchemyOperator(ABC):
    """Strategy interface for compiling one comparison."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The contract symbol this strategy handles."""
        ...

    @abstractmethod
    def apply(self, column: Any, value: Any) -> ColumnElement[bool]: ...


class EqualOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "="

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column == value)


class NotEqualOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "!="

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column != value)


class GreaterThanOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return ">"

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column > value)


class GreaterEqualOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return ">="

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column >= value)


class LessThanOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "<"

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column < value)


class LessEqualOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "<="

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column <= value)


class LikeOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "like"

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.like(value))


class ILikeOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "ilike"

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.ilike(value))


class IContainsOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "icontains"

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.icontains(value, autoescape=True))


class StartsWithOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "startswith"

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.startswith(value, autoescape=True))


class EndsWithOperator(SQLAlchemyOperator):
    @property
    def name(self) -> str:
        return "endswith"

    def apply(self, column: Any, value: Any) -> ColumnElement[bool]:
        return cast("ColumnElement[bool]", column.endswith(value, autoescape=True))


class OperatorRegistry:
    """Registry of ``SQLAlchemyOperator`` instances keyed by symbol."""

    def __init__(self) -> None:
        self._operators: dict[str, SQLAlchemyOperator] = {}

    def register(self, operator: SQLAlchemyOperator, *aliases: str) -> None:
        self._operators[operator.name] = operator
        for alias in aliases:
            self._operators[alias] = operator

    def get(self, name: str) -> SQLAlchemyOperator | None:
        return self._operators.get(name.lower())

    @property
    def supported_operators(self) -> set[str]:
        return set(self._operators)

    def apply(self, name: str, column: Any, value: Any) -> ColumnElement[bool]:
        """
        Look up the operator and apply.

        Raises:
            ValueError: If the operator is not registered.
        """
        op = self.get(name)
        if op is None:
            raise ValueError(f"Unsupported operator for SQLAlchemy: {name}")
        return op.apply(column, value)


def build_default_registry() -> OperatorRegistry:
    """Create a registry with every built-in operator."""
    registry = OperatorRegistry()
    registry.register(EqualOperator(), "==")
    registry.register(NotEqualOperator(), "<>")
    registry.register(GreaterThanOperator())
    registry.register(GreaterEqualOperator())
    registry.register(LessThanOperator())
    registry.register(LessEqualOperator())
    registry.register(LikeOperator())
    registry.register(ILikeOperator())
    registry.register(IContainsOperator())
    registry.register(StartsWithOperator())
    registry.register(EndsWithOperator())
    return registry


DEFAULT_OPERATORS: OperatorRegistry = build_default_registry()
