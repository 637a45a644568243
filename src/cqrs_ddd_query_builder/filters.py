"""
Filter strategies and their allow-list constructors.

Each strategy implements ``Filter.apply(query, value, property_name)`` on
top of :class:`~cqrs_ddd_query_builder.contract.QueryContract`. The set is
closed; arbitrary behaviour goes through :func:`callback` or :func:`custom`.

Usage::

    from cqrs_ddd_query_builder import filters

    builder.allowed_filters(
        "name",
        filters.partial("title"),
        filters.exact("author", "author.name"),
        filters.scope("published_before"),
    )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from .allow_list import MISSING, AllowedFilter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .contract import QueryContract

ValueShape = Literal["scalar", "sequence", "any"]
FilterCallback = Callable[["QueryContract", Any, str], "QueryContract | None"]


class FilterOperator(str, Enum):
    """Comparison operators for :func:`operator` filters."""

    EQUAL = "="
    NOT_EQUAL = "!="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    DYNAMIC = "dynamic"


# Longest prefixes first so ">=" wins over ">".
_DYNAMIC_PREFIXES: tuple[tuple[str, FilterOperator], ...] = (
    (">=", FilterOperator.GREATER_THAN_OR_EQUAL),
    ("<=", FilterOperator.LESS_THAN_OR_EQUAL),
    ("!=", FilterOperator.NOT_EQUAL),
    ("<>", FilterOperator.NOT_EQUAL),
    (">", FilterOperator.GREATER_THAN),
    ("<", FilterOperator.LESS_THAN),
    ("=", FilterOperator.EQUAL),
)

_TRUTHY = {True, 1, "1", "yes", "on"}


class Filter(ABC):
    """Strategy interface for applying one filter directive."""

    shape: ClassVar[ValueShape] = "sequence"

    @abstractmethod
    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        """
        Constrain ``query``.

        Args:
            query: The query handle.
            value: Normalised filter value (``None`` only for nullable filters).
            property_name: The allow-list entry's internal name.

        Returns:
            The mutated query handle.
        """
        ...


class ExactFilter(Filter):
    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        if value is None:
            return query.where_null(property_name)
        if isinstance(value, list):
            return query.where_in(property_name, value)
        return query.where(property_name, "=", value)


class PartialFilter(Filter):
    """Case-insensitive substring match; list values are OR-ed."""

    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        if value is None:
            return query.where_null(property_name)
        if isinstance(value, list):
            values = [str(v) for v in value if v is not None and v != ""]
            return query.where_any(property_name, "icontains", values)
        return query.where(property_name, "icontains", str(value))


class BeginsWithStrictFilter(Filter):
    operator: ClassVar[str] = "startswith"

    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        if isinstance(value, list):
            return query.where_any(property_name, self.operator, [str(v) for v in value])
        return query.where(property_name, self.operator, str(value))


class EndsWithStrictFilter(BeginsWithStrictFilter):
    operator: ClassVar[str] = "endswith"


class OperatorFilter(Filter):
    def __init__(self, operator: FilterOperator) -> None:
        self.operator = FilterOperator(operator)

    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        if isinstance(value, list):
            pairs = [self._split(v) for v in value]
            operators = {op for op, _ in pairs}
            if operators == {FilterOperator.EQUAL}:
                return query.where_in(property_name, [v for _, v in pairs])
            if operators == {FilterOperator.NOT_EQUAL}:
                return query.where_not_in(property_name, [v for _, v in pairs])
            if len(operators) == 1:
                return query.where_any(
                    property_name, operators.pop().value, [v for _, v in pairs]
                )
            for op, v in pairs:
                query = query.where(property_name, op.value, v)
            return query
        op, operand = self._split(value)
        return query.where(property_name, op.value, operand)

    def _split(self, value: Any) -> tuple[FilterOperator, Any]:
        if self.operator is not FilterOperator.DYNAMIC:
            return self.operator, value
        if isinstance(value, str):
            for prefix, op in _DYNAMIC_PREFIXES:
                if value.startswith(prefix):
                    return op, value[len(prefix) :].strip()
        return FilterOperator.EQUAL, value


class ScopeFilter(Filter):
    """Call a model query scope; list values become positional arguments."""

    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        args = value if isinstance(value, list) else [value]
        return query.call_scope(property_name, *args)


class HasRelationFilter(Filter):
    """Relation existence: truthy values require a related row, falsy forbid one."""

    shape: ClassVar[ValueShape] = "scalar"

    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        exists = value in _TRUTHY or (isinstance(value, str) and value.lower() in _TRUTHY)
        return query.where_has(property_name, exists=exists)


class TrashedFilter(Filter):
    """``with`` includes soft-deleted rows, ``only`` restricts to them."""

    shape: ClassVar[ValueShape] = "scalar"

    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        if value == "with":
            return query.with_trashed()
        if value == "only":
            return query.only_trashed()
        return query


class CallbackFilter(Filter):
    """Delegate to a caller-supplied function or filter object."""

    shape: ClassVar[ValueShape] = "any"

    def __init__(self, callback: FilterCallback) -> None:
        self.callback = callback

    def apply(
        self, query: QueryContract, value: Any, property_name: str
    ) -> QueryContract:
        result = self.callback(query, value, property_name)
        return query if result is None else result


# ---------------------------------------------------------------------------
# Allow-list constructors
# ---------------------------------------------------------------------------


def _allowed(
    name: str,
    strategy: Filter,
    internal_name: str | None,
    *,
    default: Any = MISSING,
    nullable: bool = False,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    return AllowedFilter(
        name=name,
        strategy=strategy,
        internal_name=internal_name or name,
        default=default,
        nullable=nullable,
        ignored=tuple(ignore),
        delimiter=delimiter,
    )


def exact(
    name: str,
    internal_name: str | None = None,
    *,
    default: Any = MISSING,
    nullable: bool = False,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    """Equality, or ``IN`` for list values.

    A dotted ``internal_name`` (``"author.name"``) filters through the
    relationship with an ``EXISTS`` constraint. ``delimiter=""`` disables
    list splitting for this filter.
    """
    return _allowed(
        name,
        ExactFilter(),
        internal_name,
        default=default,
        nullable=nullable,
        ignore=ignore,
        delimiter=delimiter,
    )


def partial(
    name: str,
    internal_name: str | None = None,
    *,
    default: Any = MISSING,
    nullable: bool = False,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    """Case-insensitive ``LIKE '%value%'`` with wildcards escaped."""
    return _allowed(
        name,
        PartialFilter(),
        internal_name,
        default=default,
        nullable=nullable,
        ignore=ignore,
        delimiter=delimiter,
    )


def begins_with_strict(
    name: str,
    internal_name: str | None = None,
    *,
    default: Any = MISSING,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    return _allowed(
        name,
        BeginsWithStrictFilter(),
        internal_name,
        default=default,
        ignore=ignore,
        delimiter=delimiter,
    )


def ends_with_strict(
    name: str,
    internal_name: str | None = None,
    *,
    default: Any = MISSING,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    return _allowed(
        name,
        EndsWithStrictFilter(),
        internal_name,
        default=default,
        ignore=ignore,
        delimiter=delimiter,
    )


def operator(
    name: str,
    op: FilterOperator | str,
    internal_name: str | None = None,
    *,
    default: Any = MISSING,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    """Compare with a fixed operator, or read it from the value with ``DYNAMIC``."""
    return _allowed(
        name,
        OperatorFilter(FilterOperator(op)),
        internal_name,
        default=default,
        ignore=ignore,
        delimiter=delimiter,
    )


def scope(
    name: str,
    scope_name: str | None = None,
    *,
    default: Any = MISSING,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    """Call the model's ``@query_scope`` named ``scope_name`` (defaults to ``name``)."""
    return _allowed(
        name,
        ScopeFilter(),
        scope_name,
        default=default,
        ignore=ignore,
        delimiter=delimiter,
    )


def has_relation(
    name: str, relation: str | None = None, *, default: Any = MISSING
) -> AllowedFilter:
    return _allowed(name, HasRelationFilter(), relation, default=default, delimiter="")


def trashed(name: str = "trashed", *, default: Any = MISSING) -> AllowedFilter:
    return _allowed(name, TrashedFilter(), None, default=default, delimiter="")


def callback(
    name: str,
    fn: FilterCallback,
    internal_name: str | None = None,
    *,
    default: Any = MISSING,
    nullable: bool = False,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    """``fn(query, value, property_name)``; returning ``None`` keeps ``query``."""
    return _allowed(
        name,
        CallbackFilter(fn),
        internal_name,
        default=default,
        nullable=nullable,
        ignore=ignore,
        delimiter=delimiter,
    )


def custom(
    name: str,
    filter_obj: FilterCallback,
    internal_name: str | None = None,
    *,
    default: Any = MISSING,
    nullable: bool = False,
    ignore: Iterable[Any] = (),
    delimiter: str | None = None,
) -> AllowedFilter:
    """Same as :func:`callback` for objects implementing ``__call__``."""
    return callback(
        name,
        filter_obj,
        internal_name,
        default=default,
        nullable=nullable,
        ignore=ignore,
        delimiter=delimiter,
    )
