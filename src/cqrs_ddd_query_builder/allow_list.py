"""
Allow-list entries and the per-kind registry.

Every directive a client sends is looked up here by its *public* name.
Internal names (columns, relations, scopes) are only ever reached through a
resolved entry, never matched against client input directly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from .values import is_blank, normalize_value, validate_shape, without_ignored

if TYPE_CHECKING:
    from .contract import QueryContract
    from .directives import DirectiveKind
    from .filters import Filter
    from .includes import Include
    from .sorts import Sort

logger = logging.getLogger("cqrs_ddd.query_builder")


class _Missing:
    """Marker for "no default value"."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True)
class AllowedFilter:
    """A permitted filter: public name, strategy and value policy.

    Attributes:
        name: Public name used in ``filter[<name>]``.
        strategy: How the filter constrains the query.
        internal_name: Attribute, relation path or scope the strategy targets.
        default: Value applied when the request omits the filter.
        nullable: Treat blank values as an explicit ``IS NULL`` match.
        ignored: Values that count as "filter absent".
        delimiter: Array separator; ``None`` uses the configured one,
            ``""`` disables splitting.
    """

    name: str
    strategy: Filter
    internal_name: str = ""
    default: Any = MISSING
    nullable: bool = False
    ignored: tuple[Any, ...] = ()
    delimiter: str | None = None

    def __post_init__(self) -> None:
        if not self.internal_name:
            object.__setattr__(self, "internal_name", self.name)

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def prepare(self, raw: Any, default_delimiter: str | None) -> Any:
        """Normalise and validate a client-supplied value."""
        delimiter = default_delimiter if self.delimiter is None else self.delimiter
        value = without_ignored(normalize_value(raw, delimiter), self.ignored)
        if self.strategy.shape == "any":
            return value
        return validate_shape(
            self.name, value, allow_sequence=self.strategy.shape == "sequence"
        )

    def apply(self, query: QueryContract, value: Any) -> QueryContract | None:
        """Apply the strategy; ``None`` means the filter counted as absent."""
        if is_blank(value):
            if not self.nullable:
                return None
            value = None
        return self.strategy.apply(query, value, self.internal_name)


@dataclass(frozen=True)
class AllowedSort:
    name: str
    strategy: Sort
    internal_name: str = ""

    def __post_init__(self) -> None:
        if not self.internal_name:
            object.__setattr__(self, "internal_name", self.name.lstrip("-"))
        object.__setattr__(self, "name", self.name.lstrip("-"))

    def apply(self, query: QueryContract, descending: bool) -> QueryContract:
        return self.strategy.apply(query, descending, self.internal_name)


@dataclass(frozen=True)
class AllowedInclude:
    name: str
    strategy: Include
    internal_name: str = ""

    def __post_init__(self) -> None:
        if not self.internal_name:
            object.__setattr__(self, "internal_name", self.name)

    def apply(
        self, query: QueryContract, fields: Mapping[str, Sequence[str]]
    ) -> QueryContract:
        return self.strategy.apply(query, self.internal_name, fields)


@dataclass(frozen=True)
class AllowedField:
    """A selectable column, ``"name"`` on the root or ``"relation.name"``."""

    name: str
    internal_name: str = ""

    def __post_init__(self) -> None:
        if not self.internal_name:
            object.__setattr__(self, "internal_name", self.name)

    @property
    def relation(self) -> str:
        """Relation path the field belongs to (``""`` for the root entity)."""
        return self.internal_name.rpartition(".")[0]

    @property
    def column(self) -> str:
        return self.internal_name.rpartition(".")[2]


@dataclass(frozen=True)
class AllowedAppend:
    """A computed attribute the client may ask to have loaded."""

    name: str
    internal_name: str = ""

    def __post_init__(self) -> None:
        if not self.internal_name:
            object.__setattr__(self, "internal_name", self.name)


class _Named(Protocol):
    @property
    def name(self) -> str: ...


S = TypeVar("S", bound=_Named)


@dataclass
class AllowList(Generic[S]):
    """
    Ordered registry of allowed entries for one directive kind.

    Registering an existing public name replaces the entry in place
    (last write wins) so incremental, composable declarations are possible
    while the declaration order stays stable.
    """

    kind: DirectiveKind
    _entries: dict[str, S] = field(default_factory=dict)

    def register(self, spec: S) -> None:
        if spec.name in self._entries:
            logger.debug("Replacing allowed %s %r", self.kind.value, spec.name)
        self._entries[spec.name] = spec

    def register_all(self, specs: Iterable[S]) -> None:
        for spec in specs:
            self.register(spec)

    def resolve(self, name: str) -> S | None:
        """Return the entry for public ``name``, or ``None`` if not allowed."""
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def copy(self) -> AllowList[S]:
        return AllowList(self.kind, dict(self._entries))

    def __iter__(self) -> Iterator[S]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries
