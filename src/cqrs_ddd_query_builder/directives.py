"""Directive value types produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DirectiveKind(str, Enum):
    """Kinds of client directives the builder understands."""

    FILTER = "filter"
    SORT = "sort"
    INCLUDE = "include"
    FIELD = "fields"
    APPEND = "append"


@dataclass(frozen=True)
class Directive:
    """One client-supplied instruction.

    Attributes:
        kind: Directive kind.
        name: Public name as sent by the client (sort names without ``-``).
        value: Raw filter value; ``None`` for other kinds.
        descending: Sort direction; always ``False`` for other kinds.
    """

    kind: DirectiveKind
    name: str
    value: Any = None
    descending: bool = False

    def __str__(self) -> str:
        if self.kind is DirectiveKind.SORT and self.descending:
            return f"-{self.name}"
        return self.name


@dataclass(frozen=True)
class ParsedRequest:
    """Every directive of one request, grouped by kind."""

    filters: tuple[Directive, ...] = ()
    sorts: tuple[Directive, ...] = ()
    includes: tuple[Directive, ...] = ()
    fields: tuple[Directive, ...] = ()
    appends: tuple[Directive, ...] = ()
    params: dict[str, Any] = field(default_factory=dict, compare=False)

    def of(self, kind: DirectiveKind) -> tuple[Directive, ...]:
        """Return the directives of ``kind``."""
        return {
            DirectiveKind.FILTER: self.filters,
            DirectiveKind.SORT: self.sorts,
            DirectiveKind.INCLUDE: self.includes,
            DirectiveKind.FIELD: self.fields,
            DirectiveKind.APPEND: self.appends,
        }[kind]

    def filter_names(self) -> list[str]:
        return [d.name for d in self.filters]

    def sort_names(self) -> list[str]:
        return [str(d) for d in self.sorts]

    def is_empty(self) -> bool:
        return not (
            self.filters or self.sorts or self.includes or self.fields or self.appends
        )
