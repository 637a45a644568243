"""
QueryResolver — validate parsed directives and apply them in canonical order.

Resolution is a pure function of (allow-lists, request, configuration): the
order in which a caller registered allow-lists or requested directives never
changes the resulting statement. Application order is fixed:

1. filters, ordered by public name (defaults for absent ones),
2. sorts, in client order (builder defaults when nothing was sorted),
3. includes, in client order,
4. root field selection,
5. appends.

Unknown names of every kind are collected before anything is applied, so a
strict request fails with one error listing all of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .config import DEFAULT_CONFIG, QueryBuilderConfig
from .directives import DirectiveKind
from .exceptions import InvalidQuery

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .allow_list import (
        AllowedAppend,
        AllowedField,
        AllowedFilter,
        AllowedInclude,
        AllowedSort,
        AllowList,
    )
    from .contract import QueryContract
    from .directives import Directive, ParsedRequest

logger = logging.getLogger("cqrs_ddd.query_builder")


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one resolution.

    Attributes:
        query: The mutated query handle.
        filters: Filters that constrained the query (requested or default).
        sorts: Sorts applied, paired with their direction.
        includes: Includes attached.
        fields: Field selections applied.
        appends: Appends loaded.
        filtered: Snapshot taken after filtering, before sorts and includes;
            used for counting.
    """

    query: Any
    filters: tuple[AllowedFilter, ...] = ()
    sorts: tuple[tuple[AllowedSort, bool], ...] = ()
    includes: tuple[AllowedInclude, ...] = ()
    fields: tuple[AllowedField, ...] = ()
    appends: tuple[AllowedAppend, ...] = ()
    filtered: Any = None

    @property
    def append_names(self) -> list[str]:
        return [a.internal_name for a in self.appends]


@dataclass
class QueryResolver:
    """Validates a ``ParsedRequest`` against allow-lists and applies it.

    An allow-list left as ``None`` was never declared: requesting that kind
    of directive is an error in strict mode, exactly like an unknown name.
    """

    filters: AllowList[AllowedFilter] | None = None
    sorts: AllowList[AllowedSort] | None = None
    includes: AllowList[AllowedInclude] | None = None
    fields: AllowList[AllowedField] | None = None
    appends: AllowList[AllowedAppend] | None = None
    default_sorts: Sequence[tuple[AllowedSort, bool]] = field(default_factory=tuple)
    config: QueryBuilderConfig = DEFAULT_CONFIG
    strict: bool | None = None

    def resolve(self, query: QueryContract, request: ParsedRequest) -> ResolutionResult:
        self._check_unknown(request)

        query, filters = self._apply_filters(query, request)
        filtered = query.clone()
        query, sorts = self._apply_sorts(query, request)
        selected = self._resolve_all(self.fields, request.fields)
        relation_fields: dict[str, list[str]] = {}
        for spec in selected:
            if spec.relation:
                relation_fields.setdefault(spec.relation, []).append(spec.column)
        query, includes = self._apply_includes(query, request, relation_fields)
        root = [spec.column for spec in selected if not spec.relation]
        if root:
            query = query.select(*root)
        appends = self._resolve_all(self.appends, request.appends)
        for append in appends:
            query = query.append(append.internal_name)

        return ResolutionResult(
            query=query,
            filters=tuple(filters),
            sorts=tuple(sorts),
            includes=tuple(includes),
            fields=tuple(selected),
            appends=tuple(appends),
            filtered=filtered,
        )

    # -- validation ---------------------------------------------------------

    def _lists(self) -> dict[DirectiveKind, AllowList[Any] | None]:
        return {
            DirectiveKind.FILTER: self.filters,
            DirectiveKind.SORT: self.sorts,
            DirectiveKind.INCLUDE: self.includes,
            DirectiveKind.FIELD: self.fields,
            DirectiveKind.APPEND: self.appends,
        }

    def _check_unknown(self, request: ParsedRequest) -> None:
        unknown: dict[str, list[str]] = {}
        allowed: dict[str, list[str]] = {}
        for kind, allow_list in self._lists().items():
            names = _unique(d.name for d in request.of(kind))
            rejected = [
                n for n in names if allow_list is None or allow_list.resolve(n) is None
            ]
            if not rejected:
                continue
            if self.config.is_strict(kind.value, self.strict):
                unknown[kind.value] = rejected
                allowed[kind.value] = allow_list.names() if allow_list is not None else []
            else:
                logger.debug("Dropping unknown %s directive(s): %s", kind.value, rejected)
        if unknown:
            raise InvalidQuery.for_errors(unknown, allowed)

    @staticmethod
    def _resolve_all(
        allow_list: AllowList[Any] | None, directives: Sequence[Directive]
    ) -> list[Any]:
        if allow_list is None:
            return []
        resolved: list[Any] = []
        for name in _unique(d.name for d in directives):
            spec = allow_list.resolve(name)
            if spec is not None:
                resolved.append(spec)
        return resolved

    # -- application --------------------------------------------------------

    def _apply_filters(
        self, query: QueryContract, request: ParsedRequest
    ) -> tuple[QueryContract, list[AllowedFilter]]:
        applied: list[AllowedFilter] = []
        if self.filters is None:
            return query, applied
        requested = {d.name: d.value for d in request.filters}
        for spec in sorted(self.filters, key=lambda s: s.name):
            if spec.name in requested:
                value = spec.prepare(requested[spec.name], self.config.filter_delimiter)
            elif spec.has_default:
                value = spec.default
            else:
                continue
            result = spec.apply(query, value)
            if result is None:
                logger.debug("Filter %r has a blank value; skipped", spec.name)
                continue
            query = result
            applied.append(spec)
        return query, applied

    def _apply_sorts(
        self, query: QueryContract, request: ParsedRequest
    ) -> tuple[QueryContract, list[tuple[AllowedSort, bool]]]:
        applied: list[tuple[AllowedSort, bool]] = []
        seen: set[str] = set()
        if self.sorts is not None:
            for directive in request.sorts:
                if directive.name in seen:
                    continue
                seen.add(directive.name)
                spec = self.sorts.resolve(directive.name)
                if spec is None:
                    continue
                query = spec.apply(query, directive.descending)
                applied.append((spec, directive.descending))
        if not applied:
            for spec, descending in self.default_sorts:
                query = spec.apply(query, descending)
                applied.append((spec, descending))
        return query, applied

    def _apply_includes(
        self,
        query: QueryContract,
        request: ParsedRequest,
        relation_fields: dict[str, list[str]],
    ) -> tuple[QueryContract, list[AllowedInclude]]:
        includes: list[AllowedInclude] = self._resolve_all(self.includes, request.includes)
        for include in includes:
            query = include.apply(query, relation_fields)
        return query, includes


def _unique(names: Any) -> list[str]:
    return list(dict.fromkeys(names))
