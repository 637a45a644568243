"""
QueryBuilder — one query-building session.

A builder is bound to one subject (mapped class, ``Select``, relationship
query, write-only collection or ``QueryHandle``) and one set of request
parameters. Allow-lists are declared fluently; nothing is validated or
applied until a terminal call (``build``, ``to_sql``, ``get``, ``first``,
``paginate`` and their async variants), whose resolution is cached until the
builder is changed again.

Usage::

    from cqrs_ddd_query_builder import QueryBuilder, filters, sorts

    users = (
        QueryBuilder(User, {"filter": {"name": "john"}, "sort": "-created_at"})
        .allowed_filters("name", filters.exact("email"))
        .allowed_sorts("created_at", sorts.field("name", "last_name"))
        .allowed_includes("posts", "postsCount")
        .get(session)
    )
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from . import includes as include_specs
from . import sorts as sort_specs
from .allow_list import (
    AllowedAppend,
    AllowedField,
    AllowedFilter,
    AllowedInclude,
    AllowedSort,
    AllowList,
)
from .config import DEFAULT_CONFIG, QueryBuilderConfig
from .directives import DirectiveKind, ParsedRequest
from .filters import exact
from .pagination import Page, PaginationParser
from .parser import DirectiveParser
from .query.subject import to_handle
from .request_context import get_request_parameters
from .resolver import QueryResolver, ResolutionResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Select
    from sqlalchemy.engine import Dialect, Result
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import Session

    from .query.handle import QueryHandle

logger = logging.getLogger("cqrs_ddd.query_builder")

SortEntry = str | AllowedSort


class QueryBuilder:
    """Builds a SQLAlchemy statement from allow-listed request directives."""

    def __init__(
        self,
        subject: Any,
        params: Mapping[str, Any] | None = None,
        *,
        config: QueryBuilderConfig | None = None,
    ) -> None:
        """
        Initialize QueryBuilder.

        Args:
            subject: What to query.
            params: Request parameters; defaults to the parameters registered
                for the current request via ``set_request_parameters``.
            config: Parameter names, delimiters and strictness.

        Raises:
            InvalidSubject: ``subject`` cannot be queried.
        """
        self._config = config or DEFAULT_CONFIG
        self._handle: QueryHandle = to_handle(subject)
        self._params: dict[str, Any] = dict(
            params if params is not None else get_request_parameters()
        )
        self._filters: AllowList[AllowedFilter] | None = None
        self._sorts: AllowList[AllowedSort] | None = None
        self._includes: AllowList[AllowedInclude] | None = None
        self._fields: AllowList[AllowedField] | None = None
        self._appends: AllowList[AllowedAppend] | None = None
        self._default_sorts: list[tuple[SortEntry, bool]] = []
        self._strict: bool | None = None
        self._request: ParsedRequest | None = None
        self._result: ResolutionResult | None = None

    @classmethod
    def for_subject(
        cls,
        subject: Any,
        params: Mapping[str, Any] | None = None,
        *,
        config: QueryBuilderConfig | None = None,
    ) -> QueryBuilder:
        return cls(subject, params, config=config)

    @property
    def config(self) -> QueryBuilderConfig:
        return self._config

    @property
    def request(self) -> ParsedRequest:
        """The parsed request; parsed on first access."""
        if self._request is None:
            self._request = DirectiveParser(self._config).parse(self._params)
        return self._request

    @property
    def handle(self) -> QueryHandle:
        """The subject handle before any directive is applied."""
        return self._handle

    # -- allow-lists --------------------------------------------------------

    def allowed_filters(self, *filters: str | AllowedFilter | Iterable[Any]) -> QueryBuilder:
        """Allow filters; plain strings become exact filters."""
        self._filters = self._register(
            self._filters, DirectiveKind.FILTER, filters, self._coerce_filter
        )
        return self

    def allowed_sorts(self, *sorts: str | AllowedSort | Iterable[Any]) -> QueryBuilder:
        """Allow sorts; plain strings become field sorts (a leading ``-`` is ignored)."""
        self._sorts = self._register(
            self._sorts, DirectiveKind.SORT, sorts, self._coerce_sort
        )
        return self

    def allowed_includes(
        self, *includes: str | AllowedInclude | Iterable[Any]
    ) -> QueryBuilder:
        """
        Allow includes.

        Plain strings ending in the configured count/exists suffix become
        count/exists includes, other strings relationship includes. Dotted
        relationship paths also allow each parent path.
        """
        specs: list[AllowedInclude] = []
        for item in _flatten(includes):
            specs.extend(include_specs.expand(self._coerce_include(item)))
        self._includes = self._register(
            self._includes, DirectiveKind.INCLUDE, specs, lambda s: s
        )
        return self

    def allowed_fields(self, *fields: str | AllowedField | Iterable[Any]) -> QueryBuilder:
        """Allow field selection; ``"relation.column"`` names a related column."""
        self._fields = self._register(
            self._fields,
            DirectiveKind.FIELD,
            fields,
            lambda f: AllowedField(f) if isinstance(f, str) else f,
        )
        return self

    def allowed_appends(
        self, *appends: str | AllowedAppend | Iterable[Any]
    ) -> QueryBuilder:
        self._appends = self._register(
            self._appends,
            DirectiveKind.APPEND,
            appends,
            lambda a: AllowedAppend(a) if isinstance(a, str) else a,
        )
        return self

    def default_sort(
        self, *sorts: SortEntry | Iterable[SortEntry], descending: bool = False
    ) -> QueryBuilder:
        """
        Sorts applied when the request asks for none.

        Strings use the allowed sort of the same public name when one is
        registered, a field sort otherwise; ``-`` means descending.
        ``descending`` sets the direction of ``AllowedSort`` entries.
        """
        self._default_sorts.extend((entry, descending) for entry in _flatten(sorts))
        return self._changed()

    def strict(self, enabled: bool = True) -> QueryBuilder:
        """Override the configured strictness for every directive kind."""
        self._strict = enabled
        return self._changed()

    def _register(
        self,
        current: AllowList[Any] | None,
        kind: DirectiveKind,
        items: Iterable[Any],
        coerce: Any,
    ) -> AllowList[Any]:
        allow_list = current if current is not None else AllowList(kind)
        allow_list.register_all(coerce(item) for item in _flatten(items))
        self._changed()
        return allow_list

    def _coerce_filter(self, item: str | AllowedFilter) -> AllowedFilter:
        return exact(item) if isinstance(item, str) else item

    def _coerce_sort(self, item: str | AllowedSort) -> AllowedSort:
        return sort_specs.field(item.lstrip("-")) if isinstance(item, str) else item

    def _coerce_include(self, item: str | AllowedInclude) -> AllowedInclude:
        if not isinstance(item, str):
            return item
        count_suffix = self._config.count_suffix
        exists_suffix = self._config.exists_suffix
        if count_suffix and item.endswith(count_suffix) and item != count_suffix:
            return include_specs.count(item, item[: -len(count_suffix)])
        if exists_suffix and item.endswith(exists_suffix) and item != exists_suffix:
            return include_specs.exists(item, item[: -len(exists_suffix)])
        return include_specs.relationship(item)

    # -- query mutations ----------------------------------------------------

    def where(self, field: str, operator: str, value: Any) -> QueryBuilder:
        self._handle.where(field, operator, value)
        return self._changed()

    def where_in(self, field: str, values: Sequence[Any]) -> QueryBuilder:
        self._handle.where_in(field, values)
        return self._changed()

    def where_not_in(self, field: str, values: Sequence[Any]) -> QueryBuilder:
        self._handle.where_not_in(field, values)
        return self._changed()

    def where_null(self, field: str, *, negate: bool = False) -> QueryBuilder:
        self._handle.where_null(field, negate=negate)
        return self._changed()

    def where_has(self, relation: str, *, exists: bool = True) -> QueryBuilder:
        self._handle.where_has(relation, exists=exists)
        return self._changed()

    def order_by(self, field: str, direction: str = "asc") -> QueryBuilder:
        self._handle.order_by(field, direction)
        return self._changed()

    def join_if_absent(
        self,
        table: Any,
        left: str,
        operator: str,
        right: str,
        *,
        outer: bool = False,
    ) -> QueryBuilder:
        self._handle.join_if_absent(table, left, operator, right, outer=outer)
        return self._changed()

    def scope(self, name: str, *args: Any) -> QueryBuilder:
        """Apply the model's local query scope ``name``."""
        self._handle.call_scope(name, *args)
        return self._changed()

    def with_(self, path: str, fields: Mapping[str, Sequence[str]] | None = None) -> QueryBuilder:
        self._handle.with_(path, fields)
        return self._changed()

    def select(self, *fields: str) -> QueryBuilder:
        self._handle.select(*fields)
        return self._changed()

    def with_trashed(self) -> QueryBuilder:
        self._handle.with_trashed()
        return self._changed()

    def only_trashed(self) -> QueryBuilder:
        self._handle.only_trashed()
        return self._changed()

    def without_global_scopes(self, *names: str) -> QueryBuilder:
        self._handle.without_global_scopes(*names)
        return self._changed()

    def apply(self, fn: Any) -> QueryBuilder:
        """Transform the underlying ``Select`` with ``fn(stmt) -> stmt``."""
        self._handle.apply(fn)
        return self._changed()

    def _changed(self) -> QueryBuilder:
        self._result = None
        return self

    # -- cloning ------------------------------------------------------------

    def clone(self) -> QueryBuilder:
        """Independent builder sharing nothing mutable with this one."""
        twin = object.__new__(QueryBuilder)
        twin._config = self._config
        twin._handle = self._handle.clone()
        twin._params = dict(self._params)
        twin._filters = self._filters.copy() if self._filters is not None else None
        twin._sorts = self._sorts.copy() if self._sorts is not None else None
        twin._includes = self._includes.copy() if self._includes is not None else None
        twin._fields = self._fields.copy() if self._fields is not None else None
        twin._appends = self._appends.copy() if self._appends is not None else None
        twin._default_sorts = list(self._default_sorts)
        twin._strict = self._strict
        twin._request = self._request
        twin._result = None
        return twin

    def __copy__(self) -> QueryBuilder:
        return self.clone()

    # -- terminals ----------------------------------------------------------

    def build(self) -> ResolutionResult:
        """Validate and apply the request; cached until the builder changes.

        Raises:
            InvalidQuery: Unknown directive names in strict mode.
            InvalidDirectiveValue: A filter value has the wrong shape.
        """
        if self._result is None:
            resolver = QueryResolver(
                filters=self._filters,
                sorts=self._sorts,
                includes=self._includes,
                fields=self._fields,
                appends=self._appends,
                default_sorts=self._resolve_default_sorts(),
                config=self._config,
                strict=self._strict,
            )
            self._result = resolver.resolve(self._handle.clone(), self.request)
        return self._result

    def _resolve_default_sorts(self) -> list[tuple[AllowedSort, bool]]:
        resolved: list[tuple[AllowedSort, bool]] = []
        for entry, descending in self._default_sorts:
            if isinstance(entry, AllowedSort):
                resolved.append((entry, descending))
                continue
            descending = entry.startswith("-")
            name = entry.lstrip("-")
            spec = self._sorts.resolve(name) if self._sorts is not None else None
            resolved.append((spec or sort_specs.field(name), descending))
        return resolved

    @property
    def statement(self) -> Select[Any]:
        """The final statement, global scopes applied."""
        return self.build().query.statement

    def count_statement(self) -> Select[Any]:
        """``SELECT count(*)`` over the filtered, unsorted statement."""
        return self.build().filtered.count_statement()

    def to_sql(self, dialect: Dialect | None = None, *, literal_binds: bool = False) -> str:
        return self.build().query.to_sql(dialect, literal_binds=literal_binds)

    def get(self, session: Session) -> list[Any]:
        """All matching rows: entities, or ``Row`` objects when extra columns are selected."""
        return self._rows(session.execute(self.statement))

    def first(self, session: Session) -> Any | None:
        rows = self._rows(session.execute(self.statement.limit(1)))
        return rows[0] if rows else None

    def paginate(
        self,
        session: Session,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Page[Any]:
        page = PaginationParser(self._config).parse(self._params, limit=limit, offset=offset)
        total = session.execute(self.count_statement()).scalar_one()
        items = self._rows(
            session.execute(self.statement.limit(page.limit).offset(page.offset))
        )
        return Page(items=items, total=total, limit=page.limit, offset=page.offset)

    async def aget(self, session: AsyncSession) -> list[Any]:
        return self._rows(await session.execute(self.statement))

    async def afirst(self, session: AsyncSession) -> Any | None:
        rows = self._rows(await session.execute(self.statement.limit(1)))
        return rows[0] if rows else None

    async def apaginate(
        self,
        session: AsyncSession,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Page[Any]:
        page = PaginationParser(self._config).parse(self._params, limit=limit, offset=offset)
        total = (await session.execute(self.count_statement())).scalar_one()
        items = self._rows(
            await session.execute(self.statement.limit(page.limit).offset(page.offset))
        )
        return Page(items=items, total=total, limit=page.limit, offset=page.offset)

    def _rows(self, result: Result[Any]) -> list[Any]:
        if self.build().query.selects_entity_only:
            return list(result.scalars().all())
        return list(result.all())

    def __repr__(self) -> str:
        return f"<QueryBuilder {self._handle.model.__name__}>"


def _flatten(items: Iterable[Any]) -> list[Any]:
    out: list[Any] = []
    for item in items:
        if isinstance(item, list | tuple | set):
            out.extend(_flatten(item))
        else:
            out.append(item)
    return out
