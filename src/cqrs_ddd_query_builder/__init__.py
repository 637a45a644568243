"""Allow-listed filter, sort, include, field and append directives for SQLAlchemy queries."""

from __future__ import annotations

from . import filters, includes, sorts
from .allow_list import (
    MISSING,
    AllowedAppend,
    AllowedField,
    AllowedFilter,
    AllowedInclude,
    AllowedSort,
    AllowList,
)
from .builder import QueryBuilder
from .config import DEFAULT_CONFIG, QueryBuilderConfig
from .contract import QueryContract
from .directives import Directive, DirectiveKind, ParsedRequest
from .exceptions import (
    ConfigurationError,
    FieldNotFoundError,
    InvalidAppendQuery,
    InvalidDirectiveValue,
    InvalidFieldQuery,
    InvalidFilterQuery,
    InvalidIncludeQuery,
    InvalidQuery,
    InvalidSortQuery,
    InvalidSubject,
    QueryBuilderError,
    ScopeNotFoundError,
    ValidationError,
)
from .filters import FilterOperator
from .pagination import Page, PaginationParser
from .parser import DirectiveParser
from .query import (
    QueryHandle,
    RelationshipQuery,
    SoftDeleteMixin,
    global_scope,
    query_scope,
    relation,
)
from .request_context import (
    get_request_parameters,
    request_parameters,
    set_request_parameters,
)
from .resolver import QueryResolver, ResolutionResult

__all__ = [
    "DEFAULT_CONFIG",
    "MISSING",
    "AllowList",
    "AllowedAppend",
    "AllowedField",
    "AllowedFilter",
    "AllowedInclude",
    "AllowedSort",
    "ConfigurationError",
    "Directive",
    "DirectiveKind",
    "DirectiveParser",
    "FieldNotFoundError",
    "FilterOperator",
    "InvalidAppendQuery",
    "InvalidDirectiveValue",
    "InvalidFieldQuery",
    "InvalidFilterQuery",
    "InvalidIncludeQuery",
    "InvalidQuery",
    "InvalidSortQuery",
    "InvalidSubject",
    "Page",
    "PaginationParser",
    "ParsedRequest",
    "QueryBuilder",
    "QueryBuilderConfig",
    "QueryBuilderError",
    "QueryContract",
    "QueryHandle",
    "QueryResolver",
    "RelationshipQuery",
    "ResolutionResult",
    "ScopeNotFoundError",
    "SoftDeleteMixin",
    "ValidationError",
    "filters",
    "get_request_parameters",
    "global_scope",
    "includes",
    "query_scope",
    "relation",
    "request_parameters",
    "set_request_parameters",
    "sorts",
]
