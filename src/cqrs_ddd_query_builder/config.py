"""QueryBuilderConfig — request shape, delimiters and strictness."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class QueryBuilderConfig:
    """Configuration shared by every builder created with it.

    Attributes:
        filter_parameter: Request group holding filter directives.
        sort_parameter: Request group holding the sort list.
        include_parameter: Request group holding relation includes.
        fields_parameter: Request group holding field selections.
        append_parameter: Request group holding appended attributes.
        offset_parameter: Pagination offset parameter.
        limit_parameter: Pagination limit parameter.
        delimiter: Separator for sort, include, fields and append lists.
        filter_delimiter: Separator that turns a filter value into a list.
            ``None`` keeps filter values as-is.
        count_suffix: Include-name suffix selecting a relation count.
        exists_suffix: Include-name suffix selecting a relation existence flag.
        strict: Reject unknown directives instead of dropping them.
        strict_filters: Per-kind override of ``strict`` (``None`` inherits).
        strict_sorts: Per-kind override of ``strict``.
        strict_includes: Per-kind override of ``strict``.
        strict_fields: Per-kind override of ``strict``.
        strict_appends: Per-kind override of ``strict``.
        default_limit: Page size when the request names none.
        max_limit: Upper bound for a requested page size.
    """

    filter_parameter: str = "filter"
    sort_parameter: str = "sort"
    include_parameter: str = "include"
    fields_parameter: str = "fields"
    append_parameter: str = "append"
    offset_parameter: str = "offset"
    limit_parameter: str = "limit"

    delimiter: str = ","
    filter_delimiter: str | None = ","

    count_suffix: str = "Count"
    exists_suffix: str = "Exists"

    strict: bool = True
    strict_filters: bool | None = None
    strict_sorts: bool | None = None
    strict_includes: bool | None = None
    strict_fields: bool | None = None
    strict_appends: bool | None = None

    default_limit: int = 20
    max_limit: int = 100

    def replace(self, **changes: Any) -> QueryBuilderConfig:
        """Return a copy with the given attributes replaced."""
        return dataclasses.replace(self, **changes)

    def is_strict(self, kind: str, override: bool | None = None) -> bool:
        """Whether unknown directives of ``kind`` must be rejected.

        ``override`` is the builder-level ``strict()`` setting, which wins
        over both the per-kind and the global configuration.
        """
        if override is not None:
            return override
        per_kind = _PER_KIND_STRICT.get(kind)
        value = getattr(self, per_kind) if per_kind else None
        return self.strict if value is None else bool(value)


_PER_KIND_STRICT = {
    "filter": "strict_filters",
    "sort": "strict_sorts",
    "include": "strict_includes",
    "fields": "strict_fields",
    "append": "strict_appends",
}

DEFAULT_CONFIG = QueryBuilderConfig()
