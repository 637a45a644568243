"""PaginationParser — offset/limit from query params, and the ``Page`` result."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, NamedTuple, TypeVar

from .config import DEFAULT_CONFIG, QueryBuilderConfig

T = TypeVar("T")


class PaginationResult(NamedTuple):
    offset: int
    limit: int


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the total number of matching rows."""

    items: list[T]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total

    @property
    def next_offset(self) -> int | None:
        return self.offset + self.limit if self.has_more else None


class PaginationParser:
    """Parse offset/limit from query params, bounded by configuration."""

    def __init__(self, config: QueryBuilderConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG

    def parse(
        self,
        query_params: Mapping[str, Any],
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> PaginationResult:
        """
        Read ``offset`` and ``limit``.

        Explicit ``limit``/``offset`` arguments win over request values.
        Malformed values fall back to the defaults instead of raising.
        """
        cfg = self._config
        raw_offset = offset if offset is not None else query_params.get(cfg.offset_parameter)
        try:
            parsed_offset = max(0, int(raw_offset)) if raw_offset is not None else 0
        except (TypeError, ValueError):
            parsed_offset = 0
        raw_limit = limit if limit is not None else query_params.get(cfg.limit_parameter)
        if raw_limit is None:
            parsed_limit = cfg.default_limit
        else:
            try:
                parsed_limit = min(cfg.max_limit, max(1, int(raw_limit)))
            except (TypeError, ValueError):
                parsed_limit = cfg.default_limit
        return PaginationResult(offset=parsed_offset, limit=parsed_limit)
