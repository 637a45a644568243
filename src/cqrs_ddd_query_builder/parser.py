"""DirectiveParser — request parameters -> ParsedRequest.

Only syntactic normalisation happens here: delimiter splitting and the
``-`` prefix on sorts. Names are never checked against an allow-list and
the parser never raises.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .config import DEFAULT_CONFIG, QueryBuilderConfig
from .directives import Directive, DirectiveKind, ParsedRequest


class DirectiveParser:
    """Parse API query params into directives."""

    def __init__(self, config: QueryBuilderConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG

    def parse(self, query_params: Mapping[str, Any] | None) -> ParsedRequest:
        """Return every directive found in ``query_params``."""
        params = dict(query_params or {})
        cfg = self._config
        return ParsedRequest(
            filters=self._parse_filters(params.get(cfg.filter_parameter)),
            sorts=self._parse_sorts(params.get(cfg.sort_parameter)),
            includes=self._parse_list(
                DirectiveKind.INCLUDE, params.get(cfg.include_parameter)
            ),
            fields=self._parse_fields(params.get(cfg.fields_parameter)),
            appends=self._parse_list(
                DirectiveKind.APPEND, params.get(cfg.append_parameter)
            ),
            params=params,
        )

    def _parse_filters(self, raw: Any) -> tuple[Directive, ...]:
        if not isinstance(raw, Mapping):
            return ()
        return tuple(
            Directive(DirectiveKind.FILTER, str(name), value)
            for name, value in raw.items()
        )

    def _parse_sorts(self, raw: Any) -> tuple[Directive, ...]:
        out: list[Directive] = []
        for token in self._tokens(raw):
            if token.startswith("-"):
                name = token[1:].strip()
                if name:
                    out.append(Directive(DirectiveKind.SORT, name, descending=True))
            else:
                out.append(Directive(DirectiveKind.SORT, token))
        return tuple(out)

    def _parse_list(self, kind: DirectiveKind, raw: Any) -> tuple[Directive, ...]:
        return tuple(Directive(kind, token) for token in self._tokens(raw))

    def _parse_fields(self, raw: Any) -> tuple[Directive, ...]:
        if isinstance(raw, Mapping):
            out: list[Directive] = []
            for group, value in raw.items():
                prefix = str(group).strip()
                for token in self._tokens(value):
                    name = f"{prefix}.{token}" if prefix else token
                    out.append(Directive(DirectiveKind.FIELD, name))
            return tuple(out)
        return self._parse_list(DirectiveKind.FIELD, raw)

    def _tokens(self, raw: Any) -> list[str]:
        if raw is None:
            return []
        if isinstance(raw, str):
            parts = raw.split(self._config.delimiter)
        elif isinstance(raw, list | tuple):
            parts = []
            for item in raw:
                if isinstance(item, str):
                    parts.extend(item.split(self._config.delimiter))
        else:
            return []
        return [p.strip() for p in parts if p.strip()]
