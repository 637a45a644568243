"""Request parameters of the current request.

Web integrations register the parsed query parameters once per request;
a ``QueryBuilder`` created without explicit ``params`` then reads them from
here. Context variables keep concurrent requests apart in async servers.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator, Mapping
from contextvars import ContextVar, Token
from types import MappingProxyType
from typing import Any

_request_parameters: ContextVar[Mapping[str, Any] | None] = ContextVar(
    "query_builder_request_parameters", default=None
)


def get_request_parameters() -> Mapping[str, Any]:
    """Get the parameters of the current request.

    Returns:
        A read-only mapping; empty when none were registered.
    """
    params = _request_parameters.get()
    return params if params is not None else MappingProxyType({})


def set_request_parameters(
    params: Mapping[str, Any] | None,
) -> Token[Mapping[str, Any] | None]:
    """Register the parameters of the current request.

    Args:
        params: Parsed query parameters (``{"filter": {...}, "sort": "..."}``).

    Returns:
        A Token that can be used to reset the context variable.
    """
    frozen = MappingProxyType(dict(params)) if params is not None else None
    return _request_parameters.set(frozen)


def reset_request_parameters(token: Token[Mapping[str, Any] | None]) -> None:
    """Reset the parameters to their previous state.

    Args:
        token: The Token returned by set_request_parameters().
    """
    _request_parameters.reset(token)


def clear_request_parameters() -> None:
    _request_parameters.set(None)


@contextlib.contextmanager
def request_parameters(params: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    """Register ``params`` for the duration of a ``with`` block.

    Example:
        ```python
        with request_parameters({"filter": {"name": "john"}}):
            users = QueryBuilder(User).allowed_filters("name").get(session)
        ```
    """
    token = set_request_parameters(params)
    try:
        yield get_request_parameters()
    finally:
        reset_request_parameters(token)


__all__: list[str] = [
    "clear_request_parameters",
    "get_request_parameters",
    "request_parameters",
    "reset_request_parameters",
    "set_request_parameters",
]
