"""
Filter value normalisation and shape validation.

Request values arrive as strings, lists of strings or (for malformed
requests) nested mappings. ``normalize_value`` applies the array delimiter
and boolean literals; ``validate_shape`` uses pydantic to reject shapes a
strategy cannot accept and reports them as ``InvalidDirectiveValue``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Union

from pydantic import StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvalidDirectiveValue

if TYPE_CHECKING:
    from collections.abc import Iterable

Scalar = Union[StrictStr, StrictInt, StrictFloat, StrictBool, None]  # noqa: UP007

_SCALAR: TypeAdapter[Any] = TypeAdapter(Scalar)
_SCALAR_OR_LIST: TypeAdapter[Any] = TypeAdapter(Union[Scalar, list[Scalar]])  # noqa: UP007

_BOOLEAN_LITERALS = {"true": True, "false": False}


def normalize_value(value: Any, delimiter: str | None) -> Any:
    """Split delimited strings into lists and map ``"true"``/``"false"``."""
    if isinstance(value, str):
        if delimiter and delimiter in value:
            return [_cast(part) for part in value.split(delimiter)]
        return _cast(value)
    if isinstance(value, list | tuple):
        return [_cast(v) if isinstance(v, str) else v for v in value]
    return value


def without_ignored(value: Any, ignored: Iterable[Any]) -> Any:
    """Drop ignored values; an emptied list collapses to ``None``."""
    ignored = list(ignored)
    if not ignored:
        return value
    if isinstance(value, list):
        kept = [v for v in value if v not in ignored]
        return kept or None
    if value in ignored:
        return None
    return value


def is_blank(value: Any) -> bool:
    """``None``, empty strings and lists of nothing but those count as absent."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, list):
        return all(is_blank(v) for v in value)
    return False


def validate_shape(name: str, value: Any, *, allow_sequence: bool) -> Any:
    """
    Validate a request value for a strategy.

    Args:
        name: Public directive name, used in the error report.
        value: The normalised value.
        allow_sequence: Whether the strategy accepts a list of scalars.

    Raises:
        InvalidDirectiveValue: The value is a mapping, a nested list, or a
            list where only a scalar is accepted.
    """
    adapter = _SCALAR_OR_LIST if allow_sequence else _SCALAR
    if isinstance(value, tuple):
        value = list(value)
    try:
        return adapter.validate_python(value)
    except PydanticValidationError as exc:
        expected = "a scalar or a list of scalars" if allow_sequence else "a scalar"
        messages = [f"expected {expected}"]
        for error in exc.errors():
            loc = ".".join(str(p) for p in error.get("loc", ()))
            msg = error.get("msg", "validation error")
            messages.append(f"{loc}: {msg}" if loc else msg)
        raise InvalidDirectiveValue(name, dict.fromkeys(messages)) from exc


def _cast(value: str) -> Any:
    return _BOOLEAN_LITERALS.get(value.lower(), value)
