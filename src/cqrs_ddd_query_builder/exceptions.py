"""
Query builder exception hierarchy.

Two families hang off ``QueryBuilderError``:

* ``ValidationError`` and its subclasses describe bad client input (unknown
  directive names, malformed values). They carry structured ``errors`` and
  ``to_dict()`` so an HTTP boundary can render a 4xx response.
* ``InvalidSubject`` and ``ConfigurationError`` describe server-side
  misconfiguration and should surface as programmer errors.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


class QueryBuilderError(Exception):
    """Root exception for the query builder."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class InvalidSubject(QueryBuilderError, TypeError):
    """Raised when a builder is created for something that is not queryable."""

    def __init__(self, subject: Any) -> None:
        self.subject = subject
        if isinstance(subject, type):
            message = f"Subject class `{subject.__qualname__}` is invalid."
        elif type(subject).__module__ == "builtins":
            message = f"Subject type `{type(subject).__name__}` is invalid."
        else:
            message = f"Subject class `{type(subject).__qualname__}` is invalid."
        super().__init__(message)


class ValidationError(QueryBuilderError):
    """Client input failed validation.

    Carries structured errors: ``{key: [messages]}``.
    """

    status_code: ClassVar[int] = 400

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        return str(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "VALIDATION_ERROR",
            "errors": self.errors,
        }


class InvalidQuery(ValidationError):
    """
    One or more requested directive names are not allow-listed.

    ``unknown`` and ``allowed`` are keyed by directive kind (``"filter"``,
    ``"sort"``, ...). Every unknown name of every kind is reported at once.
    """

    kind: ClassVar[str | None] = None

    def __init__(
        self,
        unknown: Mapping[str, Sequence[str]],
        allowed: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self.unknown: dict[str, list[str]] = {
            kind: list(names) for kind, names in unknown.items() if names
        }
        allowed = allowed or {}
        self.allowed: dict[str, list[str]] = {
            kind: list(allowed.get(kind, ())) for kind in self.unknown
        }
        self.suggestions: dict[str, list[str]] = {}
        for kind, names in self.unknown.items():
            for name in names:
                matches = get_close_matches(name, self.allowed[kind], n=3, cutoff=0.6)
                if matches:
                    self.suggestions[name] = matches
        super().__init__(
            {
                kind: [_describe(kind, names, self.allowed[kind])]
                for kind, names in self.unknown.items()
            }
        )

    @property
    def unknown_names(self) -> list[str]:
        """Flat list of every rejected name, in report order."""
        return [name for names in self.unknown.values() for name in names]

    @classmethod
    def for_errors(
        cls,
        unknown: Mapping[str, Sequence[str]],
        allowed: Mapping[str, Sequence[str]] | None = None,
    ) -> InvalidQuery:
        """Build the most specific error for the given unknown names."""
        kinds = [kind for kind, names in unknown.items() if names]
        if len(kinds) == 1 and kinds[0] in _ERROR_BY_KIND:
            return _ERROR_BY_KIND[kinds[0]](unknown, allowed)
        return cls(unknown, allowed)

    def _build_message(self) -> str:
        lines = [msg for messages in self.errors.values() for msg in messages]
        for name, matches in self.suggestions.items():
            lines.append(f"Did you mean {', '.join(matches)} instead of `{name}`?")
        return " ".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "INVALID_QUERY",
            "message": str(self),
            "unknown": self.unknown,
            "allowed": self.allowed,
            "suggestions": self.suggestions,
        }


class InvalidFilterQuery(InvalidQuery):
    kind = "filter"


class InvalidSortQuery(InvalidQuery):
    kind = "sort"


class InvalidIncludeQuery(InvalidQuery):
    kind = "include"


class InvalidFieldQuery(InvalidQuery):
    kind = "fields"


class InvalidAppendQuery(InvalidQuery):
    kind = "append"


class InvalidDirectiveValue(ValidationError):
    """A resolved directive received a value of the wrong shape."""

    def __init__(self, name: str, messages: Iterable[str]) -> None:
        self.name = name
        super().__init__({name: list(messages)})

    def _build_message(self) -> str:
        return f"Invalid value for `{self.name}`: " + "; ".join(self.errors[self.name])

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "INVALID_DIRECTIVE_VALUE",
            "name": self.name,
            "messages": self.errors[self.name],
        }


class ConfigurationError(QueryBuilderError):
    """The server-side allow-list or model setup is inconsistent."""


class FieldNotFoundError(ConfigurationError, AttributeError):
    """
    An internal name does not resolve to a mapped attribute.

    Uses fuzzy matching to suggest similar attribute names.
    """

    def __init__(
        self,
        invalid_field: str,
        model_name: str,
        available_fields: list[str],
        cutoff: float = 0.6,
    ) -> None:
        self.invalid_field = invalid_field
        self.model_name = model_name
        self.available_fields = available_fields
        self.suggestions = get_close_matches(
            invalid_field, available_fields, n=5, cutoff=cutoff
        )
        message = f"Invalid field '{invalid_field}' on '{model_name}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "FIELD_NOT_FOUND",
            "field": self.invalid_field,
            "model": self.model_name,
            "suggestions": self.suggestions,
        }


class ScopeNotFoundError(ConfigurationError, AttributeError):
    """A scope filter or sort names a scope the model does not define."""

    def __init__(self, scope: str, model_name: str) -> None:
        self.scope = scope
        self.model_name = model_name
        super().__init__(f"Model '{model_name}' has no query scope '{scope}'.")


_LABELS = {
    "filter": "filter",
    "sort": "sort",
    "include": "include",
    "fields": "field",
    "append": "append",
}

_ERROR_BY_KIND: dict[str, type[InvalidQuery]] = {
    "filter": InvalidFilterQuery,
    "sort": InvalidSortQuery,
    "include": InvalidIncludeQuery,
    "fields": InvalidFieldQuery,
    "append": InvalidAppendQuery,
}


def _describe(kind: str, names: Sequence[str], allowed: Sequence[str]) -> str:
    label = _LABELS.get(kind, kind)
    requested = ", ".join(f"`{n}`" for n in names)
    message = f"Requested {label}(s) {requested} are not allowed."
    if allowed:
        message += f" Allowed {label}(s) are {', '.join(f'`{n}`' for n in allowed)}."
    else:
        message += f" No {label}s are allowed."
    return message
