"""Tests for the exception hierarchy and its structured payloads."""

from __future__ import annotations

import pytest

from cqrs_ddd_query_builder import QueryBuilderConfig
from cqrs_ddd_query_builder.exceptions import (
    ConfigurationError,
    FieldNotFoundError,
    InvalidAppendQuery,
    InvalidDirectiveValue,
    InvalidFieldQuery,
    InvalidQuery,
    InvalidSortQuery,
    InvalidSubject,
    QueryBuilderError,
    ScopeNotFoundError,
    ValidationError,
)


class TestInvalidQuery:
    def test_for_errors_picks_kind_specific_class(self) -> None:
        assert type(InvalidQuery.for_errors({"sort": ["x"]})) is InvalidSortQuery
        assert type(InvalidQuery.for_errors({"fields": ["x"]})) is InvalidFieldQuery
        assert type(InvalidQuery.for_errors({"append": ["x"]})) is InvalidAppendQuery

    def test_for_errors_with_several_kinds(self) -> None:
        error = InvalidQuery.for_errors({"sort": ["x"], "filter": ["y"], "include": []})
        assert type(error) is InvalidQuery
        assert error.unknown == {"sort": ["x"], "filter": ["y"]}

    def test_message_lists_allowed_names(self) -> None:
        error = InvalidQuery.for_errors({"sort": ["x"]}, {"sort": ["name", "id"]})
        assert "Requested sort(s) `x` are not allowed." in str(error)
        assert "Allowed sort(s) are `name`, `id`." in str(error)

    def test_message_without_allowed_names(self) -> None:
        error = InvalidQuery.for_errors({"fields": ["secret"]})
        assert "No fields are allowed." in str(error)

    def test_to_dict(self) -> None:
        error = InvalidQuery.for_errors({"filter": ["nmae"]}, {"filter": ["name"]})
        payload = error.to_dict()
        assert payload["error"] == "INVALID_QUERY"
        assert payload["unknown"] == {"filter": ["nmae"]}
        assert payload["allowed"] == {"filter": ["name"]}
        assert payload["suggestions"] == {"nmae": ["name"]}

    def test_is_a_validation_error(self) -> None:
        error = InvalidQuery.for_errors({"filter": ["x"]})
        assert isinstance(error, ValidationError)
        assert isinstance(error, QueryBuilderError)
        assert error.status_code == 400


class TestOtherErrors:
    def test_validation_error_from_string(self) -> None:
        error = ValidationError("bad input")
        assert error.errors == {"__root__": ["bad input"]}
        assert error.to_dict()["error"] == "VALIDATION_ERROR"

    def test_invalid_directive_value(self) -> None:
        error = InvalidDirectiveValue("name", ["must be a string"])
        assert str(error) == "Invalid value for `name`: must be a string"
        assert error.to_dict() == {
            "error": "INVALID_DIRECTIVE_VALUE",
            "name": "name",
            "messages": ["must be a string"],
        }

    def test_field_not_found_suggestions(self) -> None:
        error = FieldNotFoundError("nmae", "TestModel", ["name", "salary"])
        assert error.suggestions == ["name"]
        assert "Did you mean: name?" in str(error)
        assert isinstance(error, AttributeError)
        assert isinstance(error, ConfigurationError)
        assert error.to_dict()["error"] == "FIELD_NOT_FOUND"

    def test_field_not_found_without_close_match(self) -> None:
        error = FieldNotFoundError("zzz", "TestModel", ["name"])
        assert error.suggestions == []
        assert str(error) == "Invalid field 'zzz' on 'TestModel'."

    def test_scope_not_found(self) -> None:
        error = ScopeNotFoundError("popular", "TestModel")
        assert "popular" in str(error)
        assert isinstance(error, AttributeError)

    @pytest.mark.parametrize(
        ("subject", "message"),
        [
            ("users", "Subject type `str` is invalid."),
            (42, "Subject type `int` is invalid."),
            (dict, "Subject class `dict` is invalid."),
        ],
    )
    def test_invalid_subject_messages(self, subject: object, message: str) -> None:
        error = InvalidSubject(subject)
        assert str(error) == message
        assert isinstance(error, TypeError)
        assert error.to_dict() == {"error": "InvalidSubject", "message": message}


class TestConfig:
    def test_global_strictness(self) -> None:
        assert QueryBuilderConfig().is_strict("filter")
        assert not QueryBuilderConfig(strict=False).is_strict("filter")

    def test_per_kind_strictness_overrides_global(self) -> None:
        config = QueryBuilderConfig(strict=False, strict_sorts=True)
        assert config.is_strict("sort")
        assert not config.is_strict("include")

    def test_builder_override_wins(self) -> None:
        config = QueryBuilderConfig(strict_fields=True)
        assert not config.is_strict("fields", False)

    def test_replace_returns_new_config(self) -> None:
        base = QueryBuilderConfig()
        changed = base.replace(delimiter=";")
        assert changed.delimiter == ";"
        assert base.delimiter == ","

    def test_config_is_frozen(self) -> None:
        config = QueryBuilderConfig()
        with pytest.raises(AttributeError):
            config.strict = False  # type: ignore[misc]
