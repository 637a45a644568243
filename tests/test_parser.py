"""Tests for DirectiveParser."""

from __future__ import annotations

from cqrs_ddd_query_builder.config import QueryBuilderConfig
from cqrs_ddd_query_builder.directives import Directive, DirectiveKind
from cqrs_ddd_query_builder.parser import DirectiveParser


def test_parse_filters_keeps_raw_values() -> None:
    request = DirectiveParser().parse(
        {"filter": {"name": "john,jane", "id": ["1", "2"], "nested": {"a": "b"}}}
    )
    assert request.filters == (
        Directive(DirectiveKind.FILTER, "name", "john,jane"),
        Directive(DirectiveKind.FILTER, "id", ["1", "2"]),
        Directive(DirectiveKind.FILTER, "nested", {"a": "b"}),
    )


def test_parse_filter_group_that_is_not_a_mapping_is_ignored() -> None:
    request = DirectiveParser().parse({"filter": "name"})
    assert request.filters == ()


def test_parse_sorts_with_direction() -> None:
    request = DirectiveParser().parse({"sort": "-created_at, name,,-"})
    assert [(d.name, d.descending) for d in request.sorts] == [
        ("created_at", True),
        ("name", False),
    ]
    assert request.sort_names() == ["-created_at", "name"]


def test_parse_sorts_from_list() -> None:
    request = DirectiveParser().parse({"sort": ["name", "-id,salary"]})
    assert request.sort_names() == ["name", "-id", "salary"]


def test_parse_includes_and_appends() -> None:
    request = DirectiveParser().parse(
        {"include": " posts , posts.comments,", "append": ["full_name"]}
    )
    assert [d.name for d in request.includes] == ["posts", "posts.comments"]
    assert [d.name for d in request.appends] == ["full_name"]


def test_parse_root_fields() -> None:
    request = DirectiveParser().parse({"fields": "id,name"})
    assert [d.name for d in request.fields] == ["id", "name"]


def test_parse_relation_fields() -> None:
    request = DirectiveParser().parse(
        {"fields": {"posts": "id,title", "posts.author": "name"}}
    )
    assert [d.name for d in request.fields] == [
        "posts.id",
        "posts.title",
        "posts.author.name",
    ]


def test_parse_uses_configured_names_and_delimiter() -> None:
    config = QueryBuilderConfig(
        filter_parameter="where", sort_parameter="order", delimiter="|"
    )
    request = DirectiveParser(config).parse(
        {"where": {"name": "x"}, "order": "-name|id", "filter": {"ignored": "1"}}
    )
    assert request.filter_names() == ["name"]
    assert request.sort_names() == ["-name", "id"]


def test_parse_never_raises_on_garbage() -> None:
    request = DirectiveParser().parse(
        {"filter": None, "sort": 42, "include": {"a": 1}, "fields": 3.5}
    )
    assert request.is_empty()
    assert DirectiveParser().parse(None).is_empty()


def test_parsed_request_keeps_params() -> None:
    request = DirectiveParser().parse({"limit": "5"})
    assert request.params == {"limit": "5"}
    assert request.of(DirectiveKind.SORT) == ()
