"""Tests for pagination parsing and paginated results."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from cqrs_ddd_query_builder import QueryBuilder, QueryBuilderConfig
from cqrs_ddd_query_builder.pagination import Page, PaginationParser

from .models import TestModel

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class TestPaginationParser:
    def test_defaults(self) -> None:
        result = PaginationParser().parse({})
        assert result.offset == 0
        assert result.limit == 20

    def test_reads_request_values(self) -> None:
        result = PaginationParser().parse({"offset": "10", "limit": "5"})
        assert (result.offset, result.limit) == (10, 5)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("0", 1), ("-3", 1), ("1000", 100), ("abc", 20)],
    )
    def test_limit_is_bounded(self, raw: str, expected: int) -> None:
        assert PaginationParser().parse({"limit": raw}).limit == expected

    def test_negative_or_malformed_offset(self) -> None:
        parser = PaginationParser()
        assert parser.parse({"offset": "-1"}).offset == 0
        assert parser.parse({"offset": "later"}).offset == 0

    def test_explicit_arguments_win(self) -> None:
        result = PaginationParser().parse({"offset": "10", "limit": "5"}, limit=2, offset=4)
        assert (result.offset, result.limit) == (4, 2)

    def test_configured_names_and_bounds(self) -> None:
        config = QueryBuilderConfig(
            offset_parameter="skip", limit_parameter="take", default_limit=7, max_limit=10
        )
        parser = PaginationParser(config)
        assert parser.parse({}).limit == 7
        assert parser.parse({"take": "50", "skip": "3"}) == (3, 10)


class TestPage:
    def test_has_more(self) -> None:
        page = Page(items=[1, 2], total=5, limit=2, offset=0)
        assert page.has_more
        assert page.next_offset == 2

    def test_last_page(self) -> None:
        page = Page(items=[5], total=5, limit=2, offset=4)
        assert not page.has_more
        assert page.next_offset is None


class TestPaginate:
    def test_page_from_request(self, seeded: Session) -> None:
        page = (
            QueryBuilder(TestModel, {"limit": "2", "offset": "1", "sort": "id"})
            .allowed_sorts("id")
            .paginate(seeded)
        )
        assert [m.id for m in page.items] == [2, 3]
        assert page.total == 5
        assert page.has_more

    def test_total_counts_filtered_rows(self, seeded: Session) -> None:
        page = (
            QueryBuilder(TestModel, {"filter": {"salary": "1000,2000"}})
            .allowed_filters("salary")
            .paginate(seeded, limit=1)
        )
        assert page.total == 2
        assert len(page.items) == 1

    def test_count_statement_drops_ordering(self) -> None:
        builder = QueryBuilder(TestModel, {"sort": "-name"}).allowed_sorts("name")
        sql = str(builder.count_statement())
        assert "count(*)" in sql
        assert "ORDER BY" not in sql
