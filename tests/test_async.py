"""Tests for the asynchronous terminal operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from cqrs_ddd_query_builder import QueryBuilder

from .models import RelatedModel, TestModel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@pytest.fixture
async def populated(async_session: AsyncSession) -> AsyncSession:
    async_session.add_all(
        [
            TestModel(id=1, name="Alice", salary=1000),
            TestModel(id=2, name="Bob", salary=2000),
            TestModel(id=3, name="Carol", salary=3000),
            RelatedModel(id=1, test_model_id=1, name="first"),
        ]
    )
    await async_session.commit()
    async_session.expunge_all()
    return async_session


@pytest.mark.asyncio
async def test_aget_applies_filters_and_sorts(populated: AsyncSession) -> None:
    models = await (
        QueryBuilder(TestModel, {"filter": {"salary": "1000,3000"}, "sort": "-salary"})
        .allowed_filters("salary")
        .allowed_sorts("salary")
        .aget(populated)
    )
    assert [m.name for m in models] == ["Carol", "Alice"]


@pytest.mark.asyncio
async def test_aget_eager_loads_includes(populated: AsyncSession) -> None:
    models = await (
        QueryBuilder(TestModel, {"include": "related_models", "sort": "id"})
        .allowed_includes("related_models")
        .allowed_sorts("id")
        .aget(populated)
    )
    assert [r.name for r in models[0].related_models] == ["first"]


@pytest.mark.asyncio
async def test_afirst(populated: AsyncSession) -> None:
    model = await QueryBuilder(TestModel, {"sort": "-id"}).allowed_sorts("id").afirst(populated)
    assert model is not None
    assert model.id == 3


@pytest.mark.asyncio
async def test_afirst_without_match(populated: AsyncSession) -> None:
    builder = QueryBuilder(TestModel, {"filter": {"name": "nobody"}}).allowed_filters("name")
    assert await builder.afirst(populated) is None


@pytest.mark.asyncio
async def test_apaginate(populated: AsyncSession) -> None:
    page = await (
        QueryBuilder(TestModel, {"limit": "2", "sort": "id"})
        .allowed_sorts("id")
        .apaginate(populated)
    )
    assert [m.id for m in page.items] == [1, 2]
    assert page.total == 3
    assert page.next_offset == 2


@pytest.mark.asyncio
async def test_aget_with_count_include(populated: AsyncSession) -> None:
    rows = await (
        QueryBuilder(TestModel, {"include": "related_modelsCount", "sort": "id"})
        .allowed_includes("related_modelsCount")
        .allowed_sorts("id")
        .aget(populated)
    )
    assert [row.related_models_count for row in rows] == [1, 0, 0]
