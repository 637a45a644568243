from __future__ import annotations

from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from cqrs_ddd_query_builder.request_context import clear_request_parameters

from .models import (
    Base,
    NestedRelatedModel,
    RelatedModel,
    RelatedThroughPivotModel,
    TestModel,
)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    factory = sessionmaker(engine, expire_on_commit=False)
    with factory() as sess:
        yield sess


@pytest.fixture
def seeded(session: Session) -> Session:
    """Five test models, two with related models, one with a pivot row."""
    models = [
        TestModel(id=1, name="Alice", salary=1000),
        TestModel(id=2, name="Bob", salary=2000),
        TestModel(id=3, name="Carol", salary=3000),
        TestModel(id=4, name="test", salary=None),
        TestModel(id=5, name="50%_off", salary=500),
    ]
    session.add_all(models)
    session.add_all(
        [
            RelatedModel(id=1, test_model_id=1, name="first"),
            RelatedModel(id=2, test_model_id=1, name="second"),
            RelatedModel(id=3, test_model_id=2, name="third"),
            NestedRelatedModel(id=1, related_model_id=1, name="nested"),
        ]
    )
    pivot = RelatedThroughPivotModel(id=789, name="The related model")
    models[0].related_through_pivot_models.append(pivot)
    session.commit()
    session.expunge_all()
    return session


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess


@pytest.fixture(autouse=True)
def _clean_request_parameters() -> Generator[None, None, None]:
    yield
    clear_request_parameters()
