"""Tests for subject adaptation, relationship queries, scopes and soft deletes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect, select
from sqlalchemy.orm import selectinload

from cqrs_ddd_query_builder import (
    QueryBuilder,
    QueryHandle,
    filters,
    relation,
    sorts,
)
from cqrs_ddd_query_builder.exceptions import ConfigurationError, InvalidSubject

from .models import (
    RelatedModel,
    RelatedThroughPivotModel,
    ScopeModel,
    SoftDeleteModel,
    TestModel,
    pivot_table,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class TestSubjectAdaptation:
    def test_select_with_where(self) -> None:
        stmt = select(TestModel).where(TestModel.id == 1)
        assert QueryBuilder(stmt, {}).to_sql() == str(stmt)

    def test_select_of_columns(self, seeded: Session) -> None:
        stmt = select(TestModel.id, TestModel.name)
        builder = QueryBuilder(stmt, {"sort": "-id"}).allowed_sorts("id")
        assert builder.to_sql().startswith(str(stmt))
        rows = builder.get(seeded)
        assert rows[0] == (5, "50%_off")

    def test_model_class(self) -> None:
        assert QueryBuilder(TestModel, {}).to_sql() == str(select(TestModel))

    def test_query_handle_is_used_as_is(self) -> None:
        handle = QueryHandle.for_model(TestModel).where("name", "=", "x")
        assert QueryBuilder(handle, {}).handle is handle

    def test_string_is_rejected(self) -> None:
        with pytest.raises(InvalidSubject, match="Subject type `str` is invalid."):
            QueryBuilder("not a class name", {})

    def test_other_object_is_rejected(self) -> None:
        with pytest.raises(InvalidSubject, match="Subject class `TestSubjectAdaptation` is invalid."):
            QueryBuilder(self, {})

    def test_unmapped_class_is_rejected(self) -> None:
        class Plain:
            pass

        with pytest.raises(InvalidSubject):
            QueryBuilder(Plain, {})

    def test_base_query_eager_loads_are_kept(self, seeded: Session) -> None:
        stmt = select(TestModel).options(selectinload(TestModel.related_models))
        model = QueryBuilder(stmt, {}).first(seeded)
        assert model is not None
        assert "related_models" not in inspect(model).unloaded


class TestRelationshipQuery:
    def test_many_to_many_relation(self, seeded: Session) -> None:
        alice = seeded.get(TestModel, 1)
        found = QueryBuilder(relation(alice, "related_through_pivot_models"), {}).first(seeded)
        assert found is not None
        assert found.id == 789

    def test_pivot_values_are_kept(self, seeded: Session) -> None:
        seeded.execute(pivot_table.update().values(location="Wood Cottage"))
        seeded.commit()
        alice = seeded.get(TestModel, 1)
        row = QueryBuilder(
            relation(alice, "related_through_pivot_models", pivot=("location",)), {}
        ).first(seeded)
        assert row is not None
        assert row[0].id == 789
        assert row.pivot_location == "Wood Cottage"

    def test_relation_sql_matches_plain_relation_query(self, seeded: Session) -> None:
        from sqlalchemy.orm import with_parent

        alice = seeded.get(TestModel, 1)
        expected = select(RelatedModel).where(
            with_parent(alice, TestModel.related_models)
        ).order_by(RelatedModel.id)
        assert QueryBuilder(relation(alice, "related_models"), {}).to_sql() == str(expected)

    def test_loader_options_are_kept(self, seeded: Session) -> None:
        alice = seeded.get(TestModel, 1)
        subject = relation(
            alice,
            "related_through_pivot_models",
            options=(selectinload(RelatedThroughPivotModel.test_models),),
        )
        found = QueryBuilder(subject, {}).first(seeded)
        assert found is not None
        assert "test_models" not in inspect(found).unloaded
        assert found.test_models[0].id == 1

    def test_filters_and_sorts_apply_on_top(self, seeded: Session) -> None:
        alice = seeded.get(TestModel, 1)
        builder = (
            QueryBuilder(
                relation(alice, "related_models"),
                {"sort": "-name", "filter": {"name": "second,third"}},
            )
            .allowed_filters("name")
            .allowed_sorts("name")
        )
        assert [r.name for r in builder.get(seeded)] == ["second"]
        assert "ORDER BY related_models.id, related_models.name DESC" in builder.to_sql()

    def test_write_only_collection(self, seeded: Session) -> None:
        alice = seeded.get(TestModel, 1)
        related = (
            QueryBuilder(alice.pending_related_models, {"filter": {"name": "second"}})
            .allowed_filters("name")
            .get(seeded)
        )
        assert [r.id for r in related] == [2]

    def test_unknown_relation_name(self, seeded: Session) -> None:
        alice = seeded.get(TestModel, 1)
        with pytest.raises(AttributeError):
            QueryBuilder(relation(alice, "ghosts"), {})


class TestScopes:
    def test_global_scope_applies_by_default(self, session: Session) -> None:
        session.add_all([ScopeModel(name="John Doe"), ScopeModel(name="test")])
        session.commit()
        assert len(QueryBuilder(ScopeModel, {}).get(session)) == 1
        assert len(QueryBuilder(ScopeModel, {}).without_global_scopes().get(session)) == 2

    def test_remove_global_scope_by_name(self, session: Session) -> None:
        session.add_all([ScopeModel(name="John Doe"), ScopeModel(name="test")])
        session.commit()
        kept = QueryBuilder(ScopeModel, {}).without_global_scopes("other").get(session)
        removed = QueryBuilder(ScopeModel, {}).without_global_scopes("not_test").get(session)
        assert len(kept) == 1
        assert len(removed) == 2

    def test_handle_without_global_scopes_as_subject(self, session: Session) -> None:
        session.add_all([ScopeModel(name="John Doe"), ScopeModel(name="test")])
        session.commit()
        handle = QueryHandle.for_model(ScopeModel).without_global_scopes()
        assert len(QueryBuilder(handle, {}).get(session)) == 2

    def test_scope_sort_and_filter(self, seeded: Session) -> None:
        models = (
            QueryBuilder(TestModel, {"filter": {"named": "Alice"}, "sort": "len"})
            .allowed_filters(filters.scope("named"))
            .allowed_sorts(sorts.scope("len", "by_name_length"))
            .get(seeded)
        )
        assert [m.id for m in models] == [1]

    def test_scope_is_callable_on_the_model(self) -> None:
        stmt = TestModel.named(select(TestModel), "john")
        assert "test_models.name = :name_1" in str(stmt)


class TestSoftDeletes:
    @pytest.fixture
    def trashed_session(self, session: Session) -> Session:
        models = [SoftDeleteModel(id=i, name=f"model {i}") for i in range(1, 6)]
        session.add_all(models)
        models[0].soft_delete()
        session.commit()
        return session

    def test_deleted_rows_are_hidden(self, trashed_session: Session) -> None:
        assert len(QueryBuilder(SoftDeleteModel, {}).get(trashed_session)) == 4

    def test_with_trashed(self, trashed_session: Session) -> None:
        assert len(QueryBuilder(SoftDeleteModel, {}).with_trashed().get(trashed_session)) == 5

    def test_only_trashed(self, trashed_session: Session) -> None:
        rows = QueryBuilder(SoftDeleteModel, {}).only_trashed().get(trashed_session)
        assert [r.id for r in rows] == [1]
        assert rows[0].trashed

    def test_trashed_filter(self, trashed_session: Session) -> None:
        def count(value: str) -> int:
            builder = QueryBuilder(SoftDeleteModel, {"filter": {"trashed": value}})
            return len(builder.allowed_filters(filters.trashed()).get(trashed_session))

        assert count("with") == 5
        assert count("only") == 1
        assert count("nope") == 4

    def test_restore(self, trashed_session: Session) -> None:
        model = trashed_session.get(SoftDeleteModel, 1)
        assert model is not None
        model.restore()
        trashed_session.commit()
        assert len(QueryBuilder(SoftDeleteModel, {}).get(trashed_session)) == 5

    def test_with_trashed_requires_soft_deletes(self) -> None:
        with pytest.raises(ConfigurationError):
            QueryBuilder(TestModel, {}).with_trashed()
