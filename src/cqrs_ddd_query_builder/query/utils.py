"""
SQLAlchemy statement helpers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect
from sqlalchemy.schema import Table
from sqlalchemy.sql.selectable import Join

if TYPE_CHECKING:
    from sqlalchemy.sql import Select


def extract_tables_from_statement(stmt: Select[Any]) -> list[Table]:
    """
    Extract all tables present in the FROM clause of a statement
    (including joins).

    Used by ``join_if_absent`` to check if a table is already joined.
    """
    tables: set[Table] = set()
    for from_obj in stmt.get_final_froms():
        _extract_tables_recursive(from_obj, tables)
    return list(tables)


def _extract_tables_recursive(from_obj: object, tables: set[Table]) -> None:
    """Recursively extract tables from a FROM object (Table or Join)."""
    if isinstance(from_obj, Join):
        _extract_tables_recursive(from_obj.left, tables)
        _extract_tables_recursive(from_obj.right, tables)
    elif isinstance(from_obj, Table):
        tables.add(from_obj)
    elif hasattr(from_obj, "__table__"):  # DeclarativeBase model
        tables.add(from_obj.__table__)


def root_entity(stmt: Select[Any]) -> type[Any] | None:
    """Mapped class of the first ORM entity selected by ``stmt``."""
    for description in stmt.column_descriptions:
        entity = description.get("entity")
        if entity is not None:
            mapper = inspect(entity, raiseerr=False)
            if mapper is not None and hasattr(mapper, "class_"):
                return mapper.class_  # type: ignore[no-any-return]
    return None


def mapped_mapper(obj: Any) -> Any | None:
    """Mapper for a mapped class, ``None`` for anything else."""
    if not isinstance(obj, type):
        return None
    mapper = inspect(obj, raiseerr=False)
    if mapper is None or not hasattr(mapper, "relationships"):
        return None
    return mapper
