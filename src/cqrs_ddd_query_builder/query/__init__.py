"""SQLAlchemy implementation of the query contract."""

from .handle import QueryHandle
from .operators import (
    DEFAULT_OPERATORS,
    OperatorRegistry,
    SQLAlchemyOperator,
    build_default_registry,
)
from .scopes import SoftDeleteMixin, global_scope, query_scope
from .subject import RelationshipQuery, relation, to_handle

__all__ = [
    "DEFAULT_OPERATORS",
    "OperatorRegistry",
    "QueryHandle",
    "RelationshipQuery",
    "SQLAlchemyOperator",
    "SoftDeleteMixin",
    "build_default_registry",
    "global_scope",
    "query_scope",
    "relation",
    "to_handle",
]
