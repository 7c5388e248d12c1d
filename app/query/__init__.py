"""
Query module for the table explorer.

This module turns an editable query description into reads against the
explored database:
- QueryBuilder: compiles a QueryState into a BackendRequest
- QueryEngine: executes requests, resolves FK labels, drives exports
- LookupCache: option and label caches with an explicit lifetime
- Schemas: query state, results and compiled request types
"""

from .builder import QueryBuilder
from .cache import LookupCache
from .engine import QueryEngine
from .schemas import (
    # Query state
    QueryState,
    Filter,
    JoinConfig,
    FilterOperator,
    OrderDirection,
    # Results
    QueryResult,
    ColumnMeta,
    LookupOption,
    # Compiled requests
    BackendRequest,
    BackendResponse,
    Predicate,
    Projection,
    NestedProjection,
    RowRange,
)

__all__ = [
    # Main classes
    "QueryBuilder",
    "QueryEngine",
    "LookupCache",
    # Query state
    "QueryState",
    "Filter",
    "JoinConfig",
    "FilterOperator",
    "OrderDirection",
    # Results
    "QueryResult",
    "ColumnMeta",
    "LookupOption",
    # Compiled requests
    "BackendRequest",
    "BackendResponse",
    "Predicate",
    "Projection",
    "NestedProjection",
    "RowRange",
]
