"""
Core QueryBuilder class for compiling a QueryState into a backend request.

This is the single source of truth for query construction. The interactive
page, the export sweep and the preview all go through the same methods, so
they always agree on projection, predicates and ordering.
"""

from typing import Any, Dict, List, Optional, Tuple

from app.datawarehouse.registry import get_mandatory_filters
from .operators import to_predicate
from .schemas import (
    BackendRequest,
    NestedProjection,
    Ordering,
    OrderDirection,
    Predicate,
    Projection,
    QueryState,
    RowRange,
)


class QueryBuilder:
    """
    Compiles query states into BackendRequest objects.

    The builder is total: any well formed QueryState compiles. Unknown columns
    or tables are passed through and surface as execution errors.
    """

    def __init__(self, mandatory_filters: Optional[Dict[str, List[Tuple[str, Any]]]] = None):
        # None reads the registry
        self.mandatory_filters = mandatory_filters

    def build_request(self, state: QueryState) -> BackendRequest:
        """Build the request for one interactive page, with an exact count."""
        return BackendRequest(
            table=state.table,
            projection=self.build_projection(state),
            predicates=self.build_predicates(state),
            ordering=self.build_ordering(state),
            row_range=self.build_range(state.page, state.page_size),
            count_exact=True,
        )

    def build_export_request(self, state: QueryState, offset: int, limit: int) -> BackendRequest:
        """Build the request for one export window. Interactive paging is ignored."""
        return BackendRequest(
            table=state.table,
            projection=self.build_projection(state),
            predicates=self.build_predicates(state),
            ordering=self.build_ordering(state),
            row_range=RowRange(offset, offset + limit - 1),
            count_exact=False,
        )

    def build_preview(self, state: QueryState) -> Dict[str, Any]:
        """Describe the compiled interactive request, for debugging."""
        request = self.build_request(state)
        return {
            "table": request.table,
            "select": request.projection.render(),
            "predicates": [
                {
                    "column": p.column,
                    "operator": p.operator,
                    "value": list(p.value) if isinstance(p.value, tuple) else p.value,
                }
                for p in request.predicates
            ],
            "order": (
                {"column": request.ordering.column, "ascending": request.ordering.ascending}
                if request.ordering
                else None
            ),
            "range": [request.row_range.start, request.row_range.end],
        }

    # ===== CLAUSES =====

    def build_projection(self, state: QueryState) -> Projection:
        """Base columns (all when none selected) plus one nested block per join."""
        nested = tuple(
            NestedProjection(
                relation=join.to_table,
                hint=join.from_column,
                columns=tuple(join.selected_columns),
            )
            for join in state.joins
        )
        return Projection(columns=tuple(state.selected_columns), nested=nested)

    def build_predicates(self, state: QueryState) -> tuple:
        """Mandatory table predicates first, then user filters in their original order."""
        predicates = [
            Predicate(column, "eq", value)
            for column, value in self._mandatory_filters(state.table)
        ]
        for filter_ in state.filters:
            predicate = to_predicate(filter_)
            if predicate is not None:
                predicates.append(predicate)
        return tuple(predicates)

    def _mandatory_filters(self, table: str) -> List[Tuple[str, Any]]:
        if self.mandatory_filters is None:
            return get_mandatory_filters(table)
        return self.mandatory_filters.get(table, [])

    def build_ordering(self, state: QueryState) -> Optional[Ordering]:
        if not state.order_by:
            return None
        return Ordering(state.order_by, ascending=state.order_direction == OrderDirection.ASC)

    @staticmethod
    def build_range(page: int, page_size: int) -> RowRange:
        """Page p of size s covers rows [p*s, p*s + s - 1]."""
        start = page * page_size
        return RowRange(start, start + page_size - 1)
