# app/query/engine.py
"""Query engine: runs compiled queries and wraps every path in a uniform result."""

import logging
import time
from typing import Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from app.datawarehouse import registry
from .builder import QueryBuilder
from .cache import LookupCache
from .datasource import DataSource
from .export import BulkExporter, ProgressCallback
from .resolver import ForeignKeyResolver
from .schemas import ColumnMeta, LookupOption, QueryResult, QueryState

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


def _error_text(error: Exception) -> str:
    return str(error) or UNKNOWN_ERROR


class QueryEngine:
    """Entry point used by the API for every read against the data source.

    None of the public coroutines raise: failures are reported through
    QueryResult.error, or as an empty list for lookups and metadata.
    """

    def __init__(
        self,
        data_source: DataSource,
        cache: Optional[LookupCache] = None,
        builder: Optional[QueryBuilder] = None,
    ):
        self.data_source = data_source
        self.cache = cache if cache is not None else LookupCache()
        self.builder = builder or QueryBuilder()
        self.resolver = ForeignKeyResolver(data_source, self.cache)
        self.exporter = BulkExporter(data_source, self.resolver, self.builder)

    # ===== QUERY EXECUTION =====

    async def execute_query(self, state: QueryState) -> QueryResult:
        """Run one interactive page, with the exact count of matching rows."""
        start = time.perf_counter()
        if not state.table:
            return QueryResult(execution_time=_elapsed_ms(start))

        try:
            request = self.builder.build_request(state)
            response = await run_in_threadpool(self.data_source.query, request)

            if response.error:
                return QueryResult(data=[], count=0, error=response.error, execution_time=_elapsed_ms(start))

            rows = await self.resolver.resolve(response.rows, state.table)
            execution_time = _elapsed_ms(start)
            logger.debug(
                f"Query on {state.table} returned {len(rows)} of {response.count} rows in {execution_time:.1f}ms"
            )
            return QueryResult(
                data=rows,
                count=response.count or 0,
                error=None,
                execution_time=execution_time,
            )
        except Exception as e:
            logger.exception(f"Unexpected failure querying {state.table}")
            return QueryResult(data=[], count=0, error=_error_text(e), execution_time=_elapsed_ms(start))

    async def fetch_all_for_export(
        self, state: QueryState, on_progress: Optional[ProgressCallback] = None
    ) -> QueryResult:
        """Fetch up to the export cap, ignoring the interactive page."""
        start = time.perf_counter()
        if not state.table:
            return QueryResult(execution_time=_elapsed_ms(start))

        try:
            return await self.exporter.fetch_all(state, on_progress)
        except Exception as e:
            logger.exception(f"Unexpected failure exporting {state.table}")
            return QueryResult(data=[], count=0, error=_error_text(e), execution_time=_elapsed_ms(start))

    # ===== METADATA AND LOOKUPS =====

    async def fetch_table_columns(self, table: str) -> List[ColumnMeta]:
        """Describe the columns of a table; an empty list when that fails."""
        try:
            return await run_in_threadpool(self.data_source.fetch_columns_metadata, table)
        except Exception as e:
            logger.warning(f"Could not read columns of {table}: {e}")
            return []

    async def fetch_lookup_options(self, table: str, column: str) -> List[LookupOption]:
        """The full choice list for an FK-backed column, sorted by label."""
        cache_key = f"{table}.{column}"
        cached = self.cache.get_options(cache_key)
        if cached is not None:
            return cached

        lookup = registry.get_lookup(table, column)
        if lookup is None:
            return []

        try:
            rows = await run_in_threadpool(
                self.data_source.lookup_table,
                lookup.table,
                lookup.id_field,
                lookup.label_field,
                None,
                True,
            )
        except Exception as e:
            logger.warning(f"Could not load options for {cache_key}: {e}")
            return []

        options = [
            LookupOption(id=str(row.get(lookup.id_field)), label=str(row.get(lookup.label_field) or ""))
            for row in rows
        ]
        self.cache.set_options(cache_key, options)
        return options

    @staticmethod
    def has_lookup(table: str, column: str) -> bool:
        return registry.get_lookup(table, column) is not None

    async def list_tables(self) -> List[str]:
        """Tables present in the data source; empty when they cannot be listed."""
        try:
            return await run_in_threadpool(self.data_source.list_tables)
        except Exception as e:
            logger.warning(f"Could not list data source tables: {e}")
            return []

    # ===== SCHEMA REGISTRY =====

    @staticmethod
    def get_grouped_tables(available_tables: Optional[List[str]] = None) -> Dict[str, List[str]]:
        return registry.get_grouped_tables(available_tables)

    @staticmethod
    def get_joins_for_table(table: str) -> List[registry.JoinDescriptor]:
        return registry.get_joins_for_table(table)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
