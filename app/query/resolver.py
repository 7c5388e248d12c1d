# app/query/resolver.py
"""Post-processing that replaces identifier values with labels from their lookup table."""

import logging
from typing import Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from app.datawarehouse.registry import LookupSource, get_lookups_for_table
from .cache import LookupCache
from .datasource import DataSource, DataSourceError
from .schemas import Row

logger = logging.getLogger(__name__)


class ForeignKeyResolver:
    """Resolves FK columns of a row set to labels, caching labels across queries.

    Row count and column set are preserved. A value without a known label is
    left as it was.
    """

    def __init__(
        self,
        data_source: DataSource,
        cache: LookupCache,
        lookups: Optional[Dict[str, Dict[str, LookupSource]]] = None,
    ):
        self.data_source = data_source
        self.cache = cache
        # None reads the registry
        self.lookups = lookups

    async def resolve(self, rows: List[Row], table: str) -> List[Row]:
        """Resolve every mapped column of `table` present in the rows."""
        if self.lookups is None:
            lookups = get_lookups_for_table(table)
        else:
            lookups = self.lookups.get(table)
        if not lookups or not rows:
            return rows

        # Row shape is uniform, so one row tells which columns are present
        first_row = rows[0]
        columns = [column for column in lookups if column in first_row]

        for column in columns:
            source = lookups[column]
            ids = self._distinct_ids(rows, column)
            if not ids:
                continue

            await self._load_missing(source, ids)
            labels = self.cache.labels(source.cache_key)
            rows = [self._substitute(row, column, labels) for row in rows]

        return rows

    async def _load_missing(self, source: LookupSource, ids: List[str]) -> None:
        missing = self.cache.missing_ids(source.cache_key, ids)
        if not missing:
            return
        try:
            fetched = await run_in_threadpool(
                self.data_source.lookup_table,
                source.table,
                source.id_field,
                source.label_field,
                missing,
            )
        except DataSourceError as e:
            logger.warning(f"Label lookup on {source.cache_key} failed: {e}")
            return

        self.cache.merge_labels(
            source.cache_key,
            {
                str(row.get(source.id_field)): str(row.get(source.label_field) or "")
                for row in fetched
            },
        )

    @staticmethod
    def _distinct_ids(rows: List[Row], column: str) -> List[str]:
        """Distinct non-empty string values of a column, in first-seen order."""
        seen: Dict[str, None] = {}
        for row in rows:
            value = row.get(column)
            if isinstance(value, str) and value:
                seen.setdefault(value, None)
        return list(seen)

    @staticmethod
    def _substitute(row: Row, column: str, labels: Dict[str, str]) -> Row:
        value = row.get(column)
        if isinstance(value, str) and labels.get(value):
            return {**row, column: labels[value]}
        return row
