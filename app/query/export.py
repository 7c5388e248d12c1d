# app/query/export.py
"""Bulk export: sweeps a query page by page up to a hard row cap."""

import logging
import time
from typing import Callable, List, Optional

from starlette.concurrency import run_in_threadpool

from .builder import QueryBuilder
from .datasource import DataSource
from .resolver import ForeignKeyResolver
from .schemas import QueryResult, QueryState, Row

logger = logging.getLogger(__name__)

MAX_EXPORT_ROWS = 10000
EXPORT_PAGE_SIZE = 500
MIN_EXPORT_PAGE_SIZE = 50
TIMEOUT_MARKER = "statement timeout"

ProgressCallback = Callable[[int], None]


def is_timeout_error(message: str) -> bool:
    return TIMEOUT_MARKER in message.lower()


class BulkExporter:
    """Fetches every row of a query (up to max_rows) for download.

    Pages are fetched strictly one after the other. When the backend times
    out, the page size is halved and the same offset retried until the floor
    is reached. Any other error stops the sweep and returns what was gathered.
    """

    def __init__(
        self,
        data_source: DataSource,
        resolver: ForeignKeyResolver,
        builder: QueryBuilder,
        max_rows: int = MAX_EXPORT_ROWS,
        page_size: int = EXPORT_PAGE_SIZE,
        min_page_size: int = MIN_EXPORT_PAGE_SIZE,
    ):
        self.data_source = data_source
        self.resolver = resolver
        self.builder = builder
        self.max_rows = max_rows
        self.page_size = page_size
        self.min_page_size = min_page_size

    async def fetch_all(
        self, state: QueryState, on_progress: Optional[ProgressCallback] = None
    ) -> QueryResult:
        start = time.perf_counter()
        rows: List[Row] = []
        page_size = self.page_size
        offset = 0

        while offset < self.max_rows:
            # Never ask for rows past the cap
            requested = min(page_size, self.max_rows - offset)
            request = self.builder.build_export_request(state, offset, requested)
            response = await run_in_threadpool(self.data_source.query, request)

            if response.error:
                if is_timeout_error(response.error) and page_size > self.min_page_size:
                    page_size = max(self.min_page_size, page_size // 2)
                    logger.info(
                        f"Export of {state.table} timed out at offset {offset}, "
                        f"retrying with page size {page_size}"
                    )
                    continue
                logger.warning(
                    f"Export of {state.table} stopped at offset {offset} with {len(rows)} rows: {response.error}"
                )
                return QueryResult(
                    data=rows,
                    count=len(rows),
                    error=response.error,
                    execution_time=_elapsed_ms(start),
                )

            page = response.rows
            if not page:
                break
            rows.extend(page)
            if on_progress is not None:
                on_progress(len(rows))
            if len(page) < requested:
                break
            offset += requested

        rows = await self.resolver.resolve(rows, state.table)
        return QueryResult(data=rows, count=len(rows), error=None, execution_time=_elapsed_ms(start))


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
