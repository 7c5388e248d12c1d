# app/explorer/router.py
"""API router for the table explorer."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.core.dependencies import get_datawarehouse_dao, get_lookup_cache, get_query_engine
from app.datawarehouse.dao import DatawarehouseDAO
from app.explorer.schemas import (
    CacheStats,
    ExportFormat,
    KnownJoin,
    OperatorCatalog,
    QueryPreview,
    TableColumn,
)
from app.explorer.service import ExplorerService
from app.query.cache import LookupCache
from app.query.engine import QueryEngine
from app.query.schemas import LookupOption, QueryResult, QueryState

router = APIRouter(prefix="/explorer", tags=["Explorer"])


# ===== DEPENDENCY INJECTION =====

def get_explorer_service(engine: QueryEngine = Depends(get_query_engine)) -> ExplorerService:
    """Get ExplorerService instance."""
    return ExplorerService(engine)


# ===== SCHEMA ENDPOINTS =====

@router.get("/tables", response_model=Dict[str, List[str]])
async def get_grouped_tables(
    service: ExplorerService = Depends(get_explorer_service),
) -> Dict[str, List[str]]:
    """Get tables grouped by business domain."""
    return await service.get_grouped_tables()


@router.get("/tables/{table}/columns", response_model=List[TableColumn])
async def get_table_columns(
    table: str,
    service: ExplorerService = Depends(get_explorer_service),
) -> List[TableColumn]:
    """Get the columns of a table with their allowed operators."""
    return await service.get_table_columns(table)


@router.get("/tables/{table}/joins", response_model=List[KnownJoin])
def get_table_joins(
    table: str,
    service: ExplorerService = Depends(get_explorer_service),
) -> List[KnownJoin]:
    """Get the joins a table offers."""
    return service.get_joins(table)


@router.get("/tables/{table}/columns/{column}/options", response_model=List[LookupOption])
async def get_lookup_options(
    table: str,
    column: str,
    service: ExplorerService = Depends(get_explorer_service),
) -> List[LookupOption]:
    """Get the choice list of an FK-backed column. Empty when the column has none."""
    return await service.get_lookup_options(table, column)


@router.get("/operators", response_model=OperatorCatalog)
def get_operators(service: ExplorerService = Depends(get_explorer_service)) -> OperatorCatalog:
    """Get operator labels and the operators allowed per column type."""
    return service.get_operator_catalog()


# ===== QUERY ENDPOINTS =====

@router.post("/query", response_model=QueryResult)
async def run_query(
    state: QueryState,
    service: ExplorerService = Depends(get_explorer_service),
) -> QueryResult:
    """Run one page of a query. Query errors are reported in the result body."""
    return await service.run_query(state)


@router.post("/query/preview", response_model=QueryPreview)
def preview_query(
    state: QueryState,
    service: ExplorerService = Depends(get_explorer_service),
) -> Dict[str, Any]:
    """Show the compiled request without running it."""
    return service.preview(state)


# ===== EXPORT ENDPOINTS =====

@router.post("/export", response_model=QueryResult)
async def export_rows(
    state: QueryState,
    service: ExplorerService = Depends(get_explorer_service),
) -> QueryResult:
    """Fetch every row of a query, up to the export cap."""
    return await service.export(state)


@router.post("/export/{fmt}")
async def export_file(
    fmt: ExportFormat,
    state: QueryState,
    service: ExplorerService = Depends(get_explorer_service),
) -> Response:
    """Download every row of a query as CSV or XLSX."""
    content, file_name, media_type = await service.export_file(state, fmt)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


# ===== MAINTENANCE ENDPOINTS =====

@router.post("/cache/clear", response_model=CacheStats)
def clear_cache(
    cache: LookupCache = Depends(get_lookup_cache),
    dao: DatawarehouseDAO = Depends(get_datawarehouse_dao),
) -> CacheStats:
    """Drop cached lookup options, labels and reflected tables."""
    cache.clear()
    dao.clear_reflection()
    return CacheStats(**cache.stats())
