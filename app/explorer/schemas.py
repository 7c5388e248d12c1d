"""Pydantic schemas for the explorer API."""

from typing import Any, Dict, List, Optional
from enum import Enum

from app.query.schemas import ColumnMeta, ExplorerModel, FilterOperator


class ExportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"


class TableColumn(ColumnMeta):
    """A column with the operators it allows and whether it has a choice list."""

    operators: List[FilterOperator] = []
    has_lookup: bool = False


class KnownJoin(ExplorerModel):
    column: str
    foreign_table: str
    foreign_column: str


class OperatorCatalog(ExplorerModel):
    labels: Dict[FilterOperator, str]
    by_type: Dict[str, List[FilterOperator]]
    without_value: List[FilterOperator]


class QueryPreview(ExplorerModel):
    table: str
    select: str
    predicates: List[Dict[str, Any]]
    order: Optional[Dict[str, Any]] = None
    range: List[int]


class CacheStats(ExplorerModel):
    option_lists: int
    label_sources: int
    labels: int
