# app/explorer/service.py
"""Service layer for the explorer API: wraps the query engine and renders export files."""

import io
import logging
import re
from datetime import date
from typing import Any, Dict, List, Tuple

import pandas as pd
from fastapi import HTTPException

from app.query.builder import QueryBuilder
from app.query.engine import QueryEngine
from app.query.operators import (
    OPERATOR_LABELS,
    OPERATORS_BY_TYPE,
    get_operators_for_type,
    operator_requires_value,
)
from app.query.schemas import FilterOperator, LookupOption, QueryResult, QueryState, Row
from app.explorer.schemas import ExportFormat, KnownJoin, OperatorCatalog, TableColumn

logger = logging.getLogger(__name__)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_INVALID_SHEET_CHARS = re.compile(r"[\[\]\:\*\?\/\\]")


def flatten_row(row: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten embedded relations into dotted column names (`vendedores.nome`)."""
    flat: Dict[str, Any] = {}
    for key, value in row.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_row(value, full_key))
        else:
            flat[full_key] = value
    return flat


class ExplorerService:
    """Business logic behind the explorer endpoints."""

    def __init__(self, engine: QueryEngine):
        self.engine = engine

    # ===== SCHEMA =====

    async def get_grouped_tables(self) -> Dict[str, List[str]]:
        available = await self.engine.list_tables()
        return self.engine.get_grouped_tables(available)

    async def get_table_columns(self, table: str) -> List[TableColumn]:
        columns = await self.engine.fetch_table_columns(table)
        return [
            TableColumn(
                name=column.name,
                data_type=column.data_type,
                format=column.format,
                operators=get_operators_for_type(column.data_type),
                has_lookup=self.engine.has_lookup(table, column.name),
            )
            for column in columns
        ]

    def get_joins(self, table: str) -> List[KnownJoin]:
        return [KnownJoin(**join.to_dict()) for join in self.engine.get_joins_for_table(table)]

    async def get_lookup_options(self, table: str, column: str) -> List[LookupOption]:
        return await self.engine.fetch_lookup_options(table, column)

    @staticmethod
    def get_operator_catalog() -> OperatorCatalog:
        return OperatorCatalog(
            labels=OPERATOR_LABELS,
            by_type=OPERATORS_BY_TYPE,
            without_value=[op for op in FilterOperator if not operator_requires_value(op)],
        )

    # ===== QUERIES =====

    async def run_query(self, state: QueryState) -> QueryResult:
        return await self.engine.execute_query(state)

    def preview(self, state: QueryState) -> Dict[str, Any]:
        builder: QueryBuilder = self.engine.builder
        return builder.build_preview(state)

    async def export(self, state: QueryState) -> QueryResult:
        def log_progress(loaded: int) -> None:
            logger.debug(f"Export of {state.table}: {loaded} rows loaded")

        result = await self.engine.fetch_all_for_export(state, log_progress)
        logger.info(
            f"Export of {state.table} finished with {result.count} rows in {result.execution_time:.0f}ms"
        )
        return result

    async def export_file(self, state: QueryState, fmt: ExportFormat) -> Tuple[bytes, str, str]:
        """Run the export and render it. Returns (content, file name, media type)."""
        result = await self.export(state)
        if result.error:
            raise HTTPException(status_code=502, detail=f"Export failed: {result.error}")

        file_name = f"{state.table}_{date.today().isoformat()}.{fmt.value}"
        rows = [flatten_row(row) for row in result.data]
        if fmt == ExportFormat.CSV:
            return self.render_csv(rows), file_name, CSV_MEDIA_TYPE
        return self.render_xlsx(rows, state.table), file_name, XLSX_MEDIA_TYPE

    # ===== RENDERING =====

    @staticmethod
    def render_csv(rows: List[Row]) -> bytes:
        df = pd.DataFrame(rows)
        # UTF-8 BOM
        return ("\ufeff" + df.to_csv(index=False)).encode("utf-8")

    @staticmethod
    def render_xlsx(rows: List[Row], table: str) -> bytes:
        from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
        from openpyxl.styles import Alignment, Font, PatternFill
        from openpyxl.utils import get_column_letter

        # openpyxl refuses control characters in cell text
        df = pd.DataFrame(rows).replace(ILLEGAL_CHARACTERS_RE, "", regex=True)
        sheet_name = _INVALID_SHEET_CHARS.sub("_", table)[:31] or "Export"  # Excel sheet name limit is 31 chars

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]

            header_font = Font(bold=True, color="FFFFFF")
            header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
            for col_num, column in enumerate(df.columns, start=1):
                cell = worksheet.cell(row=1, column=col_num)
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = Alignment(horizontal="center", vertical="center")

                values = df[column].astype(str)
                width = max([len(str(column))] + [len(v) for v in values]) + 2
                worksheet.column_dimensions[get_column_letter(col_num)].width = min(width, 60)

        return buffer.getvalue()
