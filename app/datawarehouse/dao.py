# app/datawarehouse/dao.py
"""Read-only data access for the explored database, built on SQLAlchemy reflection."""

import logging
import re
import threading
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import MetaData, Table, func, inspect, literal, literal_column, select, table
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.sqltypes import NullType

from app.datawarehouse.registry import JoinDescriptor, find_join
from app.query.datasource import DataSourceError
from app.query.schemas import (
    BackendRequest,
    BackendResponse,
    ColumnMeta,
    NestedProjection,
    Predicate,
    Row,
)

logger = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}", re.IGNORECASE)


def to_json_value(value: Any) -> Any:
    """Normalize a driver value to null/bool/number/string."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytes, memoryview)):
        return bytes(value).hex()
    return value


def infer_data_type(value: Any) -> str:
    """Guess a column type from a sample value."""
    # bool before numbers: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "numeric"
    if isinstance(value, str) and ISO_DATE_PATTERN.match(value):
        return "timestamp with time zone"
    if isinstance(value, str) and UUID_PATTERN.match(value):
        return "uuid"
    return "text"


def _untyped(value: Any):
    """Bind a value without coercing it to the column type; the database casts it."""
    return literal(value, type_=NullType())


def _error_message(error: Exception) -> str:
    orig = getattr(error, "orig", None)
    return str(orig if orig is not None else error).strip()


class DatawarehouseDAO:
    """Runs compiled requests against the data source database."""

    def __init__(self, engine: Engine, known_joins: Optional[Dict[str, List[JoinDescriptor]]] = None):
        self.engine = engine
        self.known_joins = known_joins  # None reads the registry
        self._metadata = MetaData()
        self._lock = threading.Lock()

    # ===== REFLECTION =====

    def _table(self, name: str) -> Table:
        if name in self._metadata.tables:
            return self._metadata.tables[name]
        with self._lock:
            return Table(name, self._metadata, autoload_with=self.engine)

    @staticmethod
    def _column(source, name: str):
        if name not in source.c:
            raise DataSourceError(f"column {source.name}.{name} does not exist")
        return source.c[name]

    def clear_reflection(self) -> None:
        """Forget reflected tables so schema changes are picked up."""
        with self._lock:
            self._metadata.clear()

    def list_tables(self) -> List[str]:
        inspector = inspect(self.engine)
        return sorted(set(inspector.get_table_names()) | set(inspector.get_view_names()))

    # ===== QUERY =====

    def query(self, request: BackendRequest) -> BackendResponse:
        """Execute a compiled request. Failures come back in BackendResponse.error."""
        try:
            return self._run(request)
        except (SQLAlchemyError, DataSourceError) as e:
            message = _error_message(e)
            logger.warning(f"Query on {request.table} failed: {message}")
            return BackendResponse(error=message)

    def _run(self, request: BackendRequest) -> BackendResponse:
        base = self._table(request.table)

        if request.projection.all_columns:
            base_columns = list(base.c)
        else:
            base_columns = [self._column(base, name) for name in request.projection.columns]

        select_columns = [column.label(column.name) for column in base_columns]
        from_clause = base
        embedded: List[Tuple[NestedProjection, str, List[Tuple[str, str]]]] = []

        for index, block in enumerate(request.projection.nested):
            if any(existing.relation == block.relation for existing, _, _ in embedded):
                raise DataSourceError(
                    f"could not embed '{block.relation}' more than once in '{request.table}'"
                )
            join = find_join(request.table, block.hint, block.relation, self.known_joins)
            if join is None:
                raise DataSourceError(
                    f"could not find a relationship between '{request.table}' and "
                    f"'{block.relation}' using '{block.hint}'"
                )
            related = self._table(block.relation).alias(f"j{index}_{block.relation}")
            on_clause = self._column(base, block.hint) == self._column(related, join.foreign_column)
            from_clause = from_clause.outerjoin(related, on_clause)

            names = list(block.columns) if block.columns else [c.name for c in related.c]
            labels = []
            for name in names:
                label = f"_j{index}_{name}"
                select_columns.append(self._column(related, name).label(label))
                labels.append((name, label))
            key_label = f"_j{index}__key"
            select_columns.append(related.c[join.foreign_column].label(key_label))
            embedded.append((block, key_label, labels))

        where = [self._predicate(base, predicate) for predicate in request.predicates]
        stmt = select(*select_columns).select_from(from_clause).where(*where)

        if request.ordering:
            order_column = self._column(base, request.ordering.column)
            stmt = stmt.order_by(order_column.asc() if request.ordering.ascending else order_column.desc())

        if request.row_range:
            stmt = stmt.offset(request.row_range.start).limit(request.row_range.limit)

        base_names = [column.name for column in base_columns]
        with self.engine.connect() as conn:
            rows = [
                self._shape_row(mapping, base_names, embedded)
                for mapping in conn.execute(stmt).mappings()
            ]
            count = None
            if request.count_exact:
                count_stmt = select(func.count()).select_from(base).where(*where)
                count = conn.execute(count_stmt).scalar_one()

        return BackendResponse(rows=rows, count=count)

    @staticmethod
    def _shape_row(mapping, base_names: List[str], embedded) -> Row:
        row: Row = {name: to_json_value(mapping[name]) for name in base_names}
        for block, key_label, labels in embedded:
            if mapping[key_label] is None:
                row[block.relation] = None
            else:
                row[block.relation] = {name: to_json_value(mapping[label]) for name, label in labels}
        return row

    def _predicate(self, source, predicate: Predicate):
        column = self._column(source, predicate.column)
        op = predicate.operator
        value = predicate.value

        if op == "eq":
            return column == _untyped(value)
        if op == "neq":
            return column != _untyped(value)
        if op == "gt":
            return column > _untyped(value)
        if op == "gte":
            return column >= _untyped(value)
        if op == "lt":
            return column < _untyped(value)
        if op == "lte":
            return column <= _untyped(value)
        if op == "like":
            return column.like(_untyped(value))
        if op == "ilike":
            return column.ilike(_untyped(value))
        if op == "is":
            return column.is_(None)
        if op == "not_is":
            return column.is_not(None)
        if op == "in":
            return column.in_([_untyped(member) for member in value])
        raise DataSourceError(f"unsupported operator '{op}'")

    # ===== METADATA =====

    def fetch_columns_metadata(self, table_name: str) -> List[ColumnMeta]:
        """Column names and types, from the inspector or else inferred from one sample row."""
        try:
            columns = inspect(self.engine).get_columns(table_name)
        except SQLAlchemyError as e:
            logger.info(f"Inspector could not describe {table_name}, sampling a row: {_error_message(e)}")
            columns = []

        if columns:
            return [self._describe(column["name"], column["type"]) for column in columns]
        return self._infer_columns(table_name)

    def _describe(self, name: str, column_type) -> ColumnMeta:
        try:
            data_type = str(column_type.compile(dialect=self.engine.dialect)).lower()
        except SQLAlchemyError:
            data_type = type(column_type).__name__.lower()
        return ColumnMeta(name=name, data_type=data_type, format=data_type.split("(")[0])

    def _infer_columns(self, table_name: str) -> List[ColumnMeta]:
        stmt = select(literal_column("*")).select_from(table(table_name)).limit(1)
        try:
            with self.engine.connect() as conn:
                sample = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise DataSourceError(_error_message(e)) from e

        if sample is None:
            return []
        described = []
        for name, value in sample.items():
            data_type = infer_data_type(to_json_value(value))
            described.append(ColumnMeta(name=name, data_type=data_type, format=data_type))
        return described

    # ===== LOOKUPS =====

    def lookup_table(
        self,
        table_name: str,
        id_field: str,
        label_field: str,
        ids: Optional[Sequence[str]] = None,
        order_by_label: bool = False,
    ) -> List[Row]:
        """Fetch id/label pairs from a lookup table."""
        try:
            source = self._table(table_name)
            id_column = self._column(source, id_field)
            label_column = self._column(source, label_field)
            stmt = select(id_column.label(id_field), label_column.label(label_field))
            if ids is not None:
                stmt = stmt.where(id_column.in_([_untyped(i) for i in ids]))
            if order_by_label:
                stmt = stmt.order_by(label_column.asc())
            with self.engine.connect() as conn:
                return [
                    {key: to_json_value(value) for key, value in mapping.items()}
                    for mapping in conn.execute(stmt).mappings()
                ]
        except SQLAlchemyError as e:
            raise DataSourceError(_error_message(e)) from e
