"""
Query schemas and types for the table explorer.

The pydantic models describe the query state the front end edits and the
results it gets back. The frozen dataclasses describe a compiled backend
request: they are produced by the QueryBuilder and consumed by the data
source, and never leave the server.
"""

from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# A row is an ordered mapping of column name to a scalar, or to a nested
# mapping for embedded join relations.
Row = Dict[str, Any]


class FilterOperator(str, Enum):
    """Comparison operators a user can pick for a filter."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    ILIKE = "ilike"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    IN = "in"


class OrderDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class ExplorerModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _new_id() -> str:
    return uuid4().hex


class Filter(ExplorerModel):
    """A single filter row. Identity is the id, so two filters may target one column."""

    id: str = Field(default_factory=_new_id)
    column: str = ""
    operator: Optional[FilterOperator] = None
    value: str = ""

    @field_validator("operator", mode="before")
    @classmethod
    def _blank_operator(cls, value: Any) -> Any:
        # The UI sends "" for a filter row whose operator is not picked yet
        return value or None

    @field_validator("value", mode="before")
    @classmethod
    def _null_value(cls, value: Any) -> Any:
        return "" if value is None else value


class JoinConfig(ExplorerModel):
    """A one-hop foreign key traversal: from_table.from_column -> to_table.to_column."""

    id: str = Field(default_factory=_new_id)
    from_table: str
    from_column: str
    to_table: str
    to_column: str = "id"  # informational; the data source joins on the known foreign column
    selected_columns: List[str] = Field(default_factory=list)


class QueryState(ExplorerModel):
    """Everything needed to run a query. An empty table means no query."""

    table: str = ""
    selected_columns: List[str] = Field(default_factory=list)
    filters: List[Filter] = Field(default_factory=list)
    joins: List[JoinConfig] = Field(default_factory=list)
    order_by: str = ""
    order_direction: OrderDirection = OrderDirection.ASC
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=50, gt=0)

    def for_table(self, table: str) -> "QueryState":
        """Switch to another table, clearing columns, filters, joins, order and page."""
        return QueryState(table=table, page_size=self.page_size)


class QueryResult(ExplorerModel):
    """Uniform result of every query path. Errors are reported here, never raised."""

    data: List[Row] = Field(default_factory=list)
    count: int = 0
    error: Optional[str] = None
    execution_time: float = 0.0  # in milliseconds


class ColumnMeta(ExplorerModel):
    """Describes one column of a table."""

    name: str
    data_type: str
    format: str


class LookupOption(ExplorerModel):
    """An id/label pair for a lookup-backed choice list."""

    id: str
    label: str


# ===== COMPILED REQUEST TYPES =====


@dataclass(frozen=True)
class Predicate:
    """A single backend predicate. All predicates of a request are AND-combined.

    operator is one of eq, neq, gt, gte, lt, lte, like, ilike, is, not_is, in.
    """

    column: str
    operator: str
    value: Union[str, bool, None, tuple] = None


@dataclass(frozen=True)
class NestedProjection:
    """An embedded relation: columns of `relation` joined through base column `hint`."""

    relation: str
    hint: str
    columns: tuple = ()

    def render(self) -> str:
        cols = ",".join(self.columns) if self.columns else "*"
        return f"{self.relation}!{self.hint}({cols})"


@dataclass(frozen=True)
class Projection:
    """The requested shape. Empty columns means every base column."""

    columns: tuple = ()
    nested: tuple = ()

    @property
    def all_columns(self) -> bool:
        return not self.columns

    def render(self) -> str:
        """Render as a select string, e.g. `*,vendedores!vendedor_id(nome)`."""
        parts = [",".join(self.columns) if self.columns else "*"]
        parts.extend(block.render() for block in self.nested)
        return ",".join(parts)


@dataclass(frozen=True)
class Ordering:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class RowRange:
    """Inclusive row range [start, end]."""

    start: int
    end: int

    @property
    def limit(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class BackendRequest:
    """A compiled query, ready for the data source."""

    table: str
    projection: Projection
    predicates: tuple = ()
    ordering: Optional[Ordering] = None
    row_range: Optional[RowRange] = None
    count_exact: bool = False


@dataclass
class BackendResponse:
    """What the data source returns. count is only set when an exact count was requested."""

    rows: List[Row] = field(default_factory=list)
    count: Optional[int] = None
    error: Optional[str] = None
