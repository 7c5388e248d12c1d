# app/query/datasource.py
"""Protocol the query engine expects from the explored database."""

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from .schemas import BackendRequest, BackendResponse, ColumnMeta, Row


class DataSourceError(RuntimeError):
    """Raised by a data source when a lookup or metadata read fails."""


@runtime_checkable
class DataSource(Protocol):
    """A read-only relational data source."""

    def query(self, request: BackendRequest) -> BackendResponse:
        """Run a compiled request. Backend failures are reported in BackendResponse.error."""

    def fetch_columns_metadata(self, table: str) -> List[ColumnMeta]:
        """Describe the columns of a table. Raises DataSourceError."""

    def lookup_table(
        self,
        table: str,
        id_field: str,
        label_field: str,
        ids: Optional[Sequence[str]] = None,
        order_by_label: bool = False,
    ) -> List[Row]:
        """Fetch id/label rows, optionally restricted to ids. Raises DataSourceError."""

    def list_tables(self) -> List[str]:
        """Names of the tables in the data source."""
