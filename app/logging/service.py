# app/logging/service.py
"""Service layer for the logging module."""

from typing import List, Optional

from fastapi import HTTPException

from app.logging.dao import LogDAO
from app.logging.models import Log
from app.logging.schemas import LogRead


class LogService:
    """Reads request logs."""

    def __init__(self, log_dao: LogDAO):
        self.dao = log_dao

    def _to_response(self, record: Log) -> LogRead:
        return LogRead.model_validate(record)

    def get_logs_with_filters(
        self,
        limit: int = 50,
        offset: int = 0,
        hours: int = 24,
        path_prefix: Optional[str] = None,
        errors_only: bool = False,
    ) -> List[LogRead]:
        """Get logs with pagination and filtering."""
        try:
            logs = self.dao.get_logs_with_filters(
                limit=limit,
                offset=offset,
                hours=hours,
                path_prefix=path_prefix,
                errors_only=errors_only,
            )
            return [self._to_response(log) for log in logs]
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Error fetching logs: {str(e)}") from e

    def count_logs_with_filters(
        self,
        hours: int = 24,
        path_prefix: Optional[str] = None,
        errors_only: bool = False,
    ) -> int:
        return self.dao.count_logs_with_filters(
            hours=hours, path_prefix=path_prefix, errors_only=errors_only
        )

    def get_by_id(self, log_id: int) -> Optional[LogRead]:
        record = self.dao.get_by_id(log_id)
        return self._to_response(record) if record else None
