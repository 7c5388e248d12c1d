# app/logging/router.py
"""API router for the logging module."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.core.dependencies import SessionDep
from app.logging.dao import LogDAO
from app.logging.schemas import LogRead
from app.logging.service import LogService

router = APIRouter(
    prefix="/logs",
    tags=["logs"],
)


# ===== DEPENDENCY INJECTION =====

def get_log_dao(session: SessionDep) -> LogDAO:
    """Get LogDAO instance."""
    return LogDAO(session)


def get_log_service(log_dao: LogDAO = Depends(get_log_dao)) -> LogService:
    """Get LogService instance."""
    return LogService(log_dao)


# ===== LOG RETRIEVAL ENDPOINTS =====

@router.get("/", response_model=List[LogRead])
def get_logs(
    response: Response,
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    hours: int = Query(24, ge=1, le=168, description="Time window in hours"),
    path_prefix: Optional[str] = Query(None, description="Only logs whose path starts with this"),
    errors_only: bool = Query(False, description="Only 4xx and 5xx responses"),
    log_service: LogService = Depends(get_log_service),
) -> List[LogRead]:
    """Get request logs, most recent first."""
    logs = log_service.get_logs_with_filters(
        limit=limit,
        offset=offset,
        hours=hours,
        path_prefix=path_prefix,
        errors_only=errors_only,
    )
    total_count = log_service.count_logs_with_filters(
        hours=hours, path_prefix=path_prefix, errors_only=errors_only
    )

    # Pagination headers
    response.headers["X-Total-Count"] = str(total_count)
    response.headers["X-Page-Size"] = str(limit)
    response.headers["X-Page-Offset"] = str(offset)

    return logs


@router.get("/{log_id}", response_model=LogRead)
def get_log_by_id(
    log_id: int,
    log_service: LogService = Depends(get_log_service),
) -> LogRead:
    """Get a specific log by ID."""
    log = log_service.get_by_id(log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Log not found")
    return log
