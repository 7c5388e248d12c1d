# app/logging/dao.py
"""Data Access Objects for the logging module using BaseDAO."""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from app.core.base_dao import BaseDAO
from app.logging.models import Log


class LogDAO(BaseDAO[Log]):
    """DAO for request logs."""

    def __init__(self, db_session: Session):
        super().__init__(Log, db_session)

    def _filtered(self, query, hours: int, path_prefix: Optional[str], errors_only: bool):
        query = query.where(self.model.timestamp >= datetime.now() - timedelta(hours=hours))
        if path_prefix:
            query = query.where(self.model.path.startswith(path_prefix))
        if errors_only:
            query = query.where(self.model.status_code >= 400)
        return query

    def get_logs_with_filters(
        self,
        limit: int = 50,
        offset: int = 0,
        hours: int = 24,
        path_prefix: Optional[str] = None,
        errors_only: bool = False,
    ) -> List[Log]:
        """Most recent logs first."""
        query = self._filtered(select(self.model), hours, path_prefix, errors_only)
        query = query.order_by(desc(self.model.timestamp)).offset(offset).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def count_logs_with_filters(
        self,
        hours: int = 24,
        path_prefix: Optional[str] = None,
        errors_only: bool = False,
    ) -> int:
        query = self._filtered(
            select(func.count()).select_from(self.model), hours, path_prefix, errors_only
        )
        return self.db.execute(query).scalar_one()
