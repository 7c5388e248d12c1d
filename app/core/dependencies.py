# app/core/dependencies.py
"""Shared FastAPI dependencies."""

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.core.database import get_db, get_data_source_engine
from app.datawarehouse.dao import DatawarehouseDAO
from app.query.cache import LookupCache
from app.query.engine import QueryEngine

# Core database dependencies
SessionDep = Annotated[Session, Depends(get_db)]
DataSourceEngineDep = Annotated[Engine, Depends(get_data_source_engine)]

_ttl = os.getenv("LOOKUP_CACHE_TTL_SECONDS")

# Lives as long as the process; cleared through the API
_lookup_cache = LookupCache(ttl_seconds=float(_ttl) if _ttl else None)


def get_lookup_cache() -> LookupCache:
    """Get the process-wide lookup cache."""
    return _lookup_cache


@lru_cache(maxsize=None)
def _dao_for(engine: Engine) -> DatawarehouseDAO:
    # One DAO per engine so reflected tables are reused across requests
    return DatawarehouseDAO(engine)


def get_datawarehouse_dao(engine: DataSourceEngineDep) -> DatawarehouseDAO:
    """Get the DAO for the data source."""
    return _dao_for(engine)


def get_query_engine(
    dao: DatawarehouseDAO = Depends(get_datawarehouse_dao),
    cache: LookupCache = Depends(get_lookup_cache),
) -> QueryEngine:
    """Get a query engine bound to the data source and the shared cache."""
    return QueryEngine(dao, cache)
