"""
Test configuration and shared fixtures for the table explorer test suite.
Provides the config database, a seeded data source, and the API test client.
"""

import pytest
from typing import Generator
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.app import create_app
from app.core.database import Base, get_db, get_data_source_engine
from app.core.dependencies import get_lookup_cache
from app.datawarehouse.dao import DatawarehouseDAO
from app.query.cache import LookupCache


DATA_SOURCE_DDL = [
    """
    CREATE TABLE funil (
        id TEXT PRIMARY KEY,
        nome TEXT
    )
    """,
    """
    CREATE TABLE etapa (
        id TEXT PRIMARY KEY,
        nome TEXT,
        funil TEXT
    )
    """,
    """
    CREATE TABLE vendedores (
        id TEXT PRIMARY KEY,
        nome VARCHAR(80),
        email TEXT
    )
    """,
    """
    CREATE TABLE leads (
        lead_id TEXT PRIMARY KEY,
        nome TEXT,
        valor NUMERIC,
        novo_crm BOOLEAN,
        "vendedorResponsavel" TEXT,
        funil TEXT,
        created_at TIMESTAMP
    )
    """,
]

DATA_SOURCE_ROWS = [
    "INSERT INTO funil VALUES ('f1', 'Inbound'), ('f2', 'Outbound')",
    "INSERT INTO etapa VALUES ('e1', 'New', 'f1'), ('e2', 'Won', 'f1'), ('e3', 'Lost', 'f2')",
    "INSERT INTO vendedores VALUES ('v1', 'Ana', 'ana@example.com'), ('v2', 'Bruno', 'bruno@example.com')",
    """
    INSERT INTO leads VALUES
        ('L1', 'Acme', 1500, 1, 'v1', 'f1', '2024-01-10 09:00:00'),
        ('L2', 'Globex', 800, 1, 'v2', 'f2', '2024-02-01 10:30:00'),
        ('L3', 'Initech', 300, 1, NULL, 'f1', '2024-02-15 14:00:00'),
        ('L4', 'Umbrella', 4200, 1, 'v-gone', NULL, '2024-03-03 08:15:00'),
        ('L5', 'Legacy Corp', 99, 0, 'v1', 'f1', '2023-11-20 16:45:00')
    """,
]


# ===== DATABASE SETUP =====

@pytest.fixture(scope="function")
def config_engine():
    """Create in-memory SQLite engine for the config database"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from app.logging.models import Log  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def config_session_factory(config_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=config_engine)


@pytest.fixture(scope="function")
def config_db_session(config_session_factory) -> Generator[Session, None, None]:
    """Create a database session for the config database"""
    session = config_session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def data_source_engine():
    """In-memory SQLite data source seeded with a small CRM"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        for statement in DATA_SOURCE_DDL + DATA_SOURCE_ROWS:
            conn.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def dao(data_source_engine) -> DatawarehouseDAO:
    return DatawarehouseDAO(data_source_engine)


@pytest.fixture
def lookup_cache() -> LookupCache:
    return LookupCache()


# ===== API CLIENT =====

@pytest.fixture
def client(config_session_factory, config_db_session, data_source_engine, lookup_cache):
    """Create FastAPI test client with database overrides"""
    app = create_app(session_factory=config_session_factory, create_tables=False)

    def override_get_db():
        try:
            yield config_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_data_source_engine] = lambda: data_source_engine
    app.dependency_overrides[get_lookup_cache] = lambda: lookup_cache

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()
