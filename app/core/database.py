# app/core/database.py
"""Database configuration for the config database and the explored data source."""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv

load_dotenv()

# ===== CONFIG DATABASE =====
# Stores application data (request logs)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./explorer_config.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== DATA SOURCE DATABASE =====
# The database being explored. Only ever read from.
DATA_SOURCE_URL = os.getenv("DATA_SOURCE_URL", "sqlite:///./explorer_data.db")
STATEMENT_TIMEOUT_MS = os.getenv("DATA_SOURCE_STATEMENT_TIMEOUT_MS")


def _data_source_connect_args(url: str) -> dict:
    """Driver arguments for the data source engine."""
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    if url.startswith("postgresql") and STATEMENT_TIMEOUT_MS:
        return {"options": f"-c statement_timeout={int(STATEMENT_TIMEOUT_MS)}"}
    return {}


data_source_engine = create_engine(
    DATA_SOURCE_URL,
    connect_args=_data_source_connect_args(DATA_SOURCE_URL),
    pool_pre_ping=not DATA_SOURCE_URL.startswith("sqlite"),
)


# ===== SESSION GENERATORS =====


def get_db():
    """Get config database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_data_source_engine():
    """Get the data source engine."""
    return data_source_engine


def init_db():
    """Create the config database tables."""
    from app.logging.models import Log  # noqa: F401

    Base.metadata.create_all(bind=engine)
