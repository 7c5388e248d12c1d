"""FastAPI application entry point for the table explorer."""

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from app.core.database import init_db
from app.core.router import register_routes
from app.logging.exception_handlers import register_exception_handlers
from app.logging.middleware import LoggingMiddleware


def create_app(session_factory: Optional[sessionmaker] = None, create_tables: bool = True) -> FastAPI:
    """Build the app. session_factory overrides where request logs are written."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Table Explorer",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    if create_tables:
        init_db()

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware, session_factory=session_factory)

    register_exception_handlers(app, session_factory)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    return app
