# app/logging/exception_handlers.py
"""Exception handlers that record failed requests in the log table."""

import logging
import traceback
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from app.core.database import SessionLocal
from app.logging.middleware import APPLICATION_ID
from app.logging.models import Log

logger = logging.getLogger(__name__)


def _store(session_factory: sessionmaker, request: Request, status_code: int, error: str) -> None:
    try:
        with session_factory() as session:
            session.add(
                Log(
                    timestamp=datetime.now(),
                    method=request.method,
                    path=str(request.url.path),
                    status_code=status_code,
                    client_ip=request.client.host if request.client else None,
                    error=error,
                    user_agent=request.headers.get("user-agent"),
                    application_id=APPLICATION_ID,
                )
            )
            session.commit()
    except Exception as log_error:
        logger.error(f"Error logging exception: {log_error}")


def register_exception_handlers(app: FastAPI, session_factory: Optional[sessionmaker] = None) -> None:
    """Attach the validation and catch-all handlers to the app."""
    session_factory = session_factory or SessionLocal

    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        # The request middleware stores this response with its detail
        logger.info(f"Rejected request to {request.url.path}: {len(errors)} validation errors")
        return JSONResponse(status_code=422, content={"detail": errors})

    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        _store(session_factory, request, 500, traceback.format_exc())
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
