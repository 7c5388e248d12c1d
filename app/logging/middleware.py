import json
import os
import platform
import socket
import time
import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from sqlalchemy.orm import sessionmaker

from app.logging.models import Log
from app.core.database import SessionLocal

logger = logging.getLogger(__name__)

APPLICATION_ID = os.environ.get("APPLICATION_ID", "table-explorer")

# Bodies above this size are not inspected for a query error
MAX_INSPECTED_BODY = 1024 * 1024


def extract_error(body: bytes) -> Optional[str]:
    """The `error` field of a JSON body (query results carry their errors there)."""
    if not body or len(body) > MAX_INSPECTED_BODY:
        return None
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if isinstance(payload, dict):
        error = payload.get("error") or payload.get("detail")
        return str(error) if error else None
    return None


class LoggingMiddleware(BaseHTTPMiddleware):
    """Stores one Log row per API request, written in a background task."""

    def __init__(self, app: ASGIApp, session_factory: Optional[sessionmaker] = None):
        super().__init__(app)
        self.session_factory = session_factory or SessionLocal
        try:
            self.hostname = socket.gethostname() or platform.node() or "unknown_host"
        except OSError:
            self.hostname = "unknown_host"
        self.application_id = APPLICATION_ID

    async def dispatch(self, request: Request, call_next: Callable):
        path = request.url.path
        # Only API calls are logged, and reading the logs is not
        if not path.startswith("/api") or path.startswith("/api/logs") or path.startswith("/api/docs"):
            return await call_next(request)

        start_time = time.perf_counter()

        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore") if body_bytes else None

        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        is_json = "application/json" in response.headers.get("content-type", "")
        chunks = []

        if is_json and hasattr(response, "body_iterator"):
            original_iterator = response.body_iterator

            async def buffer_iterator():
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk

            response.body_iterator = buffer_iterator()

        def log_to_db():
            log = Log(
                timestamp=datetime.now(),
                method=request.method,
                path=path,
                status_code=response.status_code,
                client_ip=request.client.host if request.client else None,
                request_body=request_body,
                error=extract_error(b"".join(chunks)) if is_json else None,
                processing_time=duration_ms,
                user_agent=request.headers.get("user-agent"),
                hostname=self.hostname,
                application_id=self.application_id,
            )
            try:
                with self.session_factory() as session:
                    session.add(log)
                    session.commit()
            except Exception as e:
                logger.error(f"Could not store request log for {path}: {e}")

        response.background = response.background or BackgroundTask(log_to_db)
        return response
