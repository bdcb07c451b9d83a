"""
Shared API Middleware
======================

Request tracing and error translation for the FastAPI application.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shipwatch.core import ExternalServiceException
from shipwatch.shared.infrastructure.logging import bind_correlation_id, get_logger

logger = get_logger(__name__)

# Polled by load balancers; logged at DEBUG only.
QUIET_PATHS = frozenset({"/health", "/"})


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a correlation ID to every request.

    monday.com retries carry no stable request ID, so one is generated
    unless the caller supplies ``X-Correlation-ID``. The ID is bound to the
    logging context, which the webhook's background task inherits.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or f"sw-{uuid.uuid4().hex[:16]}"
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request with status and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.log(
            level,
            "Request handled",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "client": request.client.host if request.client else None,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Translate unhandled exceptions into JSON errors.

    Collaborator failures (monday.com, Slack, ...) surface as 502 naming the
    service; anything else is a 500. The webhook route never gets here since
    it acknowledges before processing.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    upstream = isinstance(exc, ExternalServiceException)

    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    settings = getattr(request.app.state, "settings", None)
    is_dev = getattr(settings, "environment", None) == "development"

    return JSONResponse(
        status_code=502 if upstream else 500,
        content={
            "detail": f"{exc.service_name} unavailable" if upstream else "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )
