"""
Structured Logging
==================

JSON-structured logging with correlation ID tracking.

The correlation ID is held in a context variable set by the HTTP
middleware, so every log line emitted while handling a webhook (including
its background processing) carries the same ID.

Usage:
    from shipwatch.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Alert dispatched", extra={"entity_id": "1234567"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from pythonjsonlogger import jsonlogger

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_REDACTED_KEYS = ("password", "pass", "secret", "api_key", "token")


def bind_correlation_id(correlation_id: Optional[str]) -> None:
    """Attach a correlation ID to the current execution context."""
    _correlation_id.set(correlation_id)


def current_correlation_id() -> Optional[str]:
    return _correlation_id.get()


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, correlation_id and environment,
    and redacting credential-looking keys.
    """

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        correlation_id = getattr(record, "correlation_id", None) or _correlation_id.get()
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        log_record["environment"] = self._environment

        for key, value in list(log_record.items()):
            lowered = key.lower()
            if not isinstance(value, str) or lowered == "tokens_used":
                continue
            if any(marker in lowered for marker in _REDACTED_KEYS):
                log_record[key] = "***REDACTED***"


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
) -> None:
    """
    Configure structured JSON logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: Environment name for log context
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(
        CustomJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            environment=environment,
        )
    )
    root_logger.addHandler(handler)

    # Silence noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any):
    """
    Context manager for measuring and logging operation latency.

    Usage:
        with log_latency(logger, "board_fetch", entity_id=entity_id):
            entity = await board.fetch_entity(entity_id)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round(latency_ms, 2),
                **extra_context,
            },
        )
