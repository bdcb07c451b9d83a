"""
Shared API Layer
================

Middleware and exception handlers shared by all routers.
"""

from shipwatch.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
)

__all__ = [
    "CorrelationIDMiddleware",
    "LoggingMiddleware",
    "global_exception_handler",
]
