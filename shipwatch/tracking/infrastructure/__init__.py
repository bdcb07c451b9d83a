"""
Tracking Infrastructure Layer
==============================
"""

from shipwatch.tracking.infrastructure.external import (
    BoardConfigManager,
    ConfigFileHandler,
    SweepScheduler,
)

__all__ = [
    "BoardConfigManager",
    "ConfigFileHandler",
    "SweepScheduler",
]
