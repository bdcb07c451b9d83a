"""
Tracking Domain Layer
======================
"""

from shipwatch.tracking.domain.entities import (
    AlertKey,
    AmbiguousStatusRecord,
    BoardEvent,
    TrackedEntity,
    UpdateHistoryRecord,
)
from shipwatch.tracking.domain.value_objects import (
    DEFAULT_AMBIGUOUS_STATUSES,
    DEFAULT_BOARDS,
    DEFAULT_REGION_COORDINATORS,
    BoardConfig,
    MonitorConfig,
    extract_tracking_number,
)

__all__ = [
    "AlertKey",
    "AmbiguousStatusRecord",
    "BoardEvent",
    "TrackedEntity",
    "UpdateHistoryRecord",
    "DEFAULT_AMBIGUOUS_STATUSES",
    "DEFAULT_BOARDS",
    "DEFAULT_REGION_COORDINATORS",
    "BoardConfig",
    "MonitorConfig",
    "extract_tracking_number",
]
