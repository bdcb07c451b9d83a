"""
Tracking Application Layer
===========================

State stores, temporal trackers and the shipment monitor pipeline.
"""

from shipwatch.tracking.application.dto import (
    EntityResponse,
    StateResponse,
    WebhookEventPayload,
    WebhookRequest,
)
from shipwatch.tracking.application.monitor import (
    IBoardClient,
    ProcessingResult,
    ProcessingStatus,
    ShipmentMonitor,
    create_monitor,
)
from shipwatch.tracking.application.services import (
    AmbiguousStatusTracker,
    DuplicateSuppressor,
    StalenessTracker,
    StateSweeper,
    utc_now,
)
from shipwatch.tracking.application.state import (
    AmbiguousStatusStore,
    MonitorState,
    RecentAlertStore,
    UpdateHistoryStore,
)

__all__ = [
    "EntityResponse",
    "StateResponse",
    "WebhookEventPayload",
    "WebhookRequest",
    "IBoardClient",
    "ProcessingResult",
    "ProcessingStatus",
    "ShipmentMonitor",
    "create_monitor",
    "AmbiguousStatusTracker",
    "DuplicateSuppressor",
    "StalenessTracker",
    "StateSweeper",
    "utc_now",
    "AmbiguousStatusStore",
    "MonitorState",
    "RecentAlertStore",
    "UpdateHistoryStore",
]
