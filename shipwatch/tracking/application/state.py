"""
In-process State Stores
========================

The three tables the trackers mutate. Built once at startup and passed by
reference; nothing here survives a restart.
"""

from datetime import datetime
from typing import Dict, Generic, Optional, TypeVar

from shipwatch.tracking.domain import AlertKey, AmbiguousStatusRecord, UpdateHistoryRecord

RecordT = TypeVar("RecordT", UpdateHistoryRecord, AmbiguousStatusRecord)


class _EntityRecordStore(Generic[RecordT]):
    """Records keyed by entity id, evictable by last-seen time."""

    def __init__(self):
        self._records: Dict[str, RecordT] = {}

    def get(self, entity_id: str) -> Optional[RecordT]:
        return self._records.get(entity_id)

    def put(self, record: RecordT) -> None:
        self._records[record.entity_id] = record

    def remove(self, entity_id: str) -> None:
        self._records.pop(entity_id, None)

    def evict_idle(self, cutoff: datetime) -> int:
        """Drop records last seen before ``cutoff``; returns how many."""
        idle = [entity_id for entity_id, record in self._records.items() if record.last_seen < cutoff]
        for entity_id in idle:
            del self._records[entity_id]
        return len(idle)

    def __len__(self) -> int:
        return len(self._records)


class UpdateHistoryStore(_EntityRecordStore[UpdateHistoryRecord]):
    """Same-text history per entity."""


class AmbiguousStatusStore(_EntityRecordStore[AmbiguousStatusRecord]):
    """Ambiguous-phrase timers per entity."""


class RecentAlertStore:
    """Timestamp of the last alert per (entity, text, kind)."""

    def __init__(self):
        self._alerts: Dict[AlertKey, datetime] = {}

    def get(self, key: AlertKey) -> Optional[datetime]:
        return self._alerts.get(key)

    def record(self, key: AlertKey, at: datetime) -> None:
        self._alerts[key] = at

    def evict_older_than(self, cutoff: datetime) -> int:
        expired = [key for key, at in self._alerts.items() if at < cutoff]
        for key in expired:
            del self._alerts[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._alerts)


class MonitorState:
    """The three stores, created together at process start."""

    def __init__(self):
        self.history = UpdateHistoryStore()
        self.ambiguous = AmbiguousStatusStore()
        self.recent_alerts = RecentAlertStore()

    def sizes(self) -> Dict[str, int]:
        return {
            "update_history": len(self.history),
            "ambiguous_statuses": len(self.ambiguous),
            "recent_alerts": len(self.recent_alerts),
        }
