"""
Tracking Domain Entities
=========================

Board items as fetched per event, and the per-entity records the
temporal trackers keep between events.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from shipwatch.config import IssueKind


@dataclass
class BoardEvent:
    """One change notification from the board."""
    entity_id: str
    board_id: str
    column_id: Optional[str]
    text: Optional[str]
    entity_name: Optional[str] = None


@dataclass
class TrackedEntity:
    """
    A board item (one shipment).

    Fetched fresh for every event and never persisted; ``fields`` maps
    column ids to their display text.
    """
    id: str
    name: str
    board_id: Optional[str] = None
    fields: Dict[str, str] = field(default_factory=dict)
    update_text: Optional[str] = None

    def value_of(self, key: Optional[str]) -> Optional[str]:
        """Stripped value of a column, None when missing or blank."""
        if not key:
            return None
        value = (self.fields.get(key) or "").strip()
        return value or None


@dataclass
class UpdateHistoryRecord:
    """Same-text tracking for one entity."""
    entity_id: str
    text: str
    first_seen: datetime
    last_seen: datetime
    count: int = 1
    alerted: bool = False

    def elapsed_hours(self, now: datetime) -> float:
        return (now - self.first_seen).total_seconds() / 3600


@dataclass
class AmbiguousStatusRecord:
    """An ambiguous phrase being timed for one entity."""
    entity_id: str
    phrase: str
    text: str
    first_seen: datetime
    timeout_hours: float
    last_seen: datetime

    def elapsed_hours(self, now: datetime) -> float:
        return (now - self.first_seen).total_seconds() / 3600


@dataclass(frozen=True)
class AlertKey:
    """Identity of an alert for duplicate suppression."""
    entity_id: str
    text: str
    kind: IssueKind
