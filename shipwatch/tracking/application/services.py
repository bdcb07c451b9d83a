"""
Tracking Application Services
==============================

Temporal detectors and housekeeping:
- StalenessTracker: same text for longer than the threshold
- AmbiguousStatusTracker: an ambiguous phrase outliving its timeout
- DuplicateSuppressor: one alert per (entity, text, kind) per window
- StateSweeper: eviction of entities that stopped reporting

All of them take a ``clock`` so tests can move time.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping, Optional

from shipwatch.classification.domain import Issue, detect_carrier, route_for
from shipwatch.config import IssueKind, IssueSource, Severity, StalenessMode
from shipwatch.tracking.application.state import (
    AmbiguousStatusStore,
    MonitorState,
    RecentAlertStore,
    UpdateHistoryStore,
)
from shipwatch.tracking.domain import (
    DEFAULT_AMBIGUOUS_STATUSES,
    AlertKey,
    AmbiguousStatusRecord,
    UpdateHistoryRecord,
)
from shipwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _temporal_issue(kind: IssueKind, severity: Severity, reason: str, source: IssueSource, text: str) -> Issue:
    carrier = detect_carrier(text)
    return Issue(
        kind=kind,
        severity=severity,
        reason=reason,
        carrier=carrier,
        route=route_for(carrier),
        source=source
    )


class StalenessTracker:
    """
    Flags an entity whose update text has not changed for too long.

    In ``ONE_SHOT`` mode the alert fires once per continuous run of the
    same text and re-arms when the text changes. In ``REPEAT`` mode every
    observation past the threshold yields an issue.
    """

    def __init__(
        self,
        store: UpdateHistoryStore,
        threshold_hours: float = 36.0,
        mode: StalenessMode = StalenessMode.ONE_SHOT,
        clock: Clock = utc_now
    ):
        self._store = store
        self.threshold_hours = threshold_hours
        self.mode = StalenessMode(mode)
        self._clock = clock

    def observe(self, entity_id: str, text: str) -> Optional[Issue]:
        now = self._clock()
        text = (text or "").strip()
        record = self._store.get(entity_id)

        if record is None or record.text != text:
            self._store.put(UpdateHistoryRecord(
                entity_id=entity_id,
                text=text,
                first_seen=now,
                last_seen=now
            ))
            return None

        record.count += 1
        record.last_seen = now
        elapsed = record.elapsed_hours(now)

        if elapsed <= self.threshold_hours:
            return None
        if self.mode == StalenessMode.ONE_SHOT and record.alerted:
            return None

        record.alerted = True
        logger.info(
            "Stale tracking detected",
            extra={"entity_id": entity_id, "elapsed_hours": round(elapsed, 1), "count": record.count}
        )
        return _temporal_issue(
            IssueKind.STALE_TRACKING,
            Severity.MEDIUM,
            f"No tracking movement for {round(elapsed)} hours "
            f"(same update received {record.count} times)",
            IssueSource.STALENESS,
            text
        )


class AmbiguousStatusTracker:
    """
    Times ambiguous statuses such as "processing" or "on hold".

    The first matching phrase in table order is tracked. The record clears
    when the text stops containing that phrase, and clears with an alert
    once its timeout has elapsed.
    """

    def __init__(
        self,
        store: AmbiguousStatusStore,
        statuses: Optional[Callable[[], Mapping[str, float]]] = None,
        clock: Clock = utc_now
    ):
        self._store = store
        self._statuses = statuses or (lambda: DEFAULT_AMBIGUOUS_STATUSES)
        self._clock = clock

    def match(self, text: str) -> Optional[str]:
        lowered = (text or "").lower()
        for phrase in self._statuses():
            if phrase in lowered:
                return phrase
        return None

    def observe(self, entity_id: str, text: str) -> Optional[Issue]:
        now = self._clock()
        phrase = self.match(text)

        if phrase is None:
            self._store.remove(entity_id)
            return None

        record = self._store.get(entity_id)
        if record is None:
            self._store.put(AmbiguousStatusRecord(
                entity_id=entity_id,
                phrase=phrase,
                text=text,
                first_seen=now,
                timeout_hours=self._statuses()[phrase],
                last_seen=now
            ))
            return None

        record.last_seen = now
        if record.phrase not in (text or "").lower():
            self._store.remove(entity_id)
            return None

        elapsed = record.elapsed_hours(now)
        if elapsed < record.timeout_hours:
            return None

        self._store.remove(entity_id)
        logger.info(
            "Ambiguous status timed out",
            extra={"entity_id": entity_id, "phrase": record.phrase, "elapsed_hours": round(elapsed, 1)}
        )
        return _temporal_issue(
            IssueKind.AMBIGUOUS_TIMEOUT,
            Severity.HIGH,
            f'Status "{record.phrase}" has persisted for {round(elapsed)} hours',
            IssueSource.AMBIGUOUS,
            text
        )


class DuplicateSuppressor:
    """Suppresses repeats of the same (entity, text, kind) within the window."""

    def __init__(self, store: RecentAlertStore, window_seconds: int = 300, clock: Clock = utc_now):
        self._store = store
        self.window = timedelta(seconds=window_seconds)
        self._clock = clock

    def should_suppress(self, entity_id: str, update_text: str, issue_kind: IssueKind) -> bool:
        now = self._clock()
        self._store.evict_older_than(now - self.window)

        key = AlertKey(entity_id, (update_text or "").strip(), issue_kind)
        if self._store.get(key) is not None:
            logger.info(
                "Duplicate alert suppressed",
                extra={"entity_id": entity_id, "kind": issue_kind.value}
            )
            return True

        self._store.record(key, now)
        return False


class StateSweeper:
    """Evicts records of entities that have gone quiet."""

    def __init__(
        self,
        state: MonitorState,
        idle_ttl_hours: float = 24.0 * 14,
        alert_window_seconds: int = 300,
        clock: Clock = utc_now
    ):
        self._state = state
        self.idle_ttl = timedelta(hours=idle_ttl_hours)
        self.alert_window = timedelta(seconds=alert_window_seconds)
        self._clock = clock

    def sweep(self) -> dict:
        now = self._clock()
        idle_cutoff = now - self.idle_ttl
        removed = {
            "update_history": self._state.history.evict_idle(idle_cutoff),
            "ambiguous_statuses": self._state.ambiguous.evict_idle(idle_cutoff),
            "recent_alerts": self._state.recent_alerts.evict_older_than(now - self.alert_window),
        }
        logger.info("State sweep completed", extra={"removed": removed, "remaining": self._state.sizes()})
        return removed
