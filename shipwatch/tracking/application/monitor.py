"""
Shipment Monitor
================

The per-event pipeline: board gating, tracking-number normalization,
entity fetch, temporal trackers, classification, duplicate suppression
and routing.

Collaborator failures are caught here and logged; ``handle_event`` only
raises on programming errors, which the webhook's background task logs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from shipwatch.alerts.application import NotificationRouter
from shipwatch.alerts.domain import RoutingOutcome
from shipwatch.classification.application import IIssueClassifier
from shipwatch.classification.domain import Issue, LocationResolver
from shipwatch.config import IssueKind, IssueSource, Settings, StalenessMode
from shipwatch.shared.infrastructure.logging import get_logger, log_latency
from shipwatch.tracking.application.services import (
    AmbiguousStatusTracker,
    Clock,
    DuplicateSuppressor,
    StalenessTracker,
    StateSweeper,
    utc_now,
)
from shipwatch.tracking.application.state import MonitorState
from shipwatch.tracking.domain import (
    BoardConfig,
    BoardEvent,
    MonitorConfig,
    TrackedEntity,
    extract_tracking_number,
)

logger = get_logger(__name__)


class IBoardClient(ABC):
    """Interface for board data access."""

    @abstractmethod
    async def fetch_entity(self, entity_id: str) -> Optional[TrackedEntity]:
        """Fetch an item with its column texts; None when it does not exist."""

    @abstractmethod
    async def write_field(self, board_id: str, entity_id: str, field_key: str, value: str) -> None:
        """Overwrite one column value."""

    @abstractmethod
    async def check_connection(self) -> Dict[str, Any]:
        """Authenticated user details."""


class ProcessingStatus(str, Enum):
    IGNORED_BOARD = "ignored_board"
    IGNORED_EMPTY = "ignored_empty"
    TRACKING_NORMALIZED = "tracking_normalized"
    IGNORED_COLUMN = "ignored_column"
    ENTITY_MISSING = "entity_missing"
    PROCESSED = "processed"


@dataclass
class ProcessingResult:
    """What happened to one board event."""
    status: ProcessingStatus
    entity_id: str
    board_id: Optional[str] = None
    tracking_number: Optional[str] = None
    issues: List[Issue] = field(default_factory=list)
    suppressed: List[IssueKind] = field(default_factory=list)
    outcomes: List[RoutingOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "entity_id": self.entity_id,
            "board_id": self.board_id,
            "tracking_number": self.tracking_number,
            "issues": [issue.to_dict() for issue in self.issues],
            "suppressed": [kind.value for kind in self.suppressed],
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


# Only classifier findings reflect something the customer can act on.
_CUSTOMER_FACING_SOURCES = (IssueSource.RULES, IssueSource.MODEL)


class ShipmentMonitor:
    """Runs the full pipeline for each board change event."""

    def __init__(
        self,
        board_client: IBoardClient,
        classifier: IIssueClassifier,
        router: NotificationRouter,
        config_provider: Callable[[], MonitorConfig],
        state: MonitorState,
        staleness: StalenessTracker,
        ambiguous: AmbiguousStatusTracker,
        suppressor: DuplicateSuppressor,
        sweeper: StateSweeper
    ):
        self.board_client = board_client
        self.classifier = classifier
        self.router = router
        self.state = state
        self.staleness = staleness
        self.ambiguous = ambiguous
        self.suppressor = suppressor
        self.sweeper = sweeper
        self._config = config_provider

    @property
    def config(self) -> MonitorConfig:
        return self._config()

    async def handle_event(self, event: BoardEvent) -> ProcessingResult:
        board = self.config.board(event.board_id)
        if board is None:
            logger.info("Event from unmonitored board", extra={"board_id": event.board_id})
            return ProcessingResult(ProcessingStatus.IGNORED_BOARD, event.entity_id, event.board_id)

        text = (event.text or "").strip()
        if not text:
            return ProcessingResult(ProcessingStatus.IGNORED_EMPTY, event.entity_id, board.board_id)

        tracking_number = extract_tracking_number(text)
        if tracking_number and tracking_number != text:
            await self._normalize_tracking(board, event.entity_id, tracking_number)
            return ProcessingResult(
                ProcessingStatus.TRACKING_NORMALIZED,
                event.entity_id,
                board.board_id,
                tracking_number=tracking_number
            )

        if board.ignores_column(event.column_id):
            return ProcessingResult(ProcessingStatus.IGNORED_COLUMN, event.entity_id, board.board_id)

        entity = await self._fetch(event.entity_id)
        if entity is None:
            return ProcessingResult(ProcessingStatus.ENTITY_MISSING, event.entity_id, board.board_id)

        entity.update_text = text
        entity.board_id = entity.board_id or board.board_id
        result = ProcessingResult(ProcessingStatus.PROCESSED, entity.id, board.board_id)

        candidates = [
            self.ambiguous.observe(entity.id, text),
            self.staleness.observe(entity.id, text),
            await self._classify(entity, board, text),
        ]
        result.issues = [issue for issue in candidates if issue is not None and issue.is_alertable]

        resolver = LocationResolver(board.location_field)
        for issue in result.issues:
            if self.suppressor.should_suppress(entity.id, text, issue.kind):
                result.suppressed.append(issue.kind)
                continue

            location = resolver.resolve(entity.fields, text, issue.extracted_location)
            outcome = await self.router.route(
                issue,
                entity,
                location,
                board,
                allow_customer_email=issue.source in _CUSTOMER_FACING_SOURCES
            )
            result.outcomes.append(outcome)

        logger.info(
            "Event processed",
            extra={
                "entity_id": entity.id,
                "board": board.name,
                "issues": [issue.kind.value for issue in result.issues],
                "suppressed": [kind.value for kind in result.suppressed],
            }
        )
        return result

    async def _normalize_tracking(self, board: BoardConfig, entity_id: str, tracking_number: str) -> None:
        try:
            await self.board_client.write_field(board.board_id, entity_id, board.tracking_field, tracking_number)
        except Exception as e:
            logger.error(
                "Failed to write tracking number",
                extra={"entity_id": entity_id, "board_id": board.board_id, "error": str(e)}
            )

    async def _fetch(self, entity_id: str) -> Optional[TrackedEntity]:
        try:
            with log_latency(logger, "board_fetch", entity_id=entity_id):
                entity = await self.board_client.fetch_entity(entity_id)
        except Exception as e:
            logger.error("Failed to fetch item", extra={"entity_id": entity_id, "error": str(e)})
            return None

        if entity is None:
            logger.info("Item not found", extra={"entity_id": entity_id})
        return entity

    async def _classify(self, entity: TrackedEntity, board: BoardConfig, text: str) -> Optional[Issue]:
        context = {
            "location": entity.value_of(board.location_field),
            "due date": entity.value_of(board.due_date_field),
        }
        try:
            return await self.classifier.classify(text, context=context)
        except Exception as e:
            logger.error("Classification failed", extra={"entity_id": entity.id, "error": str(e)})
            return None


def create_monitor(
    config: Settings,
    board_client: IBoardClient,
    classifier: IIssueClassifier,
    router: NotificationRouter,
    config_provider: Callable[[], MonitorConfig],
    state: Optional[MonitorState] = None,
    clock: Clock = utc_now
) -> ShipmentMonitor:
    """Wire trackers and stores around the collaborators."""
    state = state or MonitorState()
    return ShipmentMonitor(
        board_client=board_client,
        classifier=classifier,
        router=router,
        config_provider=config_provider,
        state=state,
        staleness=StalenessTracker(
            state.history,
            threshold_hours=config.stale_after_hours,
            mode=StalenessMode(config.staleness_mode),
            clock=clock
        ),
        ambiguous=AmbiguousStatusTracker(
            state.ambiguous,
            statuses=lambda: config_provider().ambiguous_statuses,
            clock=clock
        ),
        suppressor=DuplicateSuppressor(
            state.recent_alerts,
            window_seconds=config.duplicate_window_seconds,
            clock=clock
        ),
        sweeper=StateSweeper(
            state,
            idle_ttl_hours=config.entity_idle_ttl_hours,
            alert_window_seconds=config.duplicate_window_seconds,
            clock=clock
        )
    )
