"""
Alerts Application Services
============================

Routes an Issue to the internal Slack channel and, for failed deliveries
the customer can fix, to the customer by e-mail.

The two channels are independent: each is guarded on its own and a
failure in one is logged without affecting the other.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from shipwatch.alerts.domain import (
    CUSTOMER_EMAIL_SUBJECT,
    Contact,
    OutgoingEmail,
    RoutingOutcome,
    compose_chat_message,
    compose_customer_body,
    match_customer_notice,
)
from shipwatch.classification.domain import Issue
from shipwatch.shared.infrastructure.grafana import GrafanaOTLPExporter, get_grafana_exporter
from shipwatch.shared.infrastructure.logging import get_logger
from shipwatch.tracking.domain import BoardConfig, MonitorConfig, TrackedEntity

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class IChatClient(ABC):
    """Interface for posting internal alerts."""

    @abstractmethod
    async def post_message(self, channel_id: str, text: str, blocks: List[dict]) -> Optional[str]:
        """Post a message; returns its id, or None when it could not be delivered."""


class IMailer(ABC):
    """Interface for transactional e-mail."""

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether credentials are configured."""

    @abstractmethod
    async def send_mail(self, email: OutgoingEmail) -> str:
        """Send one message and return its Message-ID."""


class IContactLookup(ABC):
    """Interface for customer contact search."""

    @abstractmethod
    async def find_contact(self, company: str, customer_name: Optional[str] = None) -> Optional[Contact]:
        """First contact matching the company or customer name."""


def resolve_coordinator(board: BoardConfig, issue: Issue, config: MonitorConfig) -> Optional[str]:
    """Board coordinator first, then the region coordinator for the issue's route."""
    if board.coordinator:
        return board.coordinator
    return config.coordinator_for_route(issue.route)


class NotificationRouter:
    """
    Composes and dispatches alerts for classified issues.

    E-mail is attempted before the chat alert; neither may raise.
    """

    def __init__(
        self,
        chat_client: IChatClient,
        channel_id: str,
        config_provider: Callable[[], MonitorConfig],
        mailer: Optional[IMailer] = None,
        contact_lookup: Optional[IContactLookup] = None,
        from_address: Optional[str] = None,
        from_name: str = "Geomiq Support",
        reply_to: Optional[str] = None,
        bcc: Optional[str] = None,
        metrics: Optional[GrafanaOTLPExporter] = None
    ):
        self._chat = chat_client
        self._channel_id = channel_id
        self._config = config_provider
        self._mailer = mailer
        self._contacts = contact_lookup
        self._from_address = from_address
        self._from_name = from_name
        self._reply_to = reply_to
        self._bcc = bcc
        self._metrics = metrics or get_grafana_exporter()

        if mailer is None or not mailer.enabled:
            logger.info("Customer e-mail disabled: SMTP not configured")
        elif contact_lookup is None:
            logger.info("Customer e-mail disabled: contact lookup not configured")

    async def route(
        self,
        issue: Issue,
        entity: TrackedEntity,
        location: str,
        board: BoardConfig,
        allow_customer_email: bool = True
    ) -> RoutingOutcome:
        outcome = RoutingOutcome()

        if allow_customer_email:
            outcome.email_sent, outcome.email_skipped_reason = await self._email_customer(
                entity, location, board
            )
        else:
            outcome.email_skipped_reason = "not_customer_facing"

        coordinator = resolve_coordinator(board, issue, self._config())
        message = compose_chat_message(issue, entity, location, board, coordinator)

        try:
            outcome.message_id = await self._chat.post_message(self._channel_id, message.text, message.blocks)
        except Exception as e:
            logger.error(
                "Internal alert failed",
                extra={"entity_id": entity.id, "kind": issue.kind.value, "error": str(e)}
            )
        outcome.alert_sent = outcome.message_id is not None

        if outcome.alert_sent:
            logger.info(
                "Alert dispatched",
                extra={
                    "entity_id": entity.id,
                    "board": board.name,
                    "kind": issue.kind.value,
                    "source": issue.source.value,
                    "coordinator": coordinator,
                }
            )
            await self._metrics.export_alert(
                issue_kind=issue.kind.value,
                severity=issue.severity.value if issue.severity else "none",
                source=issue.source.value,
                board=board.name
            )

        return outcome

    async def _email_customer(
        self,
        entity: TrackedEntity,
        location: str,
        board: BoardConfig
    ) -> Tuple[bool, Optional[str]]:
        notice = match_customer_notice(entity.update_text)
        if notice is None:
            return False, "no_customer_action"

        if self._mailer is None or not self._mailer.enabled or not self._from_address:
            return False, "mailer_disabled"
        if self._contacts is None:
            return False, "lookup_disabled"

        company = entity.value_of(board.company_field)
        if not company:
            logger.info(
                "Company not set on item, cannot notify customer",
                extra={"entity_id": entity.id, "field": board.company_field}
            )
            return False, "no_company"

        customer_name = entity.value_of(board.customer_name_field)
        try:
            contact = await self._contacts.find_contact(company, customer_name)
        except Exception as e:
            logger.error(
                "Contact lookup failed",
                extra={"entity_id": entity.id, "company": company, "error": str(e)}
            )
            return False, "lookup_failed"

        if contact is None:
            logger.info("No contact found for company", extra={"entity_id": entity.id, "company": company})
            return False, "no_contact"

        to_name = contact.full_name or contact.email
        email = OutgoingEmail(
            from_address=self._from_address,
            from_name=self._from_name,
            to_address=contact.email,
            to_name=to_name,
            subject=CUSTOMER_EMAIL_SUBJECT,
            body=compose_customer_body(
                to_name=to_name,
                update_text=entity.update_text or "",
                part_number=entity.value_of(board.part_number_field) or "N/A",
                customer_tracking=entity.value_of(board.tracking_field) or "N/A",
                location=location,
                action=notice.action,
                signature=self._from_name
            ),
            reply_to=self._reply_to,
            bcc=self._bcc
        )

        try:
            message_id = await self._mailer.send_mail(email)
        except Exception as e:
            logger.error(
                "Customer e-mail failed",
                extra={"entity_id": entity.id, "reason": notice.reason, "error": str(e)}
            )
            return False, "send_failed"

        logger.info(
            "Customer notified",
            extra={"entity_id": entity.id, "reason": notice.reason, "message_id": message_id}
        )
        return True, None
