"""
Alerts Domain Entities
=======================

Messages the router sends and the rules deciding whether a customer
should be told about a failed delivery.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern

from shipwatch.classification.domain import Issue
from shipwatch.config import Carrier, IssueSource
from shipwatch.tracking.domain import BoardConfig, TrackedEntity

# Evaluated in order; the first match decides the action string.
CUSTOMER_NOTIFICATION_PATTERNS: Dict[str, Pattern] = {
    "premisesClosed": re.compile(
        r"(consignee premises closed|premises closed|office closed|business closed)",
        re.IGNORECASE
    ),
    "consigneeUnavailable": re.compile(
        r"(consignee (unavailable|not available)|recipient unavailable|no one (available|home)"
        r"|customer not available|no answer|no response( at consignee address)?|not answering)",
        re.IGNORECASE
    ),
    "refusedDelivery": re.compile(
        r"(refused delivery|delivery refused|consignee refused)",
        re.IGNORECASE
    ),
    "incorrectAddress": re.compile(
        r"(address incorrect|incorrect address|address insufficient|invalid address)",
        re.IGNORECASE
    ),
}

CUSTOMER_ACTIONS: Dict[str, str] = {
    "premisesClosed": "Please arrange to be available during business hours or provide alternative delivery instructions.",
    "consigneeUnavailable": "Please ensure someone is available to receive the package or arrange alternative delivery.",
    "refusedDelivery": "Please contact the carrier if you wish to arrange redelivery.",
    "incorrectAddress": "Please verify and provide the correct delivery address.",
    "deliveryAttempt": "Please arrange to be available or provide alternative delivery instructions.",
}

DEFAULT_CUSTOMER_ACTION = "Please contact the carrier to resolve this delivery issue."

CUSTOMER_EMAIL_SUBJECT = "Delivery Update Required"

CARRIER_EMOJI = {
    Carrier.UPS: "📦",
    Carrier.DHL: "🚚",
    Carrier.FEDEX: "✈️",
}


@dataclass(frozen=True)
class CustomerNotice:
    """Why a customer needs to act, and what they should do."""
    reason: str
    action: str


def match_customer_notice(update_text: Optional[str]) -> Optional[CustomerNotice]:
    text = (update_text or "").lower()
    for reason, pattern in CUSTOMER_NOTIFICATION_PATTERNS.items():
        if pattern.search(text):
            return CustomerNotice(reason, CUSTOMER_ACTIONS.get(reason, DEFAULT_CUSTOMER_ACTION))
    if "delivery attempted" in text:
        return CustomerNotice("deliveryAttempt", CUSTOMER_ACTIONS["deliveryAttempt"])
    return None


@dataclass(frozen=True)
class Contact:
    """A customer contact found by the lookup."""
    email: str
    first_name: str = ""
    last_name: str = ""
    company: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class ChatMessage:
    text: str
    blocks: List[dict]


@dataclass(frozen=True)
class OutgoingEmail:
    from_address: str
    from_name: str
    to_address: str
    to_name: str
    subject: str
    body: str
    reply_to: Optional[str] = None
    bcc: Optional[str] = None


@dataclass
class RoutingOutcome:
    """What the router managed to deliver for one issue."""
    alert_sent: bool = False
    message_id: Optional[str] = None
    email_sent: bool = False
    email_skipped_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "alert_sent": self.alert_sent,
            "message_id": self.message_id,
            "email_sent": self.email_sent,
            "email_skipped_reason": self.email_skipped_reason,
        }


def mention(user_id: Optional[str]) -> str:
    return f"<@{user_id}>" if user_id else ""


def compose_chat_message(
    issue: Issue,
    entity: TrackedEntity,
    location: str,
    board: BoardConfig,
    coordinator: Optional[str] = None
) -> ChatMessage:
    """Summary line (with coordinator mention) plus a details block and divider."""
    summary = f"{entity.name} is {issue.phrase} from {location}. Please review."
    if coordinator:
        summary = f"{mention(coordinator)} {summary}"

    analysis_emoji = "🤖" if issue.source == IssueSource.MODEL else "🔍"
    details = [
        f"{CARRIER_EMOJI.get(issue.carrier, '📫')} Item: {entity.name}",
        f"📋 Board: {board.name}",
        f"📝 Latest Update: {entity.update_text or ''}",
        f"📍 Current Location: {location}",
        f"🔍 Issue Type: {issue.phrase}",
        f"⚡ Severity: {issue.severity.value if issue.severity else 'n/a'}",
        f"🚛 Carrier: {issue.carrier.value}",
        f"{analysis_emoji} Analysis: {issue.reason}",
    ]
    due_date = entity.value_of(board.due_date_field)
    if due_date:
        details.append(f"📅 Delivery Due: {due_date}")

    return ChatMessage(
        text=summary,
        blocks=[
            {"type": "section", "text": {"type": "mrkdwn", "text": summary}},
            {"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(details)}},
            {"type": "divider"},
        ]
    )


def compose_customer_body(
    to_name: str,
    update_text: str,
    part_number: str,
    customer_tracking: str,
    location: str,
    action: str,
    signature: str
) -> str:
    return (
        f"Dear {to_name},\n"
        "\n"
        "We attempted to deliver your parts, but the delivery was unsuccessful.\n"
        "\n"
        f"Carrier Update: {update_text}\n"
        f"Part Number: {part_number}\n"
        f"Customer Tracking: {customer_tracking}\n"
        f"Current Location: {location}\n"
        f"Action Required: {action}\n"
        "\n"
        "Please contact your carrier to arrange redelivery or provide alternative delivery instructions.\n"
        "\n"
        "Best regards,\n"
        f"{signature}"
    )
