"""
Alerts Domain Layer
====================
"""

from shipwatch.alerts.domain.entities import (
    CARRIER_EMOJI,
    CUSTOMER_ACTIONS,
    CUSTOMER_EMAIL_SUBJECT,
    CUSTOMER_NOTIFICATION_PATTERNS,
    DEFAULT_CUSTOMER_ACTION,
    ChatMessage,
    Contact,
    CustomerNotice,
    OutgoingEmail,
    RoutingOutcome,
    compose_chat_message,
    compose_customer_body,
    match_customer_notice,
    mention,
)

__all__ = [
    "CARRIER_EMOJI",
    "CUSTOMER_ACTIONS",
    "CUSTOMER_EMAIL_SUBJECT",
    "CUSTOMER_NOTIFICATION_PATTERNS",
    "DEFAULT_CUSTOMER_ACTION",
    "ChatMessage",
    "Contact",
    "CustomerNotice",
    "OutgoingEmail",
    "RoutingOutcome",
    "compose_chat_message",
    "compose_customer_body",
    "match_customer_notice",
    "mention",
]
