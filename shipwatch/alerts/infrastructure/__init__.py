"""
Alerts Infrastructure Layer
============================
"""

from shipwatch.alerts.infrastructure.external import (
    CircuitBreaker,
    CircuitState,
    HubSpotContactLookup,
    SlackClient,
    SMTPMailer,
)

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "HubSpotContactLookup",
    "SlackClient",
    "SMTPMailer",
]
