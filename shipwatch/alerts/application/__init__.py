"""
Alerts Application Layer
=========================
"""

from shipwatch.alerts.application.services import (
    IChatClient,
    IContactLookup,
    IMailer,
    NotificationRouter,
    resolve_coordinator,
)

__all__ = [
    "IChatClient",
    "IContactLookup",
    "IMailer",
    "NotificationRouter",
    "resolve_coordinator",
]
