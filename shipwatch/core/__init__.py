"""
Core Module
============

Shared core utilities and abstractions used across the application.
"""

from shipwatch.core.exceptions import (
    ApplicationException,
    DomainException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    BoardAPIException,
    ChatException,
    MailException,
    ContactLookupException,
    ModelAnalysisError,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "BoardAPIException",
    "ChatException",
    "MailException",
    "ContactLookupException",
    "ModelAnalysisError",
]
