"""
Core Exceptions
================

Custom exceptions for the application.

Collaborator failures are raised as ``ExternalServiceException`` subclasses
and caught at the call site; they never reach the webhook caller.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class BoardAPIException(ExternalServiceException):
    """Exception for monday.com API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Board API", message, details)


class ChatException(ExternalServiceException):
    """Exception for Slack API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Slack", message, details)


class MailException(ExternalServiceException):
    """Exception for SMTP failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("SMTP", message, details)


class ContactLookupException(ExternalServiceException):
    """Exception for contact directory failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Contact Lookup", message, details)


class ModelAnalysisError(DomainException):
    """
    The text-generation service could not produce a usable analysis.

    Raised for missing clients, call failures, non-JSON replies and schema
    mismatches alike; the classifier strategy maps it to the rule engine.
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        self.raw_response = raw_response
        super().__init__(message, {"raw_response": (raw_response or "")[:500]})
