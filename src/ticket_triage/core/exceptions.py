"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationException(ApplicationException):
    """Exception for validation errors."""


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


class GatewayError(ExternalServiceException):
    """A call to the ticketing board or the inference backend failed."""


class TicketingGatewayError(GatewayError):
    """Exception for ticketing board (Trello) failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Ticketing Gateway", message, details)


class InferenceGatewayError(GatewayError):
    """Exception for LLM inference failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Inference Gateway", message, details)
