"""
Shared error handling for the payment signing key cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorReport(BaseModel):
    """Standard error report format, used for logs and CLI output."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class PaymentKeysError(Exception):
    """Base exception for the payment key cache."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_report(self) -> ErrorReport:
        """Convert to an error report."""
        return ErrorReport(
            code=self.code,
            message=self.message,
            details=self.details
        )


class TransportFailure(PaymentKeysError):
    """The key endpoint could not be reached or answered with an HTTP error."""

    def __init__(self, message: str = "Key endpoint request failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_FAILURE", message, details)


class KeyDocumentMalformed(PaymentKeysError):
    """The key document could not be decoded or failed validation."""

    def __init__(self, message: str = "Key document is malformed", details: Optional[Dict[str, Any]] = None):
        super().__init__("KEY_DOCUMENT_MALFORMED", message, details)


class ConfigurationError(PaymentKeysError):
    """Provider settings are unusable."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)
