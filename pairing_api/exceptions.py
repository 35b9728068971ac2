"""
Exception hierarchy for the pairing service.

Every exception carries an error code and HTTP status so the FastAPI
handlers in main.py can turn it into the standard error envelope.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class PairingServiceException(Exception):
    """Base class for all pairing service errors."""

    default_message = "Server error. Please try again!"
    default_code = "PAIRING_SERVICE_ERROR"
    default_status_code = 500

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(PairingServiceException):
    default_message = "Invalid request data"
    default_code = "VALIDATION_ERROR"
    default_status_code = 400

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        details = {"field": field} if field else None
        super().__init__(message, details=details)


class PairingRequestError(PairingServiceException):
    """
    A pairing request that could not be completed.

    The pairing page reads ``success``/``error`` from the body, so these
    failures are answered with HTTP 200 and the error envelope.
    """

    default_code = "PAIRING_REQUEST_FAILED"
    default_status_code = 200


class InvalidPhoneNumberError(ValidationError):
    default_message = "Invalid phone number!"
    default_code = "INVALID_PHONE"
    default_status_code = PairingRequestError.default_status_code

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, field="phone")


class PairingCodeError(PairingRequestError):
    """The protocol client refused to issue a pairing code."""

    default_message = "Failed to generate code. Make sure the number is registered on WhatsApp!"
    default_code = "PAIRING_CODE_FAILED"


class ProtocolClientError(PairingServiceException):
    """Wraps errors raised by the WhatsApp protocol library."""

    default_message = "WhatsApp client error"
    default_code = "PROTOCOL_CLIENT_ERROR"
    default_status_code = 502

    def __init__(self, message: Optional[str] = None, original_error: Optional[str] = None):
        details = {"original_error": original_error} if original_error else None
        super().__init__(message, details=details)


class RateLimitExceededError(PairingServiceException):
    default_message = "Too many requests. Please slow down."
    default_code = "RATE_LIMIT_EXCEEDED"
    default_status_code = 429

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        details = {"retry_after_seconds": retry_after} if retry_after else None
        super().__init__(message, details=details)


class ServiceUnavailableError(PairingServiceException):
    default_message = "Service temporarily unavailable"
    default_code = "SERVICE_UNAVAILABLE"
    default_status_code = 503

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        details = {"retry_after_seconds": retry_after} if retry_after else None
        super().__init__(message, details=details)
