"""
Unit tests for custom exceptions.
"""

import pytest

from pairing_api.exceptions import (
    InvalidPhoneNumberError,
    PairingCodeError,
    PairingRequestError,
    PairingServiceException,
    ProtocolClientError,
    RateLimitExceededError,
    ServiceUnavailableError,
    ValidationError,
)


class TestPairingServiceException:
    """Tests for base PairingServiceException."""

    def test_basic_exception(self):
        """Test basic exception creation."""
        exc = PairingServiceException("Test error")

        assert str(exc) == "Test error"
        assert exc.message == "Test error"
        assert exc.code == "PAIRING_SERVICE_ERROR"
        assert exc.status_code == 500

    def test_default_message(self):
        """Test the generic message shown to users."""
        exc = PairingServiceException()

        assert exc.message == "Server error. Please try again!"

    def test_exception_with_details(self):
        """Test exception with additional details."""
        details = {"field": "test", "value": 123}
        exc = PairingServiceException("Test error", details=details)

        assert exc.details == details

    def test_to_dict(self):
        """Test converting exception to the error envelope."""
        exc = PairingServiceException("Test error", code="TEST_CODE", details={"key": "value"})
        result = exc.to_dict()

        assert result == {
            "success": False,
            "error": "Test error",
            "code": "TEST_CODE",
            "details": {"key": "value"},
        }


class TestValidationErrors:
    """Tests for validation errors."""

    def test_validation_error_with_field(self):
        exc = ValidationError("Bad value", field="session")

        assert exc.status_code == 400
        assert exc.code == "VALIDATION_ERROR"
        assert exc.details == {"field": "session"}

    def test_validation_error_without_field(self):
        exc = ValidationError()

        assert exc.message == "Invalid request data"
        assert exc.details == {}

    def test_invalid_phone_defaults(self):
        exc = InvalidPhoneNumberError()

        assert exc.message == "Invalid phone number!"
        assert exc.code == "INVALID_PHONE"
        assert exc.status_code == 200
        assert exc.details == {"field": "phone"}

    def test_invalid_phone_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise InvalidPhoneNumberError("Phone number is required!")


class TestUpstreamErrors:
    """Tests for errors coming from the WhatsApp side."""

    def test_pairing_code_error(self):
        exc = PairingCodeError()

        assert exc.status_code == 200
        assert exc.code == "PAIRING_CODE_FAILED"
        assert exc.message == (
            "Failed to generate code. Make sure the number is registered on WhatsApp!"
        )

    def test_pairing_request_error_answers_200(self):
        """Pairing failures reach the page as a 200 with success false."""
        exc = PairingRequestError()

        assert exc.status_code == 200
        assert exc.message == "Server error. Please try again!"
        assert exc.to_dict()["success"] is False
        assert issubclass(PairingCodeError, PairingRequestError)

    def test_protocol_client_error_keeps_original(self):
        exc = ProtocolClientError("Pairing code request failed", original_error="timeout")

        assert exc.status_code == 502
        assert exc.details == {"original_error": "timeout"}


class TestRetryableErrors:
    """Tests for errors carrying a retry hint."""

    def test_rate_limit_error(self):
        exc = RateLimitExceededError(retry_after=30)

        assert exc.status_code == 429
        assert exc.code == "RATE_LIMIT_EXCEEDED"
        assert exc.retry_after == 30
        assert exc.details == {"retry_after_seconds": 30}

    def test_service_unavailable(self):
        exc = ServiceUnavailableError("Starting up", retry_after=5)

        assert exc.status_code == 503
        assert exc.message == "Starting up"
        assert exc.retry_after == 5

    def test_all_inherit_from_base(self):
        for exc_class in (
            ValidationError,
            InvalidPhoneNumberError,
            PairingCodeError,
            PairingRequestError,
            ProtocolClientError,
            RateLimitExceededError,
            ServiceUnavailableError,
        ):
            assert issubclass(exc_class, PairingServiceException)
