"""
Unit tests for Exception classes.

This module contains unit tests for custom exception classes used
throughout the application.
"""

import pytest
from fastapi import HTTPException

from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    AIServiceUnavailableError,
    AITimeoutError,
    map_ai_error,
)
from app.exceptions.base import BaseAppException, ConflictError, NotFoundError, ValidationError
from app.exceptions.chat import (
    ChatNotFoundError,
    DataIntegrityViolationError,
    DuplicateIdError,
    TransactionFailureError,
    UnsupportedPartTypeError,
)


class TestBaseAppException:
    """Test cases for BaseAppException."""

    def test_base_exception_default_values(self):
        """Test BaseAppException with default values."""
        exc = BaseAppException("Test error")

        assert exc.message == "Test error"
        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.details == {}
        assert exc.detail == {"message": "Test error", "error_code": "INTERNAL_ERROR", "details": {}}

    def test_base_exception_custom_values(self):
        """Test BaseAppException with custom values."""
        details = {"field": "value", "context": "test"}
        exc = BaseAppException(message="Custom error", status_code=400, error_code="CUSTOM_ERROR", details=details)

        assert exc.status_code == 400
        assert exc.error_code == "CUSTOM_ERROR"
        assert exc.detail["details"] == details

    def test_base_exception_inheritance(self):
        """Test that BaseAppException inherits from HTTPException."""
        assert isinstance(BaseAppException("Test error"), HTTPException)

    def test_str_is_message(self):
        """The string form is the human readable message."""
        assert str(BaseAppException("Readable")) == "Readable"

    def test_generic_status_codes(self):
        """Generic errors carry their HTTP status."""
        assert NotFoundError().status_code == 404
        assert ConflictError().status_code == 409
        assert ValidationError().status_code == 422


class TestChatExceptions:
    """Test cases for chat persistence exceptions."""

    def test_unsupported_part_type(self):
        """Unsupported parts are client errors naming the type."""
        exc = UnsupportedPartTypeError("tool-call", ("text", "file"))

        assert isinstance(exc, ValidationError)
        assert exc.status_code == 422
        assert exc.error_code == "UNSUPPORTED_PART_TYPE"
        assert exc.part_type == "tool-call"
        assert exc.message == "Unsupported part type: tool-call. Supported types: text, file"
        assert exc.details["supported_types"] == ["text", "file"]

    def test_data_integrity_violation(self):
        """Integrity violations name the missing column."""
        exc = DataIntegrityViolationError("file", "file_url", part_id="p1")

        assert exc.status_code == 500
        assert exc.error_code == "DATA_INTEGRITY_VIOLATION"
        assert exc.details == {"part_type": "file", "column": "file_url", "part_id": "p1"}

    def test_duplicate_id(self):
        """Duplicate identifiers are conflicts."""
        exc = DuplicateIdError("Chat", "chat-1")

        assert isinstance(exc, ConflictError)
        assert exc.status_code == 409
        assert exc.error_code == "DUPLICATE_ID"
        assert exc.message == "Chat with id 'chat-1' already exists"

    def test_transaction_failure(self):
        """Transaction failures name the operation."""
        exc = TransactionFailureError("upsert_message", "constraint failed")

        assert exc.status_code == 500
        assert exc.error_code == "TRANSACTION_FAILURE"
        assert exc.message == "Transaction failed during upsert_message: constraint failed"

    def test_chat_not_found(self):
        """Missing chats are 404 errors."""
        exc = ChatNotFoundError("chat-1")

        assert isinstance(exc, NotFoundError)
        assert exc.status_code == 404
        assert exc.error_code == "CHAT_NOT_FOUND"
        assert exc.details == {"chat_id": "chat-1"}


class TestAIExceptions:
    """Test cases for AI-related exceptions."""

    @pytest.mark.parametrize(
        ("exc_class", "status_code", "error_code"),
        [
            (AIServiceError, 502, "AI_SERVICE_ERROR"),
            (AIServiceUnavailableError, 503, "AI_SERVICE_UNAVAILABLE"),
            (AIQuotaExceededError, 429, "AI_QUOTA_EXCEEDED"),
            (AITimeoutError, 504, "AI_TIMEOUT"),
            (AIConfigurationError, 500, "AI_CONFIGURATION_ERROR"),
            (AIContentFilterError, 422, "AI_CONTENT_FILTERED"),
            (AIRateLimitError, 429, "AI_RATE_LIMITED"),
        ],
    )
    def test_status_and_code(self, exc_class, status_code, error_code):
        """Each AI error has its own status and code."""
        exc = exc_class("Something happened")

        assert exc.message == "Something happened"
        assert exc.status_code == status_code
        assert exc.error_code == error_code
        assert isinstance(exc, AIServiceError)

    def test_rate_limit_retry_after(self):
        """The retry delay is included in the details."""
        exc = AIRateLimitError("Slow down", retry_after=30)

        assert exc.details["retry_after"] == 30

    def test_rate_limit_error_with_details(self):
        """Test AIRateLimitError with retry details."""
        details = {"retry_after": 60, "limit": 100}
        exc = AIRateLimitError("Rate limit exceeded", details=details)

        assert exc.details == details

    def test_map_ai_error(self):
        """Known error kinds map to their classes."""
        exc = map_ai_error("quota_exceeded", "Out of quota", {"retry_after": 5})

        assert isinstance(exc, AIQuotaExceededError)
        assert exc.details == {"retry_after": 5}

    def test_map_unknown_ai_error(self):
        """Unknown kinds map to the base AI error."""
        exc = map_ai_error("mystery", "Unknown")

        assert type(exc) is AIServiceError


class TestExceptionChaining:
    """Test exception chaining and context."""

    def test_exception_chaining(self):
        """Test that exceptions can be chained properly."""
        with pytest.raises(TransactionFailureError) as exc_info:
            try:
                raise ValueError("Original error")
            except ValueError as e:
                raise TransactionFailureError("delete_chat", str(e)) from e

        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_exception_as_http_exception(self):
        """Custom exceptions are raisable as HTTP exceptions."""
        with pytest.raises(HTTPException) as exc_info:
            raise ChatNotFoundError("chat-1")

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail["error_code"] == "CHAT_NOT_FOUND"
