"""
Custom exception classes for the QR check-in API.

Provides centralized error handling with consistent error messages,
status codes, and logging integration.
"""

from typing import Any

from fastapi import status


class CheckinAPIException(Exception):
    """Base exception class for all check-in application errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)


class DecodeError(CheckinAPIException):
    """Raised when a scanned QR payload carries no usable attendee identifier."""

    def __init__(self, message: str = "QR payload has no usable identifier", payload_format: str | None = None):
        details = {}
        if payload_format:
            details["payload_format"] = payload_format

        super().__init__(
            message=message,
            error_code="QR_DECODE_ERROR",
            details=details,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class ValidationError(CheckinAPIException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict[str, Any] | None = None,
    ):
        validation_details = details or {}
        if field:
            validation_details["field"] = field
        if value is not None:
            validation_details["invalid_value"] = str(value)

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=validation_details,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class NotFoundError(CheckinAPIException):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if message is None:
            message = f"{resource_type} not found"

        not_found_details = {"resource_type": resource_type}
        if details:
            not_found_details.update(details)

        super().__init__(
            message=message,
            error_code="RESOURCE_NOT_FOUND",
            details=not_found_details,
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ForbiddenError(CheckinAPIException):
    """Raised for inactive attendees and unauthorized attendee/event pairs."""

    def __init__(self, message: str = "Access not permitted", reason: str | None = None):
        details = {}
        if reason:
            details["reason"] = reason

        super().__init__(
            message=message,
            error_code="FORBIDDEN",
            details=details,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class AuthenticationError(CheckinAPIException):
    """Raised when the API key is missing or wrong."""

    def __init__(self, message: str = "A valid API key is required"):
        super().__init__(
            message=message,
            error_code="AUTHENTICATION_REQUIRED",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ConflictError(CheckinAPIException):
    """Raised when a write collides with a uniqueness constraint."""

    def __init__(
        self,
        message: str = "Record already exists",
        operation: str | None = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            error_code="CONFLICT",
            details=details,
            status_code=status.HTTP_409_CONFLICT,
        )


class DatabaseError(CheckinAPIException):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: str | None = None,
        table: str | None = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(
            message=message,
            error_code="DATABASE_ERROR",
            details=details,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class ServiceUnavailableError(CheckinAPIException):
    """Raised when the service is draining connections for shutdown."""

    def __init__(self, message: str = "Service is shutting down"):
        super().__init__(
            message=message,
            error_code="SERVICE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


class ConfigurationError(CheckinAPIException):
    """Raised when application configuration is invalid."""

    def __init__(
        self, message: str, setting: str | None = None, value: str | None = None
    ):
        details = {}
        if setting:
            details["setting"] = setting
        if value:
            details["invalid_value"] = value

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# Convenience functions for common error scenarios
def forbidden(message: str = "Access not permitted", reason: str | None = None):
    """Create and raise a forbidden error."""
    raise ForbiddenError(message=message, reason=reason)
