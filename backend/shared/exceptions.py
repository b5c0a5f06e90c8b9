"""
Base exception classes for the Keystone backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class KeystoneError(Exception):
    """
    Base exception for all Keystone errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(KeystoneError):
    """Resource not found."""

    pass


class ValidationError(KeystoneError):
    """Input validation failed."""

    pass


class AuthenticationError(KeystoneError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(KeystoneError):
    """Authorization failed (insufficient permissions)."""

    pass


class ConfigurationError(KeystoneError):
    """
    Required deployment configuration is missing.

    Fatal and operator-facing: never retried, never shown as a user error.
    """

    def __init__(self, setting: str, message: Optional[str] = None):
        super().__init__(
            message or f"Missing required configuration: {setting}",
            code="CONFIGURATION_ERROR",
            details={"setting": setting},
        )
        self.setting = setting


class ExternalServiceError(KeystoneError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
