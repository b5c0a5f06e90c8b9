"""
Authentication module exceptions.

These exceptions are raised by the auth module and handled by the callback
orchestrator and the auth actions, which translate them into navigation
outcomes. Messages are safe to show to users; provider error codes stay in
``details`` and the logs.
"""

from typing import Optional

from shared.exceptions import AuthenticationError, ExternalServiceError, ValidationError


class InvalidTokenError(AuthenticationError):
    """Raised when a JWT token is invalid or malformed."""

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message, code="INVALID_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, message: str = "Authentication token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")


class MissingAuthorizationCodeError(ValidationError):
    """The redirect carried neither an authorization code nor an error."""

    def __init__(self):
        super().__init__("Missing authorization code", code="MISSING_AUTHORIZATION_CODE")


class OAuthProviderError(AuthenticationError):
    """The identity provider redirected back with an error."""

    def __init__(self, provider_error: str, description: Optional[str] = None):
        super().__init__(
            description or "Authentication failed",
            code="OAUTH_PROVIDER_ERROR",
            details={"provider_error": provider_error},
        )
        self.provider_error = provider_error


class SessionExpiredError(AuthenticationError):
    """The PKCE verifier for this sign-in attempt is missing or expired."""

    def __init__(self):
        super().__init__(
            "Your sign-in session expired. Please try again.",
            code="SESSION_EXPIRED",
        )


class CodeExchangeError(AuthenticationError):
    """The Auth Service rejected the authorization code."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Authentication failed. Please try again.",
            code="CODE_EXCHANGE_FAILED",
            details={"reason": reason} if reason else {},
        )


class CodeAlreadyClaimedError(AuthenticationError):
    """Another handler is already exchanging this authorization code."""

    def __init__(self):
        super().__init__(
            "Sign-in is already in progress.",
            code="CODE_ALREADY_CLAIMED",
        )


class InvalidCredentialsError(AuthenticationError):
    """Email/password sign-in or registration was rejected."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class AuthServiceUnavailableError(ExternalServiceError):
    """The Auth Service did not answer in time or failed unexpectedly."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        super().__init__(
            "The authentication service is unavailable. Please try again.",
            service="auth",
            code="AUTH_SERVICE_UNAVAILABLE",
            details={"operation": operation, **({"reason": reason} if reason else {})},
        )
