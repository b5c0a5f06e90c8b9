"""
Authentication module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. This enables testing with fakes and swapping the hosted
auth provider.
"""

from typing import Protocol, Optional, runtime_checkable

from shared.models import AuthenticatedUser

from .events import AuthEventBus
from .models import ExchangeResult, OAuthStart, Session


@runtime_checkable
class IAuthService(Protocol):
    """
    Stateless bearer-token validation for API requests.
    """

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.

        Args:
            token: JWT access token from Supabase Auth

        Returns:
            AuthenticatedUser with user ID and basic info

        Raises:
            AuthenticationError: If token is invalid or expired
        """
        ...


@runtime_checkable
class IAuthGateway(Protocol):
    """
    Request-scoped wrapper around the hosted Auth Service.

    Implementations persist the session through the request's cookies and
    publish SIGNED_IN / TOKEN_REFRESHED / SIGNED_OUT on ``events``.
    """

    events: AuthEventBus

    async def start_oauth(self, provider: str, challenge: str, redirect_to: str) -> OAuthStart:
        """
        Request an authorization URL carrying ``challenge`` with method S256.

        The caller must persist the paired verifier before following the URL.

        Raises:
            ConfigurationError: If ``redirect_to`` is empty
            OAuthProviderError: If the Auth Service refuses the provider
        """
        ...

    async def exchange_code(self, code: str, verifier: str) -> ExchangeResult:
        """
        Exchange an authorization code for a session. One network call, never retried.

        Returns:
            ExchangeResult; ``recovered`` is True when the exchange failed
            but a session already existed

        Raises:
            CodeExchangeError: If the exchange failed and no session exists
        """
        ...

    async def password_sign_in(self, email: str, password: str) -> Session:
        """
        Raises:
            InvalidCredentialsError: If the credentials are rejected
        """
        ...

    async def sign_up(self, email: str, password: str) -> AuthenticatedUser:
        """
        Raises:
            InvalidCredentialsError: If registration is rejected
        """
        ...

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        """Adopt tokens delivered by the legacy implicit flow."""
        ...

    async def get_session(self) -> Optional[Session]:
        """Return the current session (refreshing it if needed) or None."""
        ...

    async def get_user(self) -> Optional[AuthenticatedUser]:
        """Re-verify the current identity with the Auth Service."""
        ...

    async def sign_out(self) -> None:
        """Invalidate the session server-side and clear session cookies."""
        ...

    async def aclose(self) -> None:
        """Stop event delivery and release the connections held for this request."""
        ...
