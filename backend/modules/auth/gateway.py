"""
Auth Gateway backed by Supabase Auth.

One gateway is built per request. Its Supabase client keeps the session in
the request's cookies, so any token refresh or sign-in performed while
handling the request is written back on the response.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Optional, TypeVar

from supabase import AsyncClient, AuthApiError, AuthError

from shared.config import Settings
from shared.cookies import CookieJar
from shared.database import create_supabase_auth_client
from shared.exceptions import ConfigurationError
from shared.models import AuthenticatedUser

from .events import AuthEventBus
from .exceptions import (
    AuthServiceUnavailableError,
    CodeExchangeError,
    InvalidCredentialsError,
    OAuthProviderError,
)
from .interfaces import IAuthGateway
from .models import AuthEvent, AuthEventType, ExchangeResult, OAuthStart, Session
from .pkce import CHALLENGE_METHOD
from .storage import CookieSessionStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FORWARDED_EVENTS = {e.value for e in AuthEventType}


def _to_identity(user: Any) -> AuthenticatedUser:
    """Convert a Supabase auth user into an AuthenticatedUser."""
    last_sign_in = getattr(user, "last_sign_in_at", None)
    created_at = getattr(user, "created_at", None)
    return AuthenticatedUser(
        id=str(user.id),
        email=getattr(user, "email", None) or "",
        email_verified=getattr(user, "email_confirmed_at", None) is not None,
        created_at=created_at if isinstance(created_at, datetime) else None,
        last_sign_in=last_sign_in if isinstance(last_sign_in, datetime) else None,
    )


def _to_session(session: Any) -> Session:
    """Convert a Supabase auth session into a Session."""
    return Session(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=getattr(session, "expires_at", None),
        user=_to_identity(session.user),
    )


class SupabaseAuthGateway(IAuthGateway):
    """
    Implementation of IAuthGateway over a request-scoped Supabase client.

    Every call to the Auth Service is bounded by
    ``auth_request_timeout_seconds``.
    """

    def __init__(self, client: AsyncClient, settings: Settings):
        self._client = client
        self._timeout = settings.auth_request_timeout_seconds
        self.events = AuthEventBus()
        self._client.auth.on_auth_state_change(self._on_auth_state_change)

    def _on_auth_state_change(self, event: str, session: Any) -> None:
        if event not in _FORWARDED_EVENTS:
            return
        self.events.publish(
            AuthEvent(
                type=AuthEventType(event),
                session=_to_session(session) if session is not None else None,
            )
        )

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Auth service call %s timed out after %.1fs", operation, self._timeout)
            raise AuthServiceUnavailableError(operation, "timeout")

    async def start_oauth(self, provider: str, challenge: str, redirect_to: str) -> OAuthStart:
        if not redirect_to:
            raise ConfigurationError("APP_URL")
        try:
            response = await self._call(
                "sign_in_with_oauth",
                self._client.auth.sign_in_with_oauth(
                    {
                        "provider": provider,
                        "options": {
                            "redirect_to": redirect_to,
                            "query_params": {
                                "code_challenge": challenge,
                                "code_challenge_method": CHALLENGE_METHOD,
                                "access_type": "offline",
                                "prompt": "consent",
                            },
                        },
                    }
                ),
            )
        except AuthError as e:
            logger.error("OAuth start for %s rejected: %s", provider, e)
            raise OAuthProviderError(getattr(e, "code", None) or "oauth_start_failed")
        if not response.url:
            raise OAuthProviderError("no_authorization_url")
        return OAuthStart(provider=provider, url=response.url)

    async def exchange_code(self, code: str, verifier: str) -> ExchangeResult:
        try:
            response = await self._call(
                "exchange_code_for_session",
                self._client.auth.exchange_code_for_session(
                    {"auth_code": code, "code_verifier": verifier}
                ),
            )
            if response.session is None or response.user is None:
                raise CodeExchangeError("no session returned")
            return ExchangeResult(session=_to_session(response.session))
        except (AuthError, CodeExchangeError, AuthServiceUnavailableError) as e:
            logger.warning("Code exchange failed: %s", e)
            # The code may already have been consumed by an earlier delivery
            existing = await self.get_session()
            if existing is not None:
                logger.info("Code exchange failed but a session already exists; continuing")
                return ExchangeResult(session=existing, recovered=True)
            raise CodeExchangeError(getattr(e, "code", None) or str(e)) from e

    async def password_sign_in(self, email: str, password: str) -> Session:
        try:
            response = await self._call(
                "sign_in_with_password",
                self._client.auth.sign_in_with_password({"email": email, "password": password}),
            )
        except AuthApiError as e:
            raise InvalidCredentialsError(e.message or "Invalid email or password")
        except AuthError as e:
            raise AuthServiceUnavailableError("sign_in_with_password", str(e))
        if response.session is None:
            raise InvalidCredentialsError()
        return _to_session(response.session)

    async def sign_up(self, email: str, password: str) -> AuthenticatedUser:
        try:
            response = await self._call(
                "sign_up",
                self._client.auth.sign_up({"email": email, "password": password}),
            )
        except AuthApiError as e:
            raise InvalidCredentialsError(e.message or "Registration failed")
        except AuthError as e:
            raise AuthServiceUnavailableError("sign_up", str(e))
        if response.user is None:
            raise InvalidCredentialsError("Registration failed. Please try again.")
        return _to_identity(response.user)

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        try:
            response = await self._call(
                "set_session",
                self._client.auth.set_session(access_token, refresh_token),
            )
        except AuthError as e:
            raise CodeExchangeError(getattr(e, "code", None) or "invalid_implicit_tokens") from e
        if response.session is None:
            raise CodeExchangeError("no session returned")
        return _to_session(response.session)

    async def get_session(self) -> Optional[Session]:
        try:
            session = await self._call("get_session", self._client.auth.get_session())
        except AuthApiError as e:
            # Refresh token rejected: the session is gone
            logger.info("Stored session is no longer valid: %s", e.message)
            return None
        except AuthError as e:
            raise AuthServiceUnavailableError("get_session", str(e))
        if session is None:
            return None
        return _to_session(session)

    async def get_user(self) -> Optional[AuthenticatedUser]:
        try:
            response = await self._call("get_user", self._client.auth.get_user())
        except AuthApiError as e:
            logger.info("Auth service rejected the current user: %s", e.message)
            return None
        except AuthError as e:
            raise AuthServiceUnavailableError("get_user", str(e))
        if response is None or response.user is None:
            return None
        return _to_identity(response.user)

    async def sign_out(self) -> None:
        try:
            await self._call("sign_out", self._client.auth.sign_out())
        except AuthError as e:
            raise AuthServiceUnavailableError("sign_out", str(e))

    async def aclose(self) -> None:
        self.events.close()
        await self._client.auth.close()


async def create_auth_gateway(jar: CookieJar, settings: Settings) -> SupabaseAuthGateway:
    """Build a gateway whose session lives in ``jar``."""
    client = await create_supabase_auth_client(CookieSessionStorage(jar), settings)
    return SupabaseAuthGateway(client, settings)
