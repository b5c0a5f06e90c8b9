"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from shared.models import AuthenticatedUser
from modules.profiles.models import Profile


class JWTPayload(BaseModel):
    """
    Decoded JWT token payload from Supabase.

    This matches the structure of Supabase Auth JWTs.
    """

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User's email")
    email_confirmed_at: Optional[str] = Field(None, description="Email confirmation time")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
    aud: str = Field(default="authenticated", description="Audience")
    role: str = Field(default="authenticated", description="User role")

    # Supabase-specific claims
    app_metadata: dict = Field(default_factory=dict)
    user_metadata: dict = Field(default_factory=dict)


class Session(BaseModel):
    """
    Access/refresh token pair owned by the Auth Service.

    The backend only mirrors it; validity and expiry are decided upstream.
    """

    access_token: str
    refresh_token: str
    expires_at: Optional[int] = Field(None, description="Expiry as a Unix timestamp")
    user: AuthenticatedUser

    model_config = {"frozen": True}

    @property
    def expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc).timestamp() >= self.expires_at


class AuthEventType(str, Enum):
    """Auth-state notifications delivered to subscribers."""

    SIGNED_IN = "SIGNED_IN"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    SIGNED_OUT = "SIGNED_OUT"


class AuthEvent(BaseModel):
    """One auth-state change."""

    type: AuthEventType
    session: Optional[Session] = None


class OAuthStart(BaseModel):
    """Authorization URL returned by the Auth Service."""

    provider: str
    url: str


class ExchangeResult(BaseModel):
    """
    Outcome of an authorization-code exchange.

    ``recovered`` is True when the exchange itself failed but the Auth
    Service already held a valid session (e.g. the code was consumed by a
    previous delivery of the same callback).
    """

    session: Session
    recovered: bool = False

    @property
    def identity(self) -> AuthenticatedUser:
        return self.session.user


class CallbackParams(BaseModel):
    """Parameters delivered to the OAuth redirect target."""

    code: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    # Legacy implicit-flow fragment
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def has_implicit_tokens(self) -> bool:
        return bool(self.access_token and self.refresh_token)


class SignInOutcome(BaseModel):
    """Result of password sign-in or registration."""

    success: bool = False
    error: Optional[str] = None
    field_errors: Optional[dict[str, list[str]]] = None


class SessionSnapshot(BaseModel):
    """Point-in-time view of the session cache."""

    user: Optional[AuthenticatedUser] = None
    profile: Optional[Profile] = None
    session_expires_at: Optional[int] = None
    is_loading: bool = True
    is_authenticated: bool = False
