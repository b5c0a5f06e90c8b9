"""
Bearer token validation.

Validates Supabase JWT access tokens for API requests without a round trip
to the Auth Service.
"""

from datetime import datetime, timezone
from typing import Optional
import jwt

from shared.config import Settings, get_settings
from shared.exceptions import ConfigurationError
from shared.models import AuthenticatedUser

from .interfaces import IAuthService
from .models import JWTPayload
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
)


class AuthService(IAuthService):
    """
    Implementation of the token validation service.

    Uses the Supabase JWT secret (HS256, audience ``authenticated``).
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.
        """
        if not token:
            raise MissingTokenError()
        if not self._settings.supabase_jwt_secret:
            raise ConfigurationError("SUPABASE_JWT_SECRET")

        try:
            payload = jwt.decode(
                token,
                self._settings.supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        jwt_payload = JWTPayload(**payload)

        return AuthenticatedUser(
            id=jwt_payload.sub,
            email=jwt_payload.email or "",
            email_verified=jwt_payload.email_confirmed_at is not None,
            last_sign_in=datetime.fromtimestamp(jwt_payload.iat, tz=timezone.utc),
            role=jwt_payload.role if jwt_payload.role != "authenticated" else "user",
        )


# Module-level instance getter
_service_instance: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get the auth service singleton."""
    global _service_instance
    if _service_instance is None:
        _service_instance = AuthService()
    return _service_instance


def reset_auth_service() -> None:
    """Reset the auth service singleton (for testing)."""
    global _service_instance
    _service_instance = None
