"""
Request authentication dependencies.

Accepts a Supabase access token as a bearer header, or falls back to the
session held in the request's auth cookies.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.config import Settings
from shared.exceptions import AuthenticationError
from shared.models import AuthenticatedUser
from modules.auth.interfaces import IAuthService
from modules.auth.storage import SESSION_COOKIE_PREFIX

from ..dependencies import build_cookie_jar, get_app_settings, get_auth_service

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(HTTPException):
    """Authentication error with consistent format."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def _cookie_session_user(request: Request, settings: Settings) -> Optional[AuthenticatedUser]:
    """Verify the cookie session with the Auth Service, if there is one."""
    if not any(name.startswith(SESSION_COOKIE_PREFIX) for name in request.cookies):
        return None

    from modules.auth.gateway import create_auth_gateway

    gateway = await create_auth_gateway(build_cookie_jar(request, settings), settings)
    try:
        return await gateway.get_user()
    finally:
        await gateway.aclose()


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: IAuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is not None:
        try:
            return await auth_service.validate_token(credentials.credentials)
        except AuthenticationError as e:
            raise AuthError(e.message)

    user = await _cookie_session_user(request, settings)
    if user is None:
        raise AuthError("Missing authorization header")
    return user

