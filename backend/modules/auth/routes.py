"""
Auth API endpoints.

``router`` is mounted under /api/auth and answers JSON. ``callback_router``
serves the identity provider's redirect target and answers with a 303.

Every handler applies the request's cookie jar to the response it returns,
so verifier and session cookies travel with the same response that carries
the next navigation.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from api.dependencies import (
    AuthContext,
    get_app_settings,
    get_auth_actions,
    get_auth_context,
    get_exchange_guard,
    get_grace_tokens,
    get_profile_service,
)
from shared.config import Settings
from shared.models import NavigationOutcome
from shared.retry import RetryPolicy
from modules.profiles.interfaces import IProfileService

from .actions import AuthActions
from .callback import CallbackOrchestrator, ExchangeGuard, parse_callback_url
from .grace import GraceTokens
from .models import CallbackParams, SessionSnapshot, SignInOutcome
from .session_cache import SessionCache

logger = logging.getLogger(__name__)

router = APIRouter()
callback_router = APIRouter()


class CredentialsRequest(BaseModel):
    """Email/password form body. Validation happens in the action."""

    email: str = ""
    password: str = ""


class CallbackRequest(BaseModel):
    """Full redirect URL as seen by the browser, fragment included."""

    url: str


def _respond(context: AuthContext, body: BaseModel, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(body.model_dump(mode="json", exclude_none=True), status_code=status_code)
    return context.jar.apply(response)


def _absolute(settings: Settings, location: str) -> str:
    if location.startswith("/") and settings.app_url:
        return f"{settings.app_url.rstrip('/')}{location}"
    return location


def _orchestrator(
    context: AuthContext,
    profiles: IProfileService,
    settings: Settings,
    exchange_guard: ExchangeGuard,
    grace: GraceTokens,
    retry_policy: Optional[RetryPolicy] = None,
) -> CallbackOrchestrator:
    return CallbackOrchestrator(
        context.gateway,
        context.verifiers,
        profiles,
        settings,
        exchange_guard,
        retry_policy=retry_policy,
        grace=grace,
        jar=context.jar,
    )


@router.post("/oauth/{provider}", response_model=NavigationOutcome)
async def start_oauth(
    provider: str,
    context: AuthContext = Depends(get_auth_context),
    actions: AuthActions = Depends(get_auth_actions),
) -> JSONResponse:
    """
    Start an OAuth sign-in.

    Returns the provider authorization URL and sets the PKCE verifier
    cookie on the same response.
    """
    outcome = await actions.start_oauth(provider)
    return _respond(context, outcome, 200 if outcome.error is None else 400)


@callback_router.get("/auth/callback")
async def oauth_callback(
    request: Request,
    context: AuthContext = Depends(get_auth_context),
    profiles: IProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_app_settings),
    exchange_guard: ExchangeGuard = Depends(get_exchange_guard),
    grace: GraceTokens = Depends(get_grace_tokens),
) -> RedirectResponse:
    """Identity provider redirect target."""

    async def read_params() -> CallbackParams:
        query = request.query_params
        return CallbackParams(
            code=query.get("code"),
            error=query.get("error"),
            error_description=query.get("error_description"),
        )

    orchestrator = _orchestrator(
        context, profiles, settings, exchange_guard, grace, retry_policy=RetryPolicy.no_retry()
    )
    result = await orchestrator.handle(read_params)
    response = RedirectResponse(_absolute(settings, result.redirect_to), status_code=303)
    return context.jar.apply(response)


@router.post("/callback", response_model=NavigationOutcome)
async def client_callback(
    body: CallbackRequest,
    context: AuthContext = Depends(get_auth_context),
    profiles: IProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_app_settings),
    exchange_guard: ExchangeGuard = Depends(get_exchange_guard),
    grace: GraceTokens = Depends(get_grace_tokens),
) -> JSONResponse:
    """
    Client-mediated callback.

    The callback page posts the URL it landed on, fragment included, and
    follows the returned ``url``. Missing codes and in-flight duplicates
    are retried with the configured bounded policy.
    """

    async def read_params() -> CallbackParams:
        return parse_callback_url(body.url)

    orchestrator = _orchestrator(context, profiles, settings, exchange_guard, grace)
    result = await orchestrator.handle(read_params)
    return _respond(context, result.to_outcome(), 200 if result.error is None else 400)


@router.post("/login", response_model=SignInOutcome)
async def login(
    body: CredentialsRequest,
    context: AuthContext = Depends(get_auth_context),
    actions: AuthActions = Depends(get_auth_actions),
) -> JSONResponse:
    outcome = await actions.password_sign_in(body.email, body.password)
    return _respond(context, outcome, 200 if outcome.success else 400)


@router.post("/register", response_model=SignInOutcome)
async def register(
    body: CredentialsRequest,
    context: AuthContext = Depends(get_auth_context),
    actions: AuthActions = Depends(get_auth_actions),
) -> JSONResponse:
    """Create an account, provision its profile and sign it in."""
    outcome = await actions.register(body.email, body.password)
    return _respond(context, outcome, 200 if outcome.success else 400)


@router.post("/logout", response_model=NavigationOutcome)
async def logout(
    context: AuthContext = Depends(get_auth_context),
    actions: AuthActions = Depends(get_auth_actions),
) -> JSONResponse:
    outcome = await actions.sign_out()
    return _respond(context, outcome, 200 if outcome.error is None else 502)


@router.get("/session", response_model=SessionSnapshot)
async def current_session(
    context: AuthContext = Depends(get_auth_context),
    profiles: IProfileService = Depends(get_profile_service),
) -> JSONResponse:
    """
    Snapshot of the session for the current cookies.

    Loads the session and profile the same way the browser-side cache does,
    with bounded retries; refreshed session cookies are written back.
    """
    cache = SessionCache(context.gateway, profiles)
    try:
        await cache.initialize()
        snapshot = cache.snapshot()
    finally:
        cache.close()
    return _respond(context, snapshot)
