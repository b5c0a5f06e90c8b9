"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Process-wide services (token validation, profile store, billing, the
exchange registry) live in the container. Anything that touches the
caller's session (cookie jar, auth gateway, verifier store) is built per
request by get_auth_context().
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator

from fastapi import Depends, Request

from shared.config import Settings, get_settings
from shared.cookies import CookieJar, CookiePolicy

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.actions import AuthActions
    from modules.auth.callback import ExchangeGuard
    from modules.auth.grace import GraceTokens
    from modules.auth.guard import RouteGuard
    from modules.auth.interfaces import IAuthGateway, IAuthService
    from modules.auth.verifier_store import VerifierStore
    from modules.billing.interfaces import IBillingService
    from modules.profiles.interfaces import IProfileService, IProfileStore


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self._auth_service: "IAuthService | None" = None
        self._profile_store: "IProfileStore | None" = None
        self._profile_service: "IProfileService | None" = None
        self._billing_service: "IBillingService | None" = None
        self._exchange_guard: "ExchangeGuard | None" = None
        self._grace_tokens: "GraceTokens | None" = None
        self._route_guard: "RouteGuard | None" = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def auth(self) -> "IAuthService":
        """Get the bearer-token validation service."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(self.settings)
        return self._auth_service

    @property
    def profile_store(self) -> "IProfileStore":
        """Get the profiles table repository (service-role client)."""
        if self._profile_store is None:
            from modules.profiles.repository import ProfileRepository
            from shared.database import get_supabase_client
            self._profile_store = ProfileRepository(get_supabase_client())
        return self._profile_store

    @property
    def profiles(self) -> "IProfileService":
        """Get the profile reconciler."""
        if self._profile_service is None:
            from modules.profiles.service import ProfileReconciler
            self._profile_service = ProfileReconciler(self.profile_store)
        return self._profile_service

    @property
    def billing(self) -> "IBillingService":
        """Get the billing service instance."""
        if self._billing_service is None:
            from modules.billing.service import BillingService
            self._billing_service = BillingService(self.profile_store, self.settings)
        return self._billing_service

    @property
    def exchange_guard(self) -> "ExchangeGuard":
        if self._exchange_guard is None:
            from modules.auth.callback import ExchangeGuard
            self._exchange_guard = ExchangeGuard(ttl_seconds=self.settings.pkce_ttl_seconds)
        return self._exchange_guard

    @property
    def grace(self) -> "GraceTokens":
        if self._grace_tokens is None:
            from modules.auth.grace import GraceTokens
            self._grace_tokens = GraceTokens(self.settings)
        return self._grace_tokens

    @property
    def route_guard(self) -> "RouteGuard":
        if self._route_guard is None:
            from modules.auth.guard import RouteGuard, RouteRules
            self._route_guard = RouteGuard(
                RouteRules.from_settings(self.settings),
                self.profiles,
                lookup_policy=self.settings.subscription_lookup_policy,
                grace=self.grace,
            )
        return self._route_guard

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._settings = None
        self._auth_service = None
        self._profile_store = None
        self._profile_service = None
        self._billing_service = None
        self._exchange_guard = None
        self._grace_tokens = None
        self._route_guard = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container(settings: Settings | None = None) -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances. When
    ``settings`` is given, the fresh container uses them instead of the
    environment.

    Primarily used for testing.
    """
    global _container
    _container = ServiceContainer(settings) if settings is not None else None


@dataclass
class AuthContext:
    """Per-request session plumbing: cookies in, cookies out."""

    jar: CookieJar
    gateway: "IAuthGateway"
    verifiers: "VerifierStore"


def build_cookie_jar(request: Request, settings: Settings) -> CookieJar:
    return CookieJar(request.cookies, CookiePolicy(secure=settings.cookie_secure))


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_app_settings() -> Settings:
    """FastAPI dependency for settings."""
    return get_container().settings


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_profile_service() -> "IProfileService":
    """FastAPI dependency for profile service."""
    return get_container().profiles


def get_billing_service() -> "IBillingService":
    """FastAPI dependency for billing service."""
    return get_container().billing


def get_exchange_guard() -> "ExchangeGuard":
    return get_container().exchange_guard


def get_grace_tokens() -> "GraceTokens":
    return get_container().grace


async def get_auth_context(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[AuthContext]:
    """
    FastAPI dependency for the request-scoped auth context.

    Routes must apply ``context.jar`` to the response they return; cookies
    queued on the jar are not written otherwise.
    """
    from modules.auth.gateway import create_auth_gateway
    from modules.auth.verifier_store import CookieVerifierStore

    jar = build_cookie_jar(request, settings)
    verifiers = CookieVerifierStore(jar, settings)
    gateway = await create_auth_gateway(jar, settings)
    try:
        yield AuthContext(jar=jar, gateway=gateway, verifiers=verifiers)
    finally:
        await gateway.aclose()


def get_auth_actions(
    context: AuthContext = Depends(get_auth_context),
    profiles: "IProfileService" = Depends(get_profile_service),
    settings: Settings = Depends(get_app_settings),
) -> "AuthActions":
    """FastAPI dependency for sign-in, registration and sign-out actions."""
    from modules.auth.actions import AuthActions
    return AuthActions(context.gateway, context.verifiers, profiles, settings)
