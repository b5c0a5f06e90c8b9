"""
Route guard.

Decides, per page navigation, whether to let the request through or
redirect it, using only the gateway's session lookup and (for premium
routes) the profile store's subscription status.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from urllib.parse import quote

from pydantic import BaseModel

from shared.config import Settings, SubscriptionLookupPolicy
from modules.profiles.exceptions import ProfileStoreError
from modules.profiles.interfaces import IProfileService

from .exceptions import AuthServiceUnavailableError
from .grace import GraceTokens
from .interfaces import IAuthGateway

logger = logging.getLogger(__name__)


class GuardAction(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"


class GuardDecision(BaseModel):
    action: GuardAction
    location: Optional[str] = None
    reason: str

    @classmethod
    def allow(cls, reason: str) -> "GuardDecision":
        return cls(action=GuardAction.ALLOW, reason=reason)

    @classmethod
    def redirect(cls, location: str, reason: str) -> "GuardDecision":
        return cls(action=GuardAction.REDIRECT, location=location, reason=reason)


def _under(path: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/") or "/"
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True)
class RouteRules:
    """Path lists the guard matches against."""

    protected_prefixes: tuple[str, ...]
    auth_paths: tuple[str, ...]
    subscription_prefixes: tuple[str, ...]
    login_path: str
    landing_path: str
    pricing_path: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouteRules":
        return cls(
            protected_prefixes=tuple(settings.protected_prefixes),
            auth_paths=tuple(settings.auth_paths),
            subscription_prefixes=tuple(settings.subscription_prefixes),
            login_path=settings.login_path,
            landing_path=settings.landing_path,
            pricing_path=settings.pricing_path,
        )

    def is_protected(self, path: str) -> bool:
        return any(_under(path, p) for p in self.protected_prefixes)

    def is_auth_page(self, path: str) -> bool:
        return path in self.auth_paths

    def requires_subscription(self, path: str) -> bool:
        return any(_under(path, p) for p in self.subscription_prefixes)

    def applies(self, path: str) -> bool:
        """True if ``path`` falls under any rule."""
        return self.is_protected(path) or self.requires_subscription(path) or self.is_auth_page(path)


class RouteGuard:
    """
    Evaluates navigation rules.

    When the subscription lookup itself fails, the configured
    SubscriptionLookupPolicy decides; the default FAIL_OPEN lets the user
    through and logs a warning every time it does so.
    """

    def __init__(
        self,
        rules: RouteRules,
        profiles: IProfileService,
        lookup_policy: SubscriptionLookupPolicy = SubscriptionLookupPolicy.FAIL_OPEN,
        grace: Optional[GraceTokens] = None,
    ):
        self._rules = rules
        self._profiles = profiles
        self._lookup_policy = lookup_policy
        self._grace = grace

    def _login_redirect(self, path: str, query: str) -> str:
        target = f"{path}?{query}" if query else path
        return f"{self._rules.login_path}?redirect={quote(target, safe='/')}"

    async def evaluate(
        self,
        path: str,
        gateway: IAuthGateway,
        *,
        query: str = "",
        grace_token: Optional[str] = None,
    ) -> GuardDecision:
        rules = self._rules
        protected = rules.is_protected(path)
        gated = rules.requires_subscription(path)
        auth_page = rules.is_auth_page(path)

        if not rules.applies(path):
            return GuardDecision.allow("public route")

        try:
            session = await gateway.get_session()
        except AuthServiceUnavailableError as e:
            logger.warning("Session lookup failed for %s, treating as signed out: %s", path, e.details)
            session = None

        if session is None:
            if not (protected or gated):
                return GuardDecision.allow("auth page without session")
            if not gated and self._grace is not None and self._grace.verify(grace_token):
                logger.info("Allowing %s on a post-auth grace token", path)
                return GuardDecision.allow("post-auth grace")
            return GuardDecision.redirect(self._login_redirect(path, query), "no session")

        if auth_page:
            return GuardDecision.redirect(rules.landing_path, "already signed in")

        if gated:
            return await self._check_subscription(path, gateway)

        return GuardDecision.allow("session present")

    async def _check_subscription(self, path: str, gateway: IAuthGateway) -> GuardDecision:
        try:
            identity = await gateway.get_user()
            if identity is None:
                return GuardDecision.redirect(self._login_redirect(path, ""), "identity not verified")
            status = await self._profiles.get_subscription_status(identity.id)
        except (ProfileStoreError, AuthServiceUnavailableError) as e:
            return self._on_lookup_failure(path, e)

        if not status.grants_access:
            return GuardDecision.redirect(self._rules.pricing_path, f"subscription {status.value}")
        return GuardDecision.allow("active subscription")

    def _on_lookup_failure(
        self, path: str, error: Union[ProfileStoreError, AuthServiceUnavailableError]
    ) -> GuardDecision:
        if self._lookup_policy is SubscriptionLookupPolicy.FAIL_OPEN:
            logger.warning(
                "Subscription lookup failed for %s; allowing navigation under the fail-open policy: %s",
                path,
                error.message,
            )
            return GuardDecision.allow("subscription lookup failed (fail-open)")
        logger.warning("Subscription lookup failed for %s; denying under the fail-closed policy", path)
        return GuardDecision.redirect(self._rules.pricing_path, "subscription lookup failed (fail-closed)")
