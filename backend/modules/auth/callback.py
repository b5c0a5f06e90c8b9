"""
OAuth callback orchestration.

Drives one redirect from the identity provider through
START -> VALIDATING_PARAMS -> EXCHANGING -> RECONCILING -> DONE, or to
FAILED from any state. This is the single place that decides whether a
failure is retried or terminal.
"""

import asyncio
import functools
import hashlib
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional
from urllib.parse import parse_qs, quote, urlsplit

from pydantic import BaseModel

from shared.config import Settings
from shared.cookies import CookieJar
from shared.exceptions import ConfigurationError, KeystoneError
from shared.models import AuthenticatedUser, NavigationOutcome
from shared.retry import RetryPolicy
from modules.profiles.interfaces import IProfileService

from .exceptions import (
    AuthServiceUnavailableError,
    CodeAlreadyClaimedError,
    CodeExchangeError,
    MissingAuthorizationCodeError,
    OAuthProviderError,
    SessionExpiredError,
)
from .grace import GraceTokens
from .interfaces import IAuthGateway
from .models import CallbackParams, Session
from .verifier_store import VerifierStore

logger = logging.getLogger(__name__)

ParamsReader = Callable[[], Awaitable[CallbackParams]]

# Failures that may resolve on their own: the code has not arrived yet, a
# concurrent handler is still finishing its exchange, or the auth service
# blipped while we were only reading.
RETRYABLE_ERRORS = (
    MissingAuthorizationCodeError,
    CodeAlreadyClaimedError,
    AuthServiceUnavailableError,
)

GENERIC_FAILURE = "Authentication failed. Please try again."
CONFIGURATION_FAILURE = "Server configuration error"


class CallbackState(str, Enum):
    START = "start"
    VALIDATING_PARAMS = "validating_params"
    EXCHANGING = "exchanging"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


class CallbackResult(BaseModel):
    """Terminal outcome of a callback run."""

    state: CallbackState
    redirect_to: str
    error: Optional[str] = None
    reason: Optional[str] = None
    user_id: Optional[str] = None
    recovered: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state is CallbackState.DONE

    def to_outcome(self) -> NavigationOutcome:
        return NavigationOutcome(error=self.error, url=self.redirect_to)


def parse_callback_url(url: str) -> CallbackParams:
    """
    Extract callback parameters from a full redirect URL.

    The query string carries ``code`` or ``error``/``error_description``;
    the fragment may carry legacy implicit-flow tokens. Query values win.
    """
    parts = urlsplit(url)
    values: dict[str, str] = {}
    for source in (parts.fragment, parts.query):
        for key, items in parse_qs(source, keep_blank_values=False).items():
            if items:
                values[key] = items[0]
    return CallbackParams(**{k: v for k, v in values.items() if k in CallbackParams.model_fields})


class ExchangeGuard:
    """
    In-process registry of authorization codes already submitted.

    Codes are single-use upstream; claiming them here keeps a duplicate
    delivery of the same redirect from submitting the code a second time.
    Only digests are kept.
    """

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._claimed: dict[str, float] = {}

    @staticmethod
    def _key(code: str) -> str:
        return hashlib.sha256(code.encode("utf-8")).hexdigest()

    def _purge(self, now: float) -> None:
        expired = [k for k, at in self._claimed.items() if now - at > self._ttl]
        for key in expired:
            del self._claimed[key]

    def claim(self, code: str) -> bool:
        """Return True if this caller may submit ``code``."""
        now = self._clock()
        self._purge(now)
        key = self._key(code)
        if key in self._claimed:
            return False
        self._claimed[key] = now
        return True


class CallbackOrchestrator:
    """
    One-shot handler for an OAuth redirect.

    Calling ``handle`` again on the same instance returns the first run's
    result instead of submitting the authorization code twice.
    """

    def __init__(
        self,
        gateway: IAuthGateway,
        verifier_store: VerifierStore,
        profiles: IProfileService,
        settings: Settings,
        exchange_guard: ExchangeGuard,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        grace: Optional[GraceTokens] = None,
        jar: Optional[CookieJar] = None,
        sleep: Optional[Callable[[float], Awaitable[object]]] = None,
    ):
        self._gateway = gateway
        self._verifiers = verifier_store
        self._profiles = profiles
        self._settings = settings
        self._guard = exchange_guard
        self._policy = retry_policy or RetryPolicy(
            max_attempts=settings.callback_max_attempts,
            delay_seconds=settings.callback_retry_delay_seconds,
            quiet_attempts=max(1, settings.callback_max_attempts // 2),
        )
        self._grace = grace
        self._jar = jar
        self._sleep = sleep
        self._run_task: Optional[asyncio.Future] = None
        self._submitted = False
        self.state = CallbackState.START
        self.history: list[CallbackState] = []

    def _transition(self, state: CallbackState) -> None:
        logger.debug("OAuth callback: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    async def handle(self, read_params: ParamsReader) -> CallbackResult:
        # No await between the check and the assignment, so a second caller
        # always sees the first caller's task.
        if self._run_task is None:
            self._run_task = asyncio.ensure_future(self._run(read_params))
        return await asyncio.shield(self._run_task)

    async def _run(self, read_params: ParamsReader) -> CallbackResult:
        self._transition(CallbackState.START)
        try:
            identity, recovered = await self._policy.run(
                functools.partial(self._attempt, read_params),
                retry_on=RETRYABLE_ERRORS,
                operation="OAuth callback",
                sleep=self._sleep,
            )
        except ConfigurationError as e:
            logger.error("OAuth callback aborted, configuration missing: %s", e.setting)
            return self._fail(
                CONFIGURATION_FAILURE,
                e.code,
                redirect_to=f"{self._settings.error_path}?message={quote(CONFIGURATION_FAILURE, safe='')}",
            )
        except CodeAlreadyClaimedError as e:
            # The handler holding the claim writes the session on its own
            # response; the route guard decides once the browser lands.
            logger.info("OAuth callback deferred to the handler exchanging this code")
            return self._fail(
                e.message,
                e.code,
                redirect_to=self._settings.landing_path,
                show_error=False,
                clear_verifier=False,
            )
        except RETRYABLE_ERRORS as e:
            logger.warning("OAuth callback gave up in %s: %s (%s)", self.state.value, e.code, e.details)
            return self._fail(e.message, e.code, clear_verifier=False)
        except KeystoneError as e:
            logger.warning("OAuth callback failed in %s: %s (%s)", self.state.value, e.code, e.details)
            return self._fail(e.message, e.code)
        except Exception:
            logger.exception("Unexpected error during OAuth callback")
            return self._fail(GENERIC_FAILURE, "UNEXPECTED_ERROR")

        self._verifiers.clear()
        if self._grace is not None and self._jar is not None:
            self._grace.issue(self._jar, identity.id)
        self._transition(CallbackState.DONE)
        logger.info("OAuth callback completed for user %s (recovered=%s)", identity.id, recovered)
        return CallbackResult(
            state=CallbackState.DONE,
            redirect_to=self._settings.landing_path,
            user_id=identity.id,
            recovered=recovered,
        )

    def _fail(
        self,
        message: str,
        reason: str,
        redirect_to: Optional[str] = None,
        show_error: bool = True,
        clear_verifier: bool = True,
    ) -> CallbackResult:
        # retry-eligible failures keep the verifier until its TTL runs out
        if clear_verifier:
            self._verifiers.clear()
        self._transition(CallbackState.FAILED)
        return CallbackResult(
            state=CallbackState.FAILED,
            redirect_to=redirect_to or f"{self._settings.login_path}?error={quote(message, safe='')}",
            error=message if show_error else None,
            reason=reason,
        )

    async def _attempt(self, read_params: ParamsReader) -> tuple[AuthenticatedUser, bool]:
        self._transition(CallbackState.VALIDATING_PARAMS)
        params = await read_params()

        if params.error:
            raise OAuthProviderError(params.error, params.error_description)

        if params.has_implicit_tokens:
            self._transition(CallbackState.EXCHANGING)
            session = await self._gateway.set_session(params.access_token, params.refresh_token)
            return await self._reconcile(session.user), False

        if not params.code:
            existing = await self._existing_session()
            if existing is not None:
                return await self._reconcile(existing.user), True
            raise MissingAuthorizationCodeError()

        verifier = self._verifiers.load()
        if verifier is None:
            existing = await self._existing_session()
            if existing is not None:
                return await self._reconcile(existing.user), True
            raise SessionExpiredError()

        self._transition(CallbackState.EXCHANGING)
        if self._submitted or not self._guard.claim(params.code):
            existing = await self._existing_session()
            if existing is not None:
                return await self._reconcile(existing.user), True
            if self._submitted:
                raise CodeExchangeError("authorization code already submitted")
            raise CodeAlreadyClaimedError()

        self._submitted = True
        result = await self._gateway.exchange_code(params.code, verifier)
        return await self._reconcile(result.identity), result.recovered

    async def _existing_session(self) -> Optional[Session]:
        session = await self._gateway.get_session()
        if session is not None:
            logger.info("Found an existing session during OAuth callback")
        return session

    async def _reconcile(self, identity: AuthenticatedUser) -> AuthenticatedUser:
        self._transition(CallbackState.RECONCILING)
        await self._profiles.ensure_profile(identity)
        return identity
