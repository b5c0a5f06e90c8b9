"""
Session cache.

Mirror of the current session and profile for one client context, kept in
step with the gateway's auth-state notifications. Constructed explicitly
around a gateway; there is no process-wide instance.
"""

import logging
from typing import Awaitable, Callable, Optional

from shared.exceptions import KeystoneError
from shared.models import AuthenticatedUser
from shared.retry import RetryPolicy
from modules.profiles.exceptions import ProfileStoreError
from modules.profiles.interfaces import IProfileService
from modules.profiles.models import Profile

from .events import Subscription
from .exceptions import AuthServiceUnavailableError
from .interfaces import IAuthGateway
from .models import AuthEvent, AuthEventType, Session, SessionSnapshot

logger = logging.getLogger(__name__)

DEFAULT_INIT_POLICY = RetryPolicy(max_attempts=3, delay_seconds=1.0, quiet_attempts=0)


class SessionCache:
    """
    Read-only mirror of session + profile.

    ``is_authenticated`` only becomes True once both the session and the
    profile are known.
    """

    def __init__(
        self,
        gateway: IAuthGateway,
        profiles: IProfileService,
        retry_policy: RetryPolicy = DEFAULT_INIT_POLICY,
        sleep: Optional[Callable[[float], Awaitable[object]]] = None,
    ):
        self._gateway = gateway
        self._profiles = profiles
        self._policy = retry_policy
        self._sleep = sleep
        self._subscription: Optional[Subscription] = None
        self._session: Optional[Session] = None
        self._profile: Optional[Profile] = None
        self.is_loading = True
        self.is_authenticated = False

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[AuthenticatedUser]:
        return self._session.user if self._session else None

    @property
    def profile(self) -> Optional[Profile]:
        return self._profile

    async def initialize(self) -> None:
        """Load the current session and profile, then start listening for changes."""
        try:
            await self._policy.run(
                self._load_current,
                retry_on=(AuthServiceUnavailableError, ProfileStoreError),
                operation="session cache initialization",
                sleep=self._sleep,
            )
        except KeystoneError as e:
            logger.error("Session cache initialization gave up: %s", e.message)
            self.is_loading = False

        if self._subscription is None:
            self._subscription = self._gateway.events.subscribe(self._on_event)

    async def _load_current(self) -> None:
        session = await self._gateway.get_session()
        await self._apply_session(session)

    async def _apply_session(self, session: Optional[Session]) -> None:
        if session is None:
            self._reset()
            return

        if self._session is None or self._session.user.id != session.user.id:
            # never pair a new user's session with the previous user's profile
            self._profile = None
            self.is_authenticated = False
        self._session = session
        self.is_loading = True
        profile = await self._profiles.get_profile(session.user.id)
        if profile is not None:
            self._profile = profile
            self.is_authenticated = True
        else:
            logger.error("No profile found for signed-in user %s", session.user.id)
        self.is_loading = False

    def _reset(self) -> None:
        self._session = None
        self._profile = None
        self.is_authenticated = False
        self.is_loading = False

    async def _on_event(self, event: AuthEvent) -> None:
        if event.type in (AuthEventType.SIGNED_IN, AuthEventType.TOKEN_REFRESHED):
            if event.session is None:
                return
            try:
                await self._apply_session(event.session)
            except KeystoneError as e:
                logger.error("Profile fetch after %s failed: %s", event.type.value, e.message)
                self.is_loading = False
        elif event.type is AuthEventType.SIGNED_OUT:
            self._reset()

    async def refresh_profile(self) -> Optional[Profile]:
        if self._session is None:
            return None
        profile = await self._profiles.get_profile(self._session.user.id)
        if profile is not None:
            self._profile = profile
            self.is_authenticated = True
        return profile

    async def sign_out(self) -> None:
        self.is_loading = True
        try:
            await self._gateway.sign_out()
        except KeystoneError:
            self.is_loading = False
            raise
        self._reset()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            user=self.user,
            profile=self._profile,
            session_expires_at=self._session.expires_at if self._session else None,
            is_loading=self.is_loading,
            is_authenticated=self.is_authenticated,
        )

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
