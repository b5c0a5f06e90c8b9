"""
Profile service implementation.

ProfileReconciler is the only writer allowed to create profile rows from the
authentication path.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from shared.models import AuthenticatedUser

from .exceptions import ProfileConflictError, ProfileProvisioningError, ProfileStoreError
from .interfaces import IProfileService, IProfileStore
from .models import NewProfile, Profile, SubscriptionStatus

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileReconciler(IProfileService):
    """
    Guarantees one profile per identity.

    ensure_profile never updates an existing row: profile fields are not
    refreshed on every login.
    """

    def __init__(self, store: IProfileStore, clock: Callable[[], datetime] = _utcnow):
        self._store = store
        self._clock = clock

    async def ensure_profile(self, identity: AuthenticatedUser) -> Profile:
        """
        Read the profile by ID; create it when absent.

        Two callers that both observe "absent" both attempt the insert. The
        store ignores the duplicate (or reports a unique violation, which is
        treated as success) and both callers return the same row.
        """
        try:
            existing = await self._store.get(identity.id)
            if existing is not None:
                return existing

            now = self._clock()
            new_profile = NewProfile(
                id=identity.id,
                email=identity.email,
                created_at=now,
                updated_at=now,
            )
            try:
                created = await self._store.insert_if_absent(new_profile)
            except ProfileConflictError:
                created = False

            if created:
                logger.info("Provisioned profile for user %s", identity.id)
            else:
                logger.debug("Profile for user %s was created concurrently", identity.id)

            profile = await self._store.get(identity.id)
        except ProfileStoreError as e:
            logger.error("Profile store failure for user %s: %s", identity.id, e.message)
            raise ProfileProvisioningError(identity.id, e.message) from e

        if profile is None:
            raise ProfileProvisioningError(identity.id, "profile missing after insert")
        return profile

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        return await self._store.get(user_id)

    async def get_subscription_status(self, user_id: str) -> SubscriptionStatus:
        profile = await self._store.get(user_id)
        if profile is None:
            return SubscriptionStatus.NONE
        return profile.subscription
