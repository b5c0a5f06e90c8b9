"""
Profile module interfaces.

IProfileStore is the storage contract (a Supabase table in production, an
in-memory fake in tests). IProfileService is what other modules consume.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from shared.models import AuthenticatedUser

from .models import NewProfile, Profile, SubscriptionStatus


@runtime_checkable
class IProfileStore(Protocol):
    """Row-level access to the profiles table."""

    async def get(self, user_id: str) -> Optional[Profile]:
        """Return the profile for ``user_id`` or None."""
        ...

    async def insert_if_absent(self, profile: NewProfile) -> bool:
        """
        Insert ``profile`` unless a row with the same ID exists.

        Returns:
            True if this call created the row, False if it already existed

        Raises:
            ProfileConflictError: If the backend reports a unique violation
                instead of ignoring the duplicate
            ProfileStoreError: On any other store failure
        """
        ...

    async def update(self, user_id: str, values: dict[str, Any]) -> None:
        """Update columns of an existing profile."""
        ...

    async def update_by_subscription(self, subscription_id: str, values: dict[str, Any]) -> None:
        """Update columns of the profile holding ``subscription_id``."""
        ...


@runtime_checkable
class IProfileService(Protocol):
    """Profile operations exposed to other modules."""

    async def ensure_profile(self, identity: AuthenticatedUser) -> Profile:
        """
        Guarantee a profile exists for ``identity`` and return it.

        Idempotent and safe under concurrent calls for the same identity.

        Raises:
            ProfileProvisioningError: If the profile cannot be guaranteed
        """
        ...

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """Return the profile for ``user_id`` or None."""
        ...

    async def get_subscription_status(self, user_id: str) -> SubscriptionStatus:
        """
        Read the subscription status used for route gating.

        Raises:
            ProfileStoreError: If the lookup fails
        """
        ...
