"""
Profile repository for database access.

Encapsulates the Supabase queries for the ``profiles`` table. Uses the
service-role client; authorization is the caller's concern.
"""

import logging
from typing import Any, Optional

from supabase import PostgrestAPIError

from shared.repository import BaseRepository

from .exceptions import ProfileConflictError, ProfileStoreError
from .models import NewProfile, Profile

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class ProfileRepository(BaseRepository[Profile]):
    """
    Supabase-backed implementation of IProfileStore.

    Insertion is an upsert keyed on ``id`` that ignores duplicates, so two
    concurrent provisioning attempts produce a single row.
    """

    table_name = "profiles"

    async def get(self, user_id: str) -> Optional[Profile]:
        try:
            result = self._table().select("*").eq("id", user_id).limit(1).execute()
        except PostgrestAPIError as e:
            raise ProfileStoreError(f"Profile lookup failed: {e.message}", store_code=e.code)
        if not result.data:
            return None
        return Profile(**result.data[0])

    async def insert_if_absent(self, profile: NewProfile) -> bool:
        try:
            result = (
                self._table()
                .upsert(profile.to_row(), on_conflict="id", ignore_duplicates=True)
                .execute()
            )
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ProfileConflictError(profile.id)
            raise ProfileStoreError(f"Profile insert failed: {e.message}", store_code=e.code)
        # ignore-duplicates returns only the rows this statement inserted
        return bool(result.data)

    async def update(self, user_id: str, values: dict[str, Any]) -> None:
        try:
            self._table().update(values).eq("id", user_id).execute()
        except PostgrestAPIError as e:
            raise ProfileStoreError(f"Profile update failed: {e.message}", store_code=e.code)

    async def update_by_subscription(self, subscription_id: str, values: dict[str, Any]) -> None:
        try:
            self._table().update(values).eq("subscription_id", subscription_id).execute()
        except PostgrestAPIError as e:
            raise ProfileStoreError(f"Profile update failed: {e.message}", store_code=e.code)
