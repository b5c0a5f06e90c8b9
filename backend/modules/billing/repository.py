"""
Purchase repository for database access.
"""

from supabase import PostgrestAPIError

from shared.repository import BaseRepository
from modules.profiles.exceptions import ProfileStoreError

from .models import NewPurchase


class PurchaseRepository(BaseRepository[NewPurchase]):
    """Supabase-backed implementation of IPurchaseStore."""

    table_name = "user_purchases"

    async def insert(self, purchase: NewPurchase) -> None:
        try:
            self._table().insert(purchase.to_row()).execute()
        except PostgrestAPIError as e:
            raise ProfileStoreError(f"Purchase insert failed: {e.message}", store_code=e.code)
