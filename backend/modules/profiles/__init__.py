"""
Profiles module.

Owns the ``profiles`` table: idempotent provisioning on first sign-in and the
subscription status read used for route gating.

Public API:
- IProfileService / IProfileStore: Interfaces
- ProfileReconciler: ensure_profile and subscription lookup
- Profile, SubscriptionStatus: Models
- Profile exceptions
"""

from .interfaces import IProfileService, IProfileStore
from .models import NewProfile, Profile, SubscriptionStatus
from .service import ProfileReconciler
from .exceptions import ProfileConflictError, ProfileProvisioningError, ProfileStoreError

__all__ = [
    # Interfaces
    "IProfileService",
    "IProfileStore",
    # Service
    "ProfileReconciler",
    # Models
    "NewProfile",
    "Profile",
    "SubscriptionStatus",
    # Exceptions
    "ProfileConflictError",
    "ProfileProvisioningError",
    "ProfileStoreError",
]
