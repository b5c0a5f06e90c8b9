"""
Profile module exceptions.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError, KeystoneError


class ProfileStoreError(ExternalServiceError):
    """The profile store rejected or failed a request."""

    def __init__(self, message: str, store_code: Optional[str] = None):
        super().__init__(
            message,
            service="profile_store",
            code="PROFILE_STORE_ERROR",
            details={"store_code": store_code} if store_code else {},
        )
        self.store_code = store_code


class ProfileConflictError(ProfileStoreError):
    """A profile with the same ID already exists (unique violation)."""

    def __init__(self, user_id: str):
        super().__init__(f"Profile already exists: {user_id}", store_code="23505")
        self.details["user_id"] = user_id


class ProfileProvisioningError(KeystoneError):
    """A profile could not be guaranteed for an authenticated identity."""

    def __init__(self, user_id: str, reason: str):
        super().__init__(
            "We couldn't set up your account. Please try again.",
            code="PROFILE_PROVISIONING_FAILED",
            details={"user_id": user_id, "reason": reason},
        )
