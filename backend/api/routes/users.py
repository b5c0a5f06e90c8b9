"""
User-related endpoints.

Provides endpoints for user profile and account management.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shared.models import AuthenticatedUser
from modules.profiles.interfaces import IProfileService
from modules.profiles.models import Profile, SubscriptionStatus
from ..dependencies import get_profile_service
from ..middleware.auth import get_current_user

router = APIRouter()


class UserProfileResponse(BaseModel):
    """User profile response model."""

    id: str
    email: str
    email_verified: bool
    role: str
    subscription_status: SubscriptionStatus
    profile: Optional[Profile] = None


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    profiles: IProfileService = Depends(get_profile_service),
) -> UserProfileResponse:
    """
    Get the current user's identity and profile.

    Requires authentication.
    """
    profile = await profiles.get_profile(user.id)
    return UserProfileResponse(
        id=user.id,
        email=user.email,
        email_verified=user.email_verified,
        role=user.role,
        subscription_status=profile.subscription if profile else SubscriptionStatus.NONE,
        profile=profile,
    )
