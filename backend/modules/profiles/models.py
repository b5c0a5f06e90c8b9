"""
Profile module data models.

A profile is the application-owned record extending an identity with
app-specific fields. There is exactly one profile per identity.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SubscriptionStatus(str, Enum):
    """Subscription states as reported by the payment service."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"
    NONE = "none"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionStatus":
        """Map a raw column value to a status; unknown or empty means NONE."""
        if not value:
            return cls.NONE
        try:
            return cls(value)
        except ValueError:
            return cls.NONE

    @property
    def grants_access(self) -> bool:
        return self is SubscriptionStatus.ACTIVE


class Profile(BaseModel):
    """A row of the ``profiles`` table."""

    id: str = Field(..., description="User ID (same as the identity ID)")
    email: str = Field(..., description="Email address at provisioning time")
    created_at: datetime = Field(..., description="Row creation time")
    updated_at: datetime = Field(..., description="Last update time")
    full_name: Optional[str] = Field(None, description="Display name")
    avatar_url: Optional[str] = Field(None, description="Avatar URL")
    subscription_status: Optional[str] = Field(None, description="Raw subscription status")
    subscription_id: Optional[str] = Field(None, description="Payment service subscription ID")
    stripe_customer_id: Optional[str] = Field(None, description="Payment service customer ID")

    model_config = {"extra": "ignore"}

    @property
    def subscription(self) -> SubscriptionStatus:
        return SubscriptionStatus.parse(self.subscription_status)


class NewProfile(BaseModel):
    """Values written when a profile is provisioned."""

    id: str
    email: str
    created_at: datetime
    updated_at: datetime

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
