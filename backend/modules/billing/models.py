"""
Billing module data models.

These models define the data structures used by the billing module
and exposed to other modules through the interface.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from modules.profiles.models import SubscriptionStatus


class CheckoutMode(str, Enum):
    """Stripe checkout modes."""

    PAYMENT = "payment"            # One-time purchase
    SUBSCRIPTION = "subscription"  # Recurring plan


class CheckoutRequest(BaseModel):
    """Request to start a Stripe checkout."""

    price_id: Optional[str] = Field(None, description="Stripe price ID; defaults to STRIPE_PRICE_ID")
    mode: CheckoutMode = Field(default=CheckoutMode.SUBSCRIPTION, description="Checkout mode")


class CheckoutResponse(BaseModel):
    """A created Stripe checkout session."""

    session_id: str = Field(..., description="Stripe checkout session ID")
    url: Optional[str] = Field(None, description="Hosted checkout page URL")


class PortalResponse(BaseModel):
    """A created Stripe customer portal session."""

    url: str = Field(..., description="Customer portal URL")


class SubscriptionInfo(BaseModel):
    """Subscription state as recorded on the user's profile."""

    status: SubscriptionStatus = Field(default=SubscriptionStatus.NONE)
    subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.status.grants_access


class NewPurchase(BaseModel):
    """A ``user_purchases`` row written for a completed one-time checkout."""

    user_id: str
    stripe_customer_id: Optional[str] = None
    stripe_checkout_session_id: str
    amount_total: int = Field(default=0, description="Amount in the smallest currency unit")
    payment_status: str = "unknown"
    created_at: datetime

    def to_row(self) -> dict:
        row = self.model_dump()
        row["created_at"] = self.created_at.isoformat()
        return row


class WebhookResult(BaseModel):
    """Acknowledgement returned to Stripe."""

    received: bool = True
    event_type: Optional[str] = None
    handled: bool = False
