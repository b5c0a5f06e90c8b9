"""
Billing module interfaces.

Routes depend on IBillingService, not on the Stripe-backed implementation.
"""

from typing import Optional, Protocol, runtime_checkable

from shared.models import AuthenticatedUser

from .models import (
    CheckoutMode,
    CheckoutResponse,
    NewPurchase,
    PortalResponse,
    SubscriptionInfo,
    WebhookResult,
)


@runtime_checkable
class IPurchaseStore(Protocol):
    """Write access to the ``user_purchases`` table."""

    async def insert(self, purchase: NewPurchase) -> None:
        ...


@runtime_checkable
class IBillingService(Protocol):
    """
    Interface for payment operations.
    """

    async def get_or_create_customer(self, identity: AuthenticatedUser) -> str:
        """
        Return the user's Stripe customer ID, creating the customer on first use.

        The new ID is stored on the user's profile.

        Raises:
            PaymentServiceError: If Stripe rejects the request
        """
        ...

    async def create_checkout_session(
        self,
        identity: AuthenticatedUser,
        price_id: Optional[str] = None,
        mode: CheckoutMode = CheckoutMode.SUBSCRIPTION,
    ) -> CheckoutResponse:
        """
        Start a hosted checkout for ``price_id``.

        Raises:
            ValidationError: If no price is given or configured
            ConfigurationError: If STRIPE_SECRET_KEY or APP_URL is unset
            PaymentServiceError: If Stripe rejects the request
        """
        ...

    async def create_portal_session(self, identity: AuthenticatedUser) -> PortalResponse:
        """
        Raises:
            MissingCustomerError: If the user never checked out
        """
        ...

    async def get_subscription(self, user_id: str) -> SubscriptionInfo:
        """Subscription fields recorded on the user's profile."""
        ...

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookResult:
        """
        Verify and apply one Stripe webhook delivery.

        Raises:
            WebhookVerificationError: If the signature does not verify
        """
        ...
