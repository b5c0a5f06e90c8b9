"""
Stripe-backed billing service.

Customers, checkout and portal sessions are created through
``stripe.StripeClient``. Webhook deliveries are verified with
``stripe.Webhook.construct_event`` and written to the profile (subscription
fields) or to ``user_purchases`` (one-time payments) with the service-role
client.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import stripe

from shared.config import Settings
from shared.exceptions import ConfigurationError, ValidationError
from shared.models import AuthenticatedUser
from modules.profiles.interfaces import IProfileStore
from modules.profiles.models import SubscriptionStatus

from .exceptions import (
    BillingError,
    MissingCustomerError,
    PaymentServiceError,
    WebhookVerificationError,
)
from .interfaces import IBillingService, IPurchaseStore
from .models import (
    CheckoutMode,
    CheckoutResponse,
    NewPurchase,
    PortalResponse,
    SubscriptionInfo,
    WebhookResult,
)

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BillingService(IBillingService):
    """
    Implementation of the billing service.

    The Stripe client is created on first use so the rest of the app runs
    without Stripe credentials.
    """

    def __init__(
        self,
        profiles: IProfileStore,
        settings: Settings,
        purchases: Optional[IPurchaseStore] = None,
        client: Optional[stripe.StripeClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._profiles = profiles
        self._settings = settings
        self._purchases = purchases
        self._client = client
        self._clock = clock

    @property
    def client(self) -> stripe.StripeClient:
        if self._client is None:
            if not self._settings.stripe_secret_key:
                raise ConfigurationError("STRIPE_SECRET_KEY")
            self._client = stripe.StripeClient(self._settings.stripe_secret_key)
        return self._client

    @property
    def purchases(self) -> IPurchaseStore:
        if self._purchases is None:
            from shared.database import get_supabase_client
            from .repository import PurchaseRepository
            self._purchases = PurchaseRepository(get_supabase_client())
        return self._purchases

    def _app_url(self, path: str) -> str:
        if not self._settings.app_url:
            raise ConfigurationError("APP_URL")
        return f"{self._settings.app_url.rstrip('/')}{path}"

    async def get_or_create_customer(self, identity: AuthenticatedUser) -> str:
        profile = await self._profiles.get(identity.id)
        if profile is not None and profile.stripe_customer_id:
            return profile.stripe_customer_id

        try:
            customer = self.client.customers.create(
                params={
                    "email": identity.email,
                    "metadata": {"supabaseUUID": identity.id},
                }
            )
        except stripe.StripeError as e:
            raise PaymentServiceError("create customer", stripe_error=e.code)

        await self._profiles.update(
            identity.id,
            {"stripe_customer_id": customer.id, "updated_at": self._clock().isoformat()},
        )
        logger.info("Created Stripe customer for user %s", identity.id)
        return customer.id

    async def create_checkout_session(
        self,
        identity: AuthenticatedUser,
        price_id: Optional[str] = None,
        mode: CheckoutMode = CheckoutMode.SUBSCRIPTION,
    ) -> CheckoutResponse:
        price = price_id or self._settings.stripe_price_id
        if not price:
            raise ValidationError("No price selected", code="MISSING_PRICE")

        success_url = self._app_url(
            f"{self._settings.landing_path}?session_id={CHECKOUT_SESSION_PLACEHOLDER}"
        )
        cancel_url = self._app_url(self._settings.pricing_path)
        customer_id = await self.get_or_create_customer(identity)

        try:
            session = self.client.checkout.sessions.create(
                params={
                    "mode": mode.value,
                    "customer": customer_id,
                    "client_reference_id": identity.id,
                    "line_items": [{"price": price, "quantity": 1}],
                    "success_url": success_url,
                    "cancel_url": cancel_url,
                }
            )
        except stripe.StripeError as e:
            raise PaymentServiceError("create checkout session", stripe_error=e.code)

        return CheckoutResponse(session_id=session.id, url=session.url)

    async def create_portal_session(self, identity: AuthenticatedUser) -> PortalResponse:
        profile = await self._profiles.get(identity.id)
        if profile is None or not profile.stripe_customer_id:
            raise MissingCustomerError(identity.id)

        try:
            session = self.client.billing_portal.sessions.create(
                params={
                    "customer": profile.stripe_customer_id,
                    "return_url": self._app_url(self._settings.landing_path),
                }
            )
        except stripe.StripeError as e:
            raise PaymentServiceError("create portal session", stripe_error=e.code)

        return PortalResponse(url=session.url)

    async def get_subscription(self, user_id: str) -> SubscriptionInfo:
        profile = await self._profiles.get(user_id)
        if profile is None:
            return SubscriptionInfo()
        return SubscriptionInfo(
            status=profile.subscription,
            subscription_id=profile.subscription_id,
            stripe_customer_id=profile.stripe_customer_id,
        )

    # Webhooks

    def _verify(self, payload: bytes, signature: Optional[str]) -> Any:
        if not self._settings.stripe_webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET")
        if not signature:
            raise WebhookVerificationError("missing signature header")
        try:
            return stripe.Webhook.construct_event(
                payload, signature, self._settings.stripe_webhook_secret
            )
        except ValueError:
            raise WebhookVerificationError("invalid payload")
        except stripe.SignatureVerificationError:
            raise WebhookVerificationError("signature mismatch")

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookResult:
        event = self._verify(payload, signature)
        event_type = event["type"]
        obj = event["data"]["object"]

        if event_type == "checkout.session.completed":
            await self._checkout_completed(obj)
        elif event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            await self._subscription_changed(obj)
        elif event_type == "invoice.payment_failed":
            await self._payment_failed(obj)
        else:
            logger.debug("Ignoring Stripe event %s", event_type)
            return WebhookResult(event_type=event_type, handled=False)

        logger.info("Applied Stripe event %s", event_type)
        return WebhookResult(event_type=event_type, handled=True)

    async def _checkout_completed(self, session: Any) -> None:
        user_id = session.get("client_reference_id")
        if not user_id:
            logger.error("Checkout session %s has no client_reference_id", session.get("id"))
            raise BillingError(
                "Missing client_reference_id in checkout session",
                code="MISSING_CLIENT_REFERENCE",
            )

        mode = session.get("mode")
        customer_id = session.get("customer")
        subscription_id = session.get("subscription")

        if mode == CheckoutMode.SUBSCRIPTION.value and subscription_id:
            try:
                subscription = self.client.subscriptions.retrieve(subscription_id)
            except stripe.StripeError as e:
                raise PaymentServiceError("retrieve subscription", stripe_error=e.code)
            await self._profiles.update(
                user_id,
                {
                    "stripe_customer_id": customer_id,
                    "subscription_id": subscription_id,
                    "subscription_status": SubscriptionStatus.parse(subscription["status"]).value,
                    "updated_at": self._clock().isoformat(),
                },
            )
        elif mode == CheckoutMode.PAYMENT.value:
            await self.purchases.insert(
                NewPurchase(
                    user_id=user_id,
                    stripe_customer_id=customer_id,
                    stripe_checkout_session_id=session["id"],
                    amount_total=session.get("amount_total") or 0,
                    payment_status=session.get("payment_status") or "unknown",
                    created_at=self._clock(),
                )
            )

    async def _subscription_changed(self, subscription: Any) -> None:
        await self._profiles.update_by_subscription(
            subscription["id"],
            {
                "subscription_status": SubscriptionStatus.parse(subscription.get("status")).value,
                "updated_at": self._clock().isoformat(),
            },
        )

    async def _payment_failed(self, invoice: Any) -> None:
        subscription_id = invoice.get("subscription")
        if not subscription_id:
            return
        await self._profiles.update_by_subscription(
            subscription_id,
            {
                "subscription_status": SubscriptionStatus.PAST_DUE.value,
                "updated_at": self._clock().isoformat(),
            },
        )

