"""
Billing module exceptions.

These exceptions are raised by the billing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError, KeystoneError


class BillingError(KeystoneError):
    """Base exception for billing-related errors."""

    pass


class WebhookVerificationError(BillingError):
    """Raised when Stripe webhook signature verification fails."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Webhook signature verification failed",
            code="WEBHOOK_VERIFICATION_FAILED",
            details={"reason": reason} if reason else {},
        )


class MissingCustomerError(BillingError):
    """The user has no Stripe customer yet (nothing to manage in the portal)."""

    def __init__(self, user_id: str):
        super().__init__(
            "No associated Stripe customer found",
            code="MISSING_CUSTOMER",
            details={"user_id": user_id},
        )


class PaymentServiceError(ExternalServiceError):
    """Raised when a Stripe API call fails."""

    def __init__(self, operation: str, stripe_error: Optional[str] = None):
        super().__init__(
            f"Payment service request failed: {operation}",
            service="stripe",
            code="PAYMENT_SERVICE_ERROR",
            details={"operation": operation, **({"stripe_error": stripe_error} if stripe_error else {})},
        )
