"""
Billing module.

Handles Stripe customers, checkout, the customer portal and webhooks.

Public API:
- IBillingService: Interface for billing operations
- BillingService: Stripe-backed implementation
- Billing models and exceptions
"""

from .interfaces import IBillingService, IPurchaseStore
from .models import (
    CheckoutMode,
    CheckoutRequest,
    CheckoutResponse,
    NewPurchase,
    PortalResponse,
    SubscriptionInfo,
    WebhookResult,
)
from .exceptions import (
    BillingError,
    MissingCustomerError,
    PaymentServiceError,
    WebhookVerificationError,
)
from .service import BillingService

__all__ = [
    # Interfaces
    "IBillingService",
    "IPurchaseStore",
    # Service
    "BillingService",
    # Models
    "CheckoutMode",
    "CheckoutRequest",
    "CheckoutResponse",
    "NewPurchase",
    "PortalResponse",
    "SubscriptionInfo",
    "WebhookResult",
    # Exceptions
    "BillingError",
    "MissingCustomerError",
    "PaymentServiceError",
    "WebhookVerificationError",
]
