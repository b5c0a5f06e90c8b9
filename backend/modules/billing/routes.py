"""
Billing API endpoints.

``router`` is mounted under /api/billing (authenticated).
``webhook_router`` is mounted under /api/webhooks and authenticates Stripe
by signature instead of by user session.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_billing_service
from api.middleware.auth import get_current_user
from shared.exceptions import ConfigurationError, KeystoneError
from shared.models import AuthenticatedUser

from .exceptions import WebhookVerificationError
from .interfaces import IBillingService
from .models import CheckoutRequest, CheckoutResponse, PortalResponse, SubscriptionInfo, WebhookResult

logger = logging.getLogger(__name__)

router = APIRouter()
webhook_router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    request: CheckoutRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
) -> CheckoutResponse:
    """
    Start a Stripe checkout for the current user.

    The customer is created on first checkout and remembered on the profile.
    """
    return await service.create_checkout_session(user, request.price_id, request.mode)


@router.post("/portal", response_model=PortalResponse)
async def create_portal(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
) -> PortalResponse:
    return await service.create_portal_session(user)


@router.get("/subscription", response_model=SubscriptionInfo)
async def get_subscription(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
) -> SubscriptionInfo:
    return await service.get_subscription(user.id)


@webhook_router.post("/stripe", response_model=WebhookResult)
async def stripe_webhook(
    request: Request,
    service: IBillingService = Depends(get_billing_service),
):
    """
    Stripe webhook receiver.

    Signature and configuration failures propagate to the error handler.
    Any other failure answers 400 so Stripe redelivers the event.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        return await service.handle_webhook(payload, signature)
    except (WebhookVerificationError, ConfigurationError):
        raise
    except KeystoneError as e:
        logger.error("Stripe webhook handler failed: %s (%s)", e.code, e.details)
        return JSONResponse({"error": "Webhook handler failed"}, status_code=400)
