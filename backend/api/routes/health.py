"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shared.config import Settings

from ..dependencies import get_app_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    auth: str
    billing: str


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=settings.app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(settings: Settings = Depends(get_app_settings)) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reports whether the configuration each integration needs is present.
    No network calls are made.
    """
    auth_ready = all(
        (settings.supabase_url, settings.supabase_anon_key, settings.session_secret, settings.app_url)
    )
    billing_ready = bool(settings.stripe_secret_key and settings.stripe_webhook_secret)
    return ReadinessResponse(
        status="ready" if auth_ready else "degraded",
        auth="configured" if auth_ready else "missing configuration",
        billing=(
            "disabled" if not settings.enable_billing
            else "configured" if billing_ready else "missing configuration"
        ),
    )
