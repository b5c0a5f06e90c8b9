"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from shared.config import get_settings
from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ExternalServiceError,
    KeystoneError,
    NotFoundError,
    ValidationError,
)
from modules.auth.routes import callback_router, router as auth_router
from modules.billing.exceptions import BillingError
from modules.billing.routes import router as billing_router, webhook_router

from .dependencies import get_container
from .middleware.route_guard import RouteGuardMiddleware
from .models.errors import ErrorResponse
from .routes import health, users

logger = logging.getLogger(__name__)

# Most specific first
_STATUS_BY_ERROR: tuple[tuple[type[KeystoneError], int], ...] = (
    (ValidationError, 400),
    (BillingError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConfigurationError, 500),
    (ExternalServiceError, 502),
)


def status_for(error: KeystoneError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


async def keystone_error_handler(request: Request, exc: KeystoneError):
    """
    Translate domain errors into JSON for API routes.

    Page routes (the OAuth callback) are redirected to the error page
    instead, so a browser never lands on a JSON body.
    """
    settings = get_container().settings
    status_code = status_for(exc)

    if status_code >= 500:
        logger.error("%s on %s: %s %s", exc.code, request.url.path, exc.message, exc.details)
    else:
        logger.info("%s on %s", exc.code, request.url.path)

    if not request.url.path.startswith("/api"):
        message = "Server configuration error" if isinstance(exc, ConfigurationError) else exc.message
        return RedirectResponse(
            f"{settings.error_path}?message={quote(message, safe='')}",
            status_code=303,
        )

    body = ErrorResponse.from_error(exc, expose_details=settings.debug)
    if isinstance(exc, ConfigurationError):
        body.error = "Server configuration error"
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting %s on %s:%s", settings.app_name, settings.host, settings.port)
    if not settings.session_secret:
        logger.warning("SESSION_SECRET is not set; OAuth sign-in is unavailable")
    yield
    # Shutdown
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Authentication, route gating and billing for the Keystone SaaS starter",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    app.add_exception_handler(KeystoneError, keystone_error_handler)

    app.add_middleware(RouteGuardMiddleware)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(callback_router, tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    if settings.enable_billing:
        app.include_router(billing_router, prefix="/api/billing", tags=["billing"])
        app.include_router(webhook_router, prefix="/api/webhooks", tags=["billing"])

    return app


# Application instance for uvicorn
app = create_app()
