"""
Route guard middleware.

Runs the route guard on page navigations. API paths and the OAuth callback
are never guarded here; API endpoints authenticate through dependencies.
"""

import logging
from urllib.parse import quote

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from shared.exceptions import ConfigurationError
from modules.auth.gateway import create_auth_gateway
from modules.auth.grace import GRACE_COOKIE_NAME
from modules.auth.guard import GuardAction, RouteRules

from ..dependencies import build_cookie_jar, get_container

logger = logging.getLogger(__name__)

CONFIGURATION_FAILURE = "Server configuration error"


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirect page requests the route guard refuses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        container = get_container()
        settings = container.settings
        path = request.url.path

        if path.startswith("/api") or path == settings.oauth_callback_path:
            return await call_next(request)

        if not RouteRules.from_settings(settings).applies(path):
            return await call_next(request)

        jar = build_cookie_jar(request, settings)
        try:
            guard = container.route_guard
            gateway = await create_auth_gateway(jar, settings)
        except ConfigurationError as e:
            logger.error("Route guard cannot run, configuration missing: %s", e.setting)
            return RedirectResponse(
                f"{settings.error_path}?message={quote(CONFIGURATION_FAILURE, safe='')}",
                status_code=307,
            )

        try:
            decision = await guard.evaluate(
                path,
                gateway,
                query=request.url.query,
                grace_token=request.cookies.get(GRACE_COOKIE_NAME),
            )
        finally:
            await gateway.aclose()

        if decision.action is GuardAction.REDIRECT:
            logger.debug("Redirecting %s to %s (%s)", path, decision.location, decision.reason)
            response: Response = RedirectResponse(decision.location, status_code=307)
        else:
            response = await call_next(request)
        # session refreshes made during the lookup are written back
        return jar.apply(response)
