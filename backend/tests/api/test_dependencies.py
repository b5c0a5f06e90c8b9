"""Tests for the request-scoped auth context dependency."""

from unittest.mock import AsyncMock, patch

import pytest
from starlette.requests import Request

from api.dependencies import get_auth_context

from tests.conftest import make_settings
from tests.fakes import FakeAuthGateway


def page_request() -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "headers": []})


class TestAuthContext:
    @pytest.mark.asyncio
    async def test_gateway_closed_when_request_ends(self):
        gateway = FakeAuthGateway()
        with patch("modules.auth.gateway.create_auth_gateway", AsyncMock(return_value=gateway)):
            dependency = get_auth_context(page_request(), make_settings())
            context = await dependency.__anext__()
            assert context.gateway is gateway
            assert gateway.closed == 0

            with pytest.raises(StopAsyncIteration):
                await dependency.__anext__()

        assert gateway.closed == 1

    @pytest.mark.asyncio
    async def test_gateway_closed_when_route_fails(self):
        gateway = FakeAuthGateway()
        with patch("modules.auth.gateway.create_auth_gateway", AsyncMock(return_value=gateway)):
            dependency = get_auth_context(page_request(), make_settings())
            await dependency.__anext__()

            with pytest.raises(RuntimeError):
                await dependency.athrow(RuntimeError("route failed"))

        assert gateway.closed == 1
