"""Tests for the auth event bus."""

import asyncio
import logging

import pytest

from modules.auth.events import AuthEventBus
from modules.auth.models import AuthEvent, AuthEventType


def event(event_type: AuthEventType) -> AuthEvent:
    return AuthEvent(type=event_type)


class TestAuthEventBus:
    @pytest.mark.asyncio
    async def test_delivers_in_order_per_subscriber(self):
        bus = AuthEventBus()
        received = []

        async def handler(e):
            received.append(e.type)

        bus.subscribe(handler)
        bus.publish(event(AuthEventType.SIGNED_IN))
        bus.publish(event(AuthEventType.TOKEN_REFRESHED))
        bus.publish(event(AuthEventType.SIGNED_OUT))
        await bus.drain()

        assert received == [
            AuthEventType.SIGNED_IN,
            AuthEventType.TOKEN_REFRESHED,
            AuthEventType.SIGNED_OUT,
        ]
        bus.close()

    @pytest.mark.asyncio
    async def test_publish_does_not_wait_for_handlers(self):
        bus = AuthEventBus()
        started = asyncio.Event()

        async def handler(e):
            started.set()

        bus.subscribe(handler)
        bus.publish(event(AuthEventType.SIGNED_IN))

        assert not started.is_set()
        await bus.drain()
        assert started.is_set()
        bus.close()

    @pytest.mark.asyncio
    async def test_each_subscriber_gets_each_event_once(self):
        bus = AuthEventBus()
        counts = {"a": 0, "b": 0}

        async def handler_a(e):
            counts["a"] += 1

        async def handler_b(e):
            counts["b"] += 1

        bus.subscribe(handler_a)
        bus.subscribe(handler_b)
        bus.publish(event(AuthEventType.SIGNED_IN))
        await bus.drain()

        assert counts == {"a": 1, "b": 1}
        bus.close()

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_delivery(self, caplog):
        bus = AuthEventBus()
        received = []

        async def handler(e):
            if e.type is AuthEventType.SIGNED_IN:
                raise RuntimeError("handler bug")
            received.append(e.type)

        bus.subscribe(handler)
        with caplog.at_level(logging.ERROR, logger="modules.auth.events"):
            bus.publish(event(AuthEventType.SIGNED_IN))
            bus.publish(event(AuthEventType.SIGNED_OUT))
            await bus.drain()

        assert received == [AuthEventType.SIGNED_OUT]
        assert any("handler failed" in r.getMessage() for r in caplog.records)
        bus.close()

    @pytest.mark.asyncio
    async def test_unsubscribed_handler_receives_nothing(self):
        bus = AuthEventBus()
        received = []

        async def handler(e):
            received.append(e)

        subscription = bus.subscribe(handler)
        subscription.unsubscribe()
        bus.publish(event(AuthEventType.SIGNED_IN))
        await asyncio.sleep(0)

        assert received == []
        assert subscription.active is False

    def test_subscribe_requires_running_loop(self):
        async def handler(e):
            pass

        with pytest.raises(RuntimeError):
            AuthEventBus().subscribe(handler)
