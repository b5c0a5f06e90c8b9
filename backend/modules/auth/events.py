"""
Auth-state notifications.

Each subscriber gets its own queue and worker task, which gives:
- asynchronous delivery (publish never awaits a handler)
- at-most-once delivery per event per subscriber
- per-subscriber ordering, with no ordering guarantee across subscribers
"""

import asyncio
import logging
from typing import Awaitable, Callable

from .models import AuthEvent

logger = logging.getLogger(__name__)

AuthEventHandler = Callable[[AuthEvent], Awaitable[None]]


class Subscription:
    """Handle returned by AuthEventBus.subscribe."""

    def __init__(self, bus: "AuthEventBus", handler: AuthEventHandler):
        self._bus = bus
        self._handler = handler
        self._queue: asyncio.Queue[AuthEvent] = asyncio.Queue()
        self._task = asyncio.get_running_loop().create_task(self._run())
        self.active = True

    def _offer(self, event: AuthEvent) -> None:
        if self.active:
            self._queue.put_nowait(event)

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._handler(event)
            except Exception:
                # A failing handler must not stop delivery of later events
                logger.exception("Auth event handler failed for %s", event.type.value)
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every event queued so far has been handled."""
        await self._queue.join()

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._task.cancel()
        self._bus._remove(self)


class AuthEventBus:
    """Fan-out of auth-state changes to async subscribers."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, handler: AuthEventHandler) -> Subscription:
        """Register ``handler``. Must be called from a running event loop."""
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: AuthEvent) -> None:
        """Queue ``event`` for every current subscriber."""
        logger.debug("Auth event %s", event.type.value)
        for subscription in list(self._subscriptions):
            subscription._offer(event)

    async def drain(self) -> None:
        for subscription in list(self._subscriptions):
            await subscription.drain()

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
