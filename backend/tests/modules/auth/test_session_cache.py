"""Tests for the session cache."""

import pytest

from shared.retry import RetryPolicy
from modules.auth.exceptions import AuthServiceUnavailableError
from modules.auth.models import AuthEvent, AuthEventType
from modules.auth.session_cache import SessionCache
from shared.exceptions import ExternalServiceError

from tests.fakes import FakeAuthGateway, make_session


async def no_sleep(seconds: float) -> None:
    return None


def make_cache(gateway, profiles) -> SessionCache:
    return SessionCache(
        gateway,
        profiles,
        retry_policy=RetryPolicy(max_attempts=3, delay_seconds=0),
        sleep=no_sleep,
    )


class TestInitialize:
    @pytest.mark.asyncio
    async def test_signed_out(self, gateway, profiles):
        cache = make_cache(gateway, profiles)

        await cache.initialize()
        snapshot = cache.snapshot()

        assert snapshot.is_loading is False
        assert snapshot.is_authenticated is False
        assert snapshot.user is None
        cache.close()

    @pytest.mark.asyncio
    async def test_signed_in_with_profile(self, profiles, profile_store):
        profile_store.add("test-user-123")
        session = make_session()
        cache = make_cache(FakeAuthGateway(session=session), profiles)

        await cache.initialize()

        assert cache.is_authenticated is True
        assert cache.user.id == "test-user-123"
        assert cache.profile.id == "test-user-123"
        assert cache.snapshot().session_expires_at == session.expires_at
        cache.close()

    @pytest.mark.asyncio
    async def test_session_without_profile_is_not_authenticated(self, profiles):
        cache = make_cache(FakeAuthGateway(session=make_session()), profiles)

        await cache.initialize()

        assert cache.session is not None
        assert cache.is_authenticated is False
        assert cache.is_loading is False
        cache.close()

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, gateway, profiles):
        gateway.get_session_error = AuthServiceUnavailableError("get_session")
        cache = make_cache(gateway, profiles)

        await cache.initialize()

        assert cache.is_loading is False
        assert cache.is_authenticated is False
        cache.close()


class TestEvents:
    @pytest.mark.asyncio
    async def test_sign_in_event_loads_profile(self, gateway, profiles, profile_store):
        profile_store.add("test-user-123")
        cache = make_cache(gateway, profiles)
        await cache.initialize()

        await gateway.password_sign_in("test@example.com", "Secret123")
        await gateway.events.drain()

        assert cache.is_authenticated is True
        assert cache.profile is not None
        cache.close()

    @pytest.mark.asyncio
    async def test_token_refresh_updates_session(self, profiles, profile_store):
        profile_store.add("test-user-123")
        gateway = FakeAuthGateway(session=make_session())
        cache = make_cache(gateway, profiles)
        await cache.initialize()

        refreshed = make_session().model_copy(update={"access_token": "refreshed"})
        gateway.events.publish(AuthEvent(type=AuthEventType.TOKEN_REFRESHED, session=refreshed))
        await gateway.events.drain()

        assert cache.session.access_token == "refreshed"
        cache.close()

    @pytest.mark.asyncio
    async def test_sign_out_event_clears_state(self, profiles, profile_store):
        profile_store.add("test-user-123")
        gateway = FakeAuthGateway(session=make_session())
        cache = make_cache(gateway, profiles)
        await cache.initialize()

        await gateway.sign_out()
        await gateway.events.drain()

        assert cache.session is None
        assert cache.profile is None
        assert cache.is_authenticated is False
        cache.close()

    @pytest.mark.asyncio
    async def test_profile_failure_after_sign_in_stops_loading(self, gateway, profiles, profile_store):
        cache = make_cache(gateway, profiles)
        await cache.initialize()
        profile_store.fail_reads = True

        await gateway.password_sign_in("test@example.com", "Secret123")
        await gateway.events.drain()

        assert cache.is_loading is False
        assert cache.is_authenticated is False
        cache.close()

    @pytest.mark.asyncio
    async def test_switching_user_drops_previous_profile(self, profiles, profile_store):
        """A sign-in as someone else never keeps the earlier user's profile."""
        profile_store.add("user-a")
        gateway = FakeAuthGateway(session=make_session("user-a", "a@example.com"))
        cache = make_cache(gateway, profiles)
        await cache.initialize()
        assert cache.profile.id == "user-a"

        other = make_session("user-b", "b@example.com")
        gateway.events.publish(AuthEvent(type=AuthEventType.SIGNED_IN, session=other))
        await gateway.events.drain()

        snapshot = cache.snapshot()
        assert snapshot.user.id == "user-b"
        assert snapshot.profile is None
        assert snapshot.is_authenticated is False
        cache.close()

    @pytest.mark.asyncio
    async def test_switching_user_with_failing_lookup_drops_previous_profile(self, profiles, profile_store):
        profile_store.add("user-a")
        gateway = FakeAuthGateway(session=make_session("user-a", "a@example.com"))
        cache = make_cache(gateway, profiles)
        await cache.initialize()
        profile_store.fail_reads = True

        other = make_session("user-b", "b@example.com")
        gateway.events.publish(AuthEvent(type=AuthEventType.SIGNED_IN, session=other))
        await gateway.events.drain()

        assert cache.profile is None
        assert cache.is_authenticated is False
        cache.close()

    @pytest.mark.asyncio
    async def test_closed_cache_ignores_events(self, gateway, profiles, profile_store):
        profile_store.add("test-user-123")
        cache = make_cache(gateway, profiles)
        await cache.initialize()
        cache.close()

        await gateway.password_sign_in("test@example.com", "Secret123")
        await gateway.events.drain()

        assert cache.session is None


class TestActions:
    @pytest.mark.asyncio
    async def test_refresh_profile(self, profiles, profile_store):
        gateway = FakeAuthGateway(session=make_session())
        cache = make_cache(gateway, profiles)
        await cache.initialize()
        assert cache.is_authenticated is False

        profile_store.add("test-user-123")
        profile = await cache.refresh_profile()

        assert profile is not None
        assert cache.is_authenticated is True
        cache.close()

    @pytest.mark.asyncio
    async def test_refresh_profile_without_session(self, gateway, profiles):
        cache = make_cache(gateway, profiles)
        await cache.initialize()

        assert await cache.refresh_profile() is None
        cache.close()

    @pytest.mark.asyncio
    async def test_sign_out(self, profiles, profile_store):
        profile_store.add("test-user-123")
        gateway = FakeAuthGateway(session=make_session())
        cache = make_cache(gateway, profiles)
        await cache.initialize()

        await cache.sign_out()

        assert gateway.signed_out == 1
        assert cache.is_authenticated is False
        assert cache.is_loading is False
        cache.close()

    @pytest.mark.asyncio
    async def test_sign_out_failure_propagates(self, profiles, profile_store):
        profile_store.add("test-user-123")
        gateway = FakeAuthGateway(session=make_session())
        gateway.sign_out_error = ExternalServiceError("down", service="auth")
        cache = make_cache(gateway, profiles)
        await cache.initialize()

        with pytest.raises(ExternalServiceError):
            await cache.sign_out()

        assert cache.is_loading is False
        assert cache.is_authenticated is True
        cache.close()
