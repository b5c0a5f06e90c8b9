"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import pytest
from datetime import datetime, timezone, timedelta
import jwt  # PyJWT

from shared.config import Settings
from shared.cookies import CookieJar, CookiePolicy
from modules.auth.service import reset_auth_service
from modules.profiles.service import ProfileReconciler
from api.dependencies import reset_container

from tests.fakes import FakeAuthGateway, InMemoryProfileStore


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"
TEST_SESSION_SECRET = "test-session-secret-for-testing-only"


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    email_verified: bool = True,
) -> str:
    """
    Create a test JWT token for authentication.
    
    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token
        email_verified: Whether the email should be marked as verified
    
    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": user_id,
        "email": email,
        "email_confirmed_at": now.isoformat() if email_verified else None,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment's .env file."""
    values = {
        "supabase_url": "https://test-project.supabase.co",
        "supabase_anon_key": "test-anon-key",
        "supabase_service_role_key": "test-service-role-key",
        "supabase_jwt_secret": TEST_JWT_SECRET,
        "session_secret": TEST_SESSION_SECRET,
        "app_url": "http://localhost:3000",
        "callback_retry_delay_seconds": 0,
        "stripe_secret_key": "sk_test_123",
        "stripe_webhook_secret": "whsec_test_123",
        "stripe_price_id": "price_default",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(autouse=True)
def reset_auth_singleton():
    """Reset the auth service singleton before and after each test."""
    reset_auth_service()
    yield
    reset_auth_service()


@pytest.fixture(autouse=True)
def reset_service_container():
    """Start each test with an empty service container."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def jar() -> CookieJar:
    """Empty cookie jar, as for a first visit."""
    return CookieJar({}, CookiePolicy())


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def profiles(profile_store: InMemoryProfileStore) -> ProfileReconciler:
    return ProfileReconciler(profile_store)


@pytest.fixture
def gateway() -> FakeAuthGateway:
    """Auth gateway with no session."""
    return FakeAuthGateway()


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "test-user-123"


@pytest.fixture
def test_user_email() -> str:
    """Provide a consistent test user email."""
    return "test@example.com"


@pytest.fixture
def auth_token(test_user_id: str, test_user_email: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id, email=test_user_email)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}
