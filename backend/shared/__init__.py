"""
Shared infrastructure for the Keystone backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- cookies: Request-scoped cookie jar
- retry: Bounded retry policy

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, SubscriptionLookupPolicy, get_settings
from .cookies import CookieJar, CookiePolicy
from .database import get_supabase_client, create_supabase_auth_client, reset_client_cache
from .exceptions import (
    KeystoneError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ExternalServiceError,
)
from .models import AuthenticatedUser, NavigationOutcome
from .retry import Backoff, RetryPolicy

__all__ = [
    "Settings",
    "SubscriptionLookupPolicy",
    "get_settings",
    "CookieJar",
    "CookiePolicy",
    "get_supabase_client",
    "create_supabase_auth_client",
    "reset_client_cache",
    "KeystoneError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ConfigurationError",
    "ExternalServiceError",
    "AuthenticatedUser",
    "NavigationOutcome",
    "Backoff",
    "RetryPolicy",
]
