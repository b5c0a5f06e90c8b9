"""
Centralized configuration for the Keystone backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., STRIPE_*, SUPABASE_*, PKCE_*).
"""

from enum import Enum
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SubscriptionLookupPolicy(str, Enum):
    """
    What the route guard does when the subscription lookup itself fails.

    FAIL_OPEN favours availability: an outage of the profile store does not
    lock every user out of premium pages. Operators should treat it as a
    security-relevant default.
    """

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Keystone API"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Base URL of the application (used to build the OAuth return address)
    app_url: str = "http://localhost:3000"

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""

    # Signing key for the verifier cookie and the post-auth grace token
    session_secret: str = ""

    # Stripe (loaded by billing module)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_price_id: str = ""

    # PKCE verifier cookie
    pkce_cookie_name: str = "code_verifier"
    pkce_ttl_seconds: int = Field(default=600, ge=300, le=600)

    # Page routes
    oauth_callback_path: str = "/auth/callback"
    login_path: str = "/login"
    register_path: str = "/register"
    landing_path: str = "/dashboard"
    pricing_path: str = "/pricing"
    error_path: str = "/error"

    # Route guard rules
    protected_prefixes: list[str] = ["/dashboard"]
    auth_paths: list[str] = ["/login", "/register"]
    subscription_prefixes: list[str] = ["/dashboard/premium"]
    subscription_lookup_policy: SubscriptionLookupPolicy = SubscriptionLookupPolicy.FAIL_OPEN

    # Callback flow
    callback_max_attempts: int = Field(default=5, ge=1)
    callback_retry_delay_seconds: float = Field(default=2.0, ge=0)
    auth_request_timeout_seconds: float = Field(default=10.0, gt=0)
    post_auth_grace_seconds: int = Field(default=30, ge=0)

    # Feature Flags
    enable_billing: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cookie_secure(self) -> bool:
        """Cookies carry the Secure flag in production only."""
        return self.is_production

    @property
    def callback_url(self) -> str:
        """Absolute OAuth return address, or an empty string if APP_URL is unset."""
        if not self.app_url:
            return ""
        return f"{self.app_url.rstrip('/')}{self.oauth_callback_path}"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
