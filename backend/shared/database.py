"""
Client factory for Supabase.

Provides the service-role client (for trusted backend writes that bypass RLS)
and request-scoped auth clients whose session storage is backed by cookies.
"""

from typing import Any, Optional
from supabase import create_client, acreate_client, Client, AsyncClient
from supabase.lib.client_options import AsyncClientOptions

from .config import Settings, get_settings
from .exceptions import ConfigurationError

# Module-level client cache
_service_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get Supabase client with service role (bypasses RLS).

    Use this for backend operations that need full database access,
    such as provisioning profiles and applying payment webhooks.
    The service-role key never leaves this process.

    Returns:
        Supabase client configured with service role key

    Raises:
        ConfigurationError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset
    """
    global _service_client

    if _service_client is None:
        settings = get_settings()
        if not settings.supabase_url:
            raise ConfigurationError("SUPABASE_URL")
        if not settings.supabase_service_role_key:
            raise ConfigurationError("SUPABASE_SERVICE_ROLE_KEY")
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


async def create_supabase_auth_client(storage: Any, settings: Optional[Settings] = None) -> AsyncClient:
    """
    Create a request-scoped Supabase client for auth operations.

    The client uses the public anon key and keeps its session in ``storage``
    (an object exposing async ``get_item``/``set_item``/``remove_item``).
    PKCE is driven by the application, so the client itself runs the implicit
    flow type and never generates a verifier of its own.

    Args:
        storage: Session storage adapter (see modules.auth.storage)
        settings: Settings to use; defaults to get_settings()

    Returns:
        AsyncClient bound to the given storage

    Raises:
        ConfigurationError: If SUPABASE_URL or SUPABASE_ANON_KEY is unset
    """
    settings = settings or get_settings()
    if not settings.supabase_url:
        raise ConfigurationError("SUPABASE_URL")
    if not settings.supabase_anon_key:
        raise ConfigurationError("SUPABASE_ANON_KEY")

    options = AsyncClientOptions(
        storage=storage,
        flow_type="implicit",
        auto_refresh_token=False,
        persist_session=True,
    )
    return await acreate_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=options,
    )


def reset_client_cache() -> None:
    """
    Reset the cached database client.

    Useful for testing or when configuration changes.
    """
    global _service_client
    _service_client = None
