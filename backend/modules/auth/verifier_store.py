"""
PKCE verifier persistence across the identity-provider round trip.

This deployment uses the server-mediated strategy: the verifier lives in an
httponly cookie set by the sign-in action and read by the callback. The
cookie value is signed and timestamped so an expired or tampered verifier
is rejected server-side even if the browser still sends it.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from shared.config import Settings
from shared.cookies import CookieJar
from shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

VERIFIER_SALT = "keystone-pkce-verifier-v1"


@runtime_checkable
class VerifierStore(Protocol):
    """Holds one PKCE verifier for the duration of a sign-in attempt."""

    def save(self, verifier: str) -> None:
        ...

    def load(self) -> Optional[str]:
        """Return the stored verifier, or None if absent or expired. Never mutates."""
        ...

    def clear(self) -> None:
        ...


class CookieVerifierStore(VerifierStore):
    """Verifier store backed by a signed httponly cookie."""

    def __init__(self, jar: CookieJar, settings: Settings):
        if not settings.session_secret:
            raise ConfigurationError("SESSION_SECRET")
        self._jar = jar
        self._name = settings.pkce_cookie_name
        self._ttl = settings.pkce_ttl_seconds
        self._serializer = URLSafeTimedSerializer(
            secret_key=settings.session_secret,
            salt=VERIFIER_SALT,
        )

    def save(self, verifier: str) -> None:
        self._jar.set(self._name, self._serializer.dumps(verifier), max_age=self._ttl)

    def load(self) -> Optional[str]:
        raw = self._jar.get(self._name)
        if not raw:
            return None
        try:
            value = self._serializer.loads(raw, max_age=self._ttl)
        except SignatureExpired:
            logger.info("PKCE verifier cookie expired")
            return None
        except BadSignature:
            logger.warning("PKCE verifier cookie failed signature check")
            return None
        return value if isinstance(value, str) else None

    def clear(self) -> None:
        self._jar.delete(self._name)
