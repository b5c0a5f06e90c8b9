"""
Post-authentication grace token.

Issued by the callback right after a successful sign-in and accepted by the
route guard for a few seconds, so the first navigation after sign-in is not
bounced to the login page while session cookies settle. Replaces trusting
the Referer header, which browsers may omit or clients may forge.
"""

import logging
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from shared.config import Settings
from shared.cookies import CookieJar

logger = logging.getLogger(__name__)

GRACE_COOKIE_NAME = "auth_grace"
GRACE_SALT = "keystone-post-auth-grace-v1"


class GraceTokens:
    """Issue and verify signed, short-lived grace tokens."""

    def __init__(self, settings: Settings):
        self._ttl = settings.post_auth_grace_seconds
        self._serializer: Optional[URLSafeTimedSerializer] = None
        if settings.session_secret and self._ttl > 0:
            self._serializer = URLSafeTimedSerializer(
                secret_key=settings.session_secret,
                salt=GRACE_SALT,
            )

    @property
    def enabled(self) -> bool:
        return self._serializer is not None

    def issue(self, jar: CookieJar, user_id: str) -> None:
        if self._serializer is None:
            return
        jar.set(GRACE_COOKIE_NAME, self._serializer.dumps(user_id), max_age=self._ttl)

    def verify(self, token: Optional[str]) -> Optional[str]:
        """Return the user ID carried by a valid, unexpired token, else None."""
        if self._serializer is None or not token:
            return None
        try:
            user_id = self._serializer.loads(token, max_age=self._ttl)
        except SignatureExpired:
            return None
        except BadSignature:
            logger.warning("Rejected grace token with a bad signature")
            return None
        return user_id if isinstance(user_id, str) else None
