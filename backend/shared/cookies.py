"""
Request-scoped cookie jar.

Reads come from the incoming request; writes are queued and applied to
whichever response the route finally returns. Every auth cookie written by
the backend goes through here so the attributes stay consistent.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from starlette.responses import Response


@dataclass(frozen=True)
class CookiePolicy:
    """Attributes shared by all auth cookies."""

    secure: bool = False
    samesite: str = "lax"
    path: str = "/"
    httponly: bool = True


class CookieJar:
    """
    Mutable view over one request's cookies.

    ``get`` reflects writes made earlier in the same request, so a value set
    and then read back behaves like the browser would on the next request.
    """

    def __init__(self, request_cookies: Mapping[str, str], policy: CookiePolicy):
        self._cookies: dict[str, str] = dict(request_cookies)
        self._policy = policy
        # name -> (value, max_age); value None means delete
        self._pending: dict[str, tuple[Optional[str], Optional[int]]] = {}

    @property
    def policy(self) -> CookiePolicy:
        return self._policy

    def get(self, name: str) -> Optional[str]:
        return self._cookies.get(name)

    def set(self, name: str, value: str, max_age: Optional[int] = None) -> None:
        self._cookies[name] = value
        self._pending[name] = (value, max_age)

    def delete(self, name: str) -> None:
        self._cookies.pop(name, None)
        self._pending[name] = (None, None)

    @property
    def dirty(self) -> bool:
        return bool(self._pending)

    def apply(self, response: Response) -> Response:
        """Write all queued cookie changes onto ``response``."""
        for name, (value, max_age) in self._pending.items():
            if value is None:
                response.delete_cookie(
                    key=name,
                    path=self._policy.path,
                    secure=self._policy.secure,
                    httponly=self._policy.httponly,
                    samesite=self._policy.samesite,
                )
            else:
                response.set_cookie(
                    key=name,
                    value=value,
                    max_age=max_age,
                    path=self._policy.path,
                    secure=self._policy.secure,
                    httponly=self._policy.httponly,
                    samesite=self._policy.samesite,
                )
        self._pending.clear()
        return response
