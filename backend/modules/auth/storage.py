"""
Cookie adapter for the Supabase auth client's session storage.

The auth client persists its session through ``get_item``/``set_item``/
``remove_item``; this adapter maps each storage key to httponly cookies in
the request's CookieJar. Values are base64url-encoded so JSON survives
cookie quoting rules.

An OAuth session (user metadata and identities, twice) is larger than the
4096 bytes a browser keeps per cookie, so long values are split across
``<name>.0``, ``<name>.1``, ... and reassembled on read. A value that fits
is stored under the bare name.
"""

import base64
import binascii
import re
from typing import Optional

from shared.cookies import CookieJar

SESSION_MAX_AGE = 60 * 60 * 24 * 7
SESSION_COOKIE_PREFIX = "sb-"

# Leaves room for the name and attributes under the 4096-byte limit
CHUNK_SIZE = 3180

_UNSAFE_COOKIE_CHARS = re.compile(r"[^A-Za-z0-9!#$%&'*+\-.^_`|~]")


def cookie_name_for(key: str) -> str:
    """Map a storage key to a valid cookie name."""
    return SESSION_COOKIE_PREFIX + _UNSAFE_COOKIE_CHARS.sub("-", key)


def chunk_name(name: str, index: int) -> str:
    return f"{name}.{index}"


class CookieSessionStorage:
    """Async storage interface expected by the Supabase auth client."""

    def __init__(self, jar: CookieJar, max_age: int = SESSION_MAX_AGE, chunk_size: int = CHUNK_SIZE):
        self._jar = jar
        self._max_age = max_age
        self._chunk_size = chunk_size

    def _chunks(self, name: str) -> list[str]:
        chunks: list[str] = []
        while True:
            chunk = self._jar.get(chunk_name(name, len(chunks)))
            if chunk is None:
                return chunks
            chunks.append(chunk)

    def _delete_chunks(self, name: str, start: int = 0) -> None:
        index = start
        while self._jar.get(chunk_name(name, index)) is not None:
            self._jar.delete(chunk_name(name, index))
            index += 1

    async def get_item(self, key: str) -> Optional[str]:
        name = cookie_name_for(key)
        raw = self._jar.get(name) or "".join(self._chunks(name))
        if not raw:
            return None
        try:
            return base64.urlsafe_b64decode(raw.encode("ascii")).decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError):
            return None

    async def set_item(self, key: str, value: str) -> None:
        name = cookie_name_for(key)
        encoded = base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii")

        if len(encoded) <= self._chunk_size:
            self._jar.set(name, encoded, max_age=self._max_age)
            self._delete_chunks(name)
            return

        parts = [encoded[i:i + self._chunk_size] for i in range(0, len(encoded), self._chunk_size)]
        for index, part in enumerate(parts):
            self._jar.set(chunk_name(name, index), part, max_age=self._max_age)
        # a shorter session must not be read back with a longer one's tail
        self._delete_chunks(name, start=len(parts))
        if self._jar.get(name) is not None:
            self._jar.delete(name)

    async def remove_item(self, key: str) -> None:
        name = cookie_name_for(key)
        self._jar.delete(name)
        self._delete_chunks(name)
