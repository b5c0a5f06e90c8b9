"""
PKCE (Proof Key for Code Exchange) verifier and challenge generation.

The verifier is 64 characters from the RFC 7636 unreserved set; the
challenge is the URL-safe, unpadded base64 of its SHA-256 digest.
"""

import base64
import hashlib
import secrets
from typing import NamedTuple

VERIFIER_LENGTH = 64
VERIFIER_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "-._~"
)
CHALLENGE_METHOD = "S256"


class PKCEPair(NamedTuple):
    verifier: str
    challenge: str


def generate_verifier() -> str:
    """Generate a code verifier from the OS CSPRNG."""
    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(VERIFIER_LENGTH))


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for ``verifier``."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_pair() -> PKCEPair:
    """Generate a verifier and its challenge."""
    verifier = generate_verifier()
    return PKCEPair(verifier=verifier, challenge=derive_challenge(verifier))
