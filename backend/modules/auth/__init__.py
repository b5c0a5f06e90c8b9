"""
Authentication module.

Handles the PKCE OAuth flow, password sign-in, route gating and bearer
token validation.

Public API:
- IAuthService / IAuthGateway: Interfaces
- generate_pair / derive_challenge: PKCE challenge generation
- CookieVerifierStore: PKCE verifier persistence
- CallbackOrchestrator / ExchangeGuard: OAuth callback handling
- RouteGuard / RouteRules: Navigation gating
- SessionCache: Session + profile mirror
- AuthActions: Sign-in, registration and sign-out outcomes
- Auth exceptions: CodeExchangeError, SessionExpiredError, etc.
"""

from .interfaces import IAuthGateway, IAuthService
from .models import (
    AuthEvent,
    AuthEventType,
    CallbackParams,
    ExchangeResult,
    JWTPayload,
    OAuthStart,
    Session,
    SessionSnapshot,
    SignInOutcome,
)
from .pkce import CHALLENGE_METHOD, PKCEPair, derive_challenge, generate_pair, generate_verifier
from .verifier_store import CookieVerifierStore, VerifierStore
from .callback import CallbackOrchestrator, CallbackResult, CallbackState, ExchangeGuard
from .guard import GuardAction, GuardDecision, RouteGuard, RouteRules
from .session_cache import SessionCache
from .actions import AuthActions
from .exceptions import (
    AuthServiceUnavailableError,
    CodeAlreadyClaimedError,
    CodeExchangeError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidTokenError,
    MissingAuthorizationCodeError,
    MissingTokenError,
    OAuthProviderError,
    SessionExpiredError,
)

__all__ = [
    # Interfaces
    "IAuthGateway",
    "IAuthService",
    # Models
    "AuthEvent",
    "AuthEventType",
    "CallbackParams",
    "ExchangeResult",
    "JWTPayload",
    "OAuthStart",
    "Session",
    "SessionSnapshot",
    "SignInOutcome",
    # PKCE
    "CHALLENGE_METHOD",
    "PKCEPair",
    "derive_challenge",
    "generate_pair",
    "generate_verifier",
    "CookieVerifierStore",
    "VerifierStore",
    # Flow
    "AuthActions",
    "CallbackOrchestrator",
    "CallbackResult",
    "CallbackState",
    "ExchangeGuard",
    "GuardAction",
    "GuardDecision",
    "RouteGuard",
    "RouteRules",
    "SessionCache",
    # Exceptions
    "AuthServiceUnavailableError",
    "CodeAlreadyClaimedError",
    "CodeExchangeError",
    "ExpiredTokenError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "MissingAuthorizationCodeError",
    "MissingTokenError",
    "OAuthProviderError",
    "SessionExpiredError",
]
