"""
Auth actions.

The functions the front end calls: each returns a NavigationOutcome or a
SignInOutcome and never lets an exception escape to the caller.
"""

import logging
import re
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from shared.config import Settings
from shared.exceptions import ConfigurationError, KeystoneError
from shared.models import NavigationOutcome
from modules.profiles.exceptions import ProfileProvisioningError
from modules.profiles.interfaces import IProfileService

from .forms import LoginForm, RegisterForm, field_errors
from .interfaces import IAuthGateway
from .models import SignInOutcome
from .pkce import generate_pair
from .verifier_store import VerifierStore

logger = logging.getLogger(__name__)

_PROVIDER = re.compile(r"^[a-z0-9_-]{2,32}$")


class AuthActions:
    """Sign-in, registration and sign-out for one request."""

    def __init__(
        self,
        gateway: IAuthGateway,
        verifier_store: VerifierStore,
        profiles: IProfileService,
        settings: Settings,
    ):
        self._gateway = gateway
        self._verifiers = verifier_store
        self._profiles = profiles
        self._settings = settings

    def _configuration_outcome(self, error: ConfigurationError) -> NavigationOutcome:
        logger.error("Auth action aborted, configuration missing: %s", error.setting)
        message = "Server configuration error"
        return NavigationOutcome(
            error=message,
            url=f"{self._settings.error_path}?message={quote(message, safe='')}",
        )

    async def start_oauth(self, provider: str) -> NavigationOutcome:
        """
        Begin an OAuth sign-in with PKCE.

        The verifier is queued on the response cookies before the
        authorization URL is handed back, so it is persisted by the time
        the browser follows the URL.
        """
        if not _PROVIDER.match(provider or ""):
            return NavigationOutcome(error="Unsupported sign-in provider")
        try:
            redirect_to = self._settings.callback_url
            if not redirect_to:
                raise ConfigurationError("APP_URL")
            pair = generate_pair()
            start = await self._gateway.start_oauth(provider, pair.challenge, redirect_to)
            self._verifiers.save(pair.verifier)
        except ConfigurationError as e:
            return self._configuration_outcome(e)
        except KeystoneError as e:
            logger.error("OAuth sign-in start failed for %s: %s", provider, e.code)
            return NavigationOutcome(error="Failed to initiate authentication")
        return NavigationOutcome(url=start.url)

    async def password_sign_in(self, email: str, password: str) -> SignInOutcome:
        try:
            form = LoginForm(email=email, password=password)
        except PydanticValidationError as e:
            return SignInOutcome(error="Validation error", field_errors=field_errors(e))
        try:
            await self._gateway.password_sign_in(form.email, form.password)
        except KeystoneError as e:
            logger.info("Password sign-in rejected: %s", e.code)
            return SignInOutcome(error=e.message)
        return SignInOutcome(success=True)

    async def register(self, email: str, password: str) -> SignInOutcome:
        """
        Create an account, provision its profile, and sign it in.

        If the profile cannot be provisioned the new session is signed out
        so no half-created account stays signed in.
        """
        try:
            form = RegisterForm(email=email, password=password)
        except PydanticValidationError as e:
            return SignInOutcome(error="Validation error", field_errors=field_errors(e))

        try:
            identity = await self._gateway.sign_up(form.email, form.password)
        except KeystoneError as e:
            logger.info("Registration rejected: %s", e.code)
            return SignInOutcome(error=e.message)

        try:
            await self._profiles.ensure_profile(identity)
        except ProfileProvisioningError as e:
            logger.error("Profile provisioning failed after registration: %s", e.details)
            try:
                await self._gateway.sign_out()
            except KeystoneError as sign_out_error:
                logger.error("Sign-out after failed registration also failed: %s", sign_out_error.code)
            return SignInOutcome(error="Failed to create user profile. Please try again.")

        try:
            await self._gateway.password_sign_in(form.email, form.password)
        except KeystoneError as e:
            return SignInOutcome(error=e.message)
        return SignInOutcome(success=True)

    async def sign_out(self) -> NavigationOutcome:
        try:
            await self._gateway.sign_out()
        except KeystoneError as e:
            logger.error("Sign out failed: %s", e.code)
            return NavigationOutcome(error="Failed to sign out")
        return NavigationOutcome(url=self._settings.login_path)
