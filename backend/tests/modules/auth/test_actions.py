"""Tests for auth actions and credential forms."""

from urllib.parse import parse_qs, urlsplit

import pytest
from pydantic import ValidationError

from modules.auth.actions import AuthActions
from modules.auth.exceptions import InvalidCredentialsError, OAuthProviderError
from modules.auth.forms import LoginForm, RegisterForm, field_errors
from modules.auth.pkce import derive_challenge
from modules.auth.verifier_store import CookieVerifierStore
from shared.exceptions import ExternalServiceError

from tests.conftest import make_settings


@pytest.fixture
def verifiers(jar, settings) -> CookieVerifierStore:
    return CookieVerifierStore(jar, settings)


@pytest.fixture
def actions(gateway, verifiers, profiles, settings) -> AuthActions:
    return AuthActions(gateway, verifiers, profiles, settings)


class TestStartOAuth:
    @pytest.mark.asyncio
    async def test_returns_authorization_url(self, actions, gateway):
        outcome = await actions.start_oauth("google")

        assert outcome.error is None
        query = parse_qs(urlsplit(outcome.url).query)
        assert query["code_challenge_method"] == ["S256"]
        assert query["redirect_to"] == ["http://localhost:3000/auth/callback"]
        assert gateway.oauth_calls[0][0] == "google"

    @pytest.mark.asyncio
    async def test_persists_the_matching_verifier(self, actions, gateway, verifiers):
        await actions.start_oauth("google")

        _, challenge, _ = gateway.oauth_calls[0]
        assert derive_challenge(verifiers.load()) == challenge

    @pytest.mark.asyncio
    async def test_each_attempt_gets_a_fresh_verifier(self, actions, gateway):
        await actions.start_oauth("google")
        await actions.start_oauth("google")

        assert gateway.oauth_calls[0][1] != gateway.oauth_calls[1][1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ["", "G", "google; drop", "x" * 40])
    async def test_rejects_malformed_provider(self, actions, gateway, provider):
        outcome = await actions.start_oauth(provider)

        assert outcome.error == "Unsupported sign-in provider"
        assert gateway.oauth_calls == []

    @pytest.mark.asyncio
    async def test_missing_app_url(self, gateway, jar, profiles):
        settings = make_settings(app_url="")
        actions = AuthActions(gateway, CookieVerifierStore(jar, settings), profiles, settings)

        outcome = await actions.start_oauth("google")

        assert outcome.error == "Server configuration error"
        assert outcome.url == "/error?message=Server%20configuration%20error"
        assert jar.get(settings.pkce_cookie_name) is None

    @pytest.mark.asyncio
    async def test_provider_refusal(self, actions, gateway, verifiers):
        async def refuse(provider, challenge, redirect_to):
            raise OAuthProviderError("provider_disabled")

        gateway.start_oauth = refuse

        outcome = await actions.start_oauth("github")

        assert outcome.error == "Failed to initiate authentication"
        assert outcome.url is None
        assert verifiers.load() is None


class TestPasswordSignIn:
    @pytest.mark.asyncio
    async def test_success(self, actions, gateway):
        outcome = await actions.password_sign_in("user@example.com", "Secret123")

        assert outcome.success is True
        assert gateway.session.user.email == "user@example.com"

    @pytest.mark.asyncio
    async def test_invalid_credentials(self, actions, gateway):
        gateway.sign_in_error = InvalidCredentialsError()

        outcome = await actions.password_sign_in("user@example.com", "wrong")

        assert outcome.success is False
        assert outcome.error == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_validation_errors(self, actions, gateway):
        outcome = await actions.password_sign_in("not-an-email", "")

        assert outcome.error == "Validation error"
        assert outcome.field_errors == {
            "email": ["Please enter a valid email address"],
            "password": ["Password is required"],
        }
        assert gateway.session is None


class TestRegister:
    @pytest.mark.asyncio
    async def test_creates_profile_and_signs_in(self, actions, gateway, profile_store):
        outcome = await actions.register("new@example.com", "Secret123")

        assert outcome.success is True
        assert "test-user-123" in profile_store.rows
        assert gateway.session is not None

    @pytest.mark.asyncio
    async def test_weak_password(self, actions):
        outcome = await actions.register("new@example.com", "secret123")

        assert outcome.field_errors == {
            "password": [
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            ]
        }

    @pytest.mark.asyncio
    async def test_sign_up_rejected(self, actions, gateway):
        gateway.sign_up_error = InvalidCredentialsError("User already registered")

        outcome = await actions.register("new@example.com", "Secret123")

        assert outcome.error == "User already registered"

    @pytest.mark.asyncio
    async def test_profile_failure_signs_out(self, actions, gateway, profile_store):
        profile_store.fail_inserts = True

        outcome = await actions.register("new@example.com", "Secret123")

        assert outcome.success is False
        assert outcome.error == "Failed to create user profile. Please try again."
        assert gateway.signed_out == 1
        assert gateway.session is None


class TestSignOut:
    @pytest.mark.asyncio
    async def test_success(self, actions, gateway):
        outcome = await actions.sign_out()

        assert outcome.url == "/login"
        assert gateway.signed_out == 1

    @pytest.mark.asyncio
    async def test_failure(self, actions, gateway):
        gateway.sign_out_error = ExternalServiceError("down", service="auth")

        outcome = await actions.sign_out()

        assert outcome.error == "Failed to sign out"
        assert outcome.url is None


class TestForms:
    @pytest.mark.parametrize(
        "password,message",
        [
            ("Ab1", "Password must be at least 6 characters"),
            ("Ab1" + "x" * 70, "Password must be less than 72 characters"),
            ("abcdef1", "Password must contain at least one uppercase letter, one lowercase letter, and one number"),
        ],
    )
    def test_register_password_rules(self, password, message):
        with pytest.raises(ValidationError) as exc_info:
            RegisterForm(email="user@example.com", password=password)
        assert field_errors(exc_info.value) == {"password": [message]}

    def test_register_accepts_strong_password(self):
        form = RegisterForm(email="user@example.com", password="Secret123")
        assert form.password == "Secret123"

    def test_login_requires_password(self):
        with pytest.raises(ValidationError) as exc_info:
            LoginForm(email="user@example.com", password="")
        assert field_errors(exc_info.value) == {"password": ["Password is required"]}


class TestProductionAppUrl:
    @pytest.mark.asyncio
    async def test_redirect_points_at_the_app_callback(self, gateway, jar, profiles):
        settings = make_settings(app_url="https://app.example.com")
        actions = AuthActions(gateway, CookieVerifierStore(jar, settings), profiles, settings)

        outcome = await actions.start_oauth("google")

        query = parse_qs(urlsplit(outcome.url).query)
        assert query["redirect_to"] == ["https://app.example.com/auth/callback"]
        assert query["code_challenge"] == [gateway.oauth_calls[0][1]]
        assert query["code_challenge_method"] == ["S256"]
        assert jar.get(settings.pkce_cookie_name) is not None
