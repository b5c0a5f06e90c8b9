"""
Tests for the auth endpoints and the OAuth redirect target.
"""

from urllib.parse import parse_qs, urlsplit

from api.dependencies import get_container
from shared.cookies import CookieJar, CookiePolicy
from modules.auth.exceptions import CodeExchangeError, InvalidCredentialsError
from modules.auth.grace import GRACE_COOKIE_NAME
from modules.auth.pkce import derive_challenge
from modules.auth.verifier_store import CookieVerifierStore

from tests.fakes import make_session


def set_cookie_headers(response) -> list[str]:
    return response.headers.get_list("set-cookie")


def signed_verifier(settings, verifier: str = "verifier-1") -> str:
    jar = CookieJar({}, CookiePolicy())
    CookieVerifierStore(jar, settings).save(verifier)
    return jar.get(settings.pkce_cookie_name)


class TestStartOAuth:
    def test_returns_url_and_sets_verifier_cookie(self, client, app_settings, fake_gateway):
        response = client.post("/api/auth/oauth/google")

        assert response.status_code == 200
        url = response.json()["url"]
        query = parse_qs(urlsplit(url).query)
        assert query["code_challenge_method"] == ["S256"]

        cookies = [h for h in set_cookie_headers(response) if h.startswith(f"{app_settings.pkce_cookie_name}=")]
        assert len(cookies) == 1
        assert "HttpOnly" in cookies[0]
        assert "samesite=lax" in cookies[0].lower()
        assert "Max-Age=600" in cookies[0]

    def test_cookie_verifier_matches_challenge(self, client, app_settings, fake_gateway):
        response = client.post("/api/auth/oauth/google")

        raw = response.cookies.get(app_settings.pkce_cookie_name)
        jar = CookieJar({app_settings.pkce_cookie_name: raw}, CookiePolicy())
        verifier = CookieVerifierStore(jar, app_settings).load()
        _, challenge, _ = fake_gateway.oauth_calls[0]
        assert derive_challenge(verifier) == challenge

    def test_unsupported_provider(self, client):
        response = client.post("/api/auth/oauth/Not%20A%20Provider")

        assert response.status_code == 400
        assert response.json() == {"error": "Unsupported sign-in provider"}


class TestOAuthRedirectTarget:
    def test_successful_exchange_redirects_to_landing(self, client, app_settings, fake_gateway, store):
        client.cookies.set(app_settings.pkce_cookie_name, signed_verifier(app_settings))

        response = client.get("/auth/callback", params={"code": "abc"})

        assert response.status_code == 303
        assert response.headers["location"] == "http://localhost:3000/dashboard"
        assert fake_gateway.exchange_calls == [("abc", "verifier-1")]
        assert "test-user-123" in store.rows
        headers = set_cookie_headers(response)
        assert any(h.startswith(f"{app_settings.pkce_cookie_name}=") and "Max-Age=0" in h for h in headers)
        assert any(h.startswith(f"{GRACE_COOKIE_NAME}=") for h in headers)

    def test_provider_error(self, client):
        response = client.get(
            "/auth/callback", params={"error": "access_denied", "error_description": "Access denied"}
        )

        assert response.status_code == 303
        assert response.headers["location"] == "http://localhost:3000/login?error=Access%20denied"

    def test_missing_code_is_not_retried_on_redirect(self, client, fake_gateway):
        response = client.get("/auth/callback")

        assert response.headers["location"] == "http://localhost:3000/login?error=Missing%20authorization%20code"

    def test_missing_verifier(self, client):
        response = client.get("/auth/callback", params={"code": "abc"})

        location = response.headers["location"]
        assert location.startswith("http://localhost:3000/login?error=Your%20sign-in%20session%20expired")

    def test_duplicate_redirect_while_exchange_in_flight(self, client, app_settings, fake_gateway):
        get_container().exchange_guard.claim("abc")
        client.cookies.set(app_settings.pkce_cookie_name, signed_verifier(app_settings))

        response = client.get("/auth/callback", params={"code": "abc"})

        assert response.status_code == 303
        assert response.headers["location"] == "http://localhost:3000/dashboard"
        assert fake_gateway.exchange_calls == []
        headers = set_cookie_headers(response)
        assert not any(h.startswith(f"{app_settings.pkce_cookie_name}=") for h in headers)

    def test_rejected_code(self, client, app_settings, fake_gateway):
        fake_gateway.exchange_error = CodeExchangeError("invalid_grant")
        client.cookies.set(app_settings.pkce_cookie_name, signed_verifier(app_settings))

        response = client.get("/auth/callback", params={"code": "abc"})

        assert response.headers["location"].startswith("http://localhost:3000/login?error=")
        assert len(fake_gateway.exchange_calls) == 1


class TestClientCallback:
    def test_success(self, client, app_settings):
        client.cookies.set(app_settings.pkce_cookie_name, signed_verifier(app_settings))

        response = client.post(
            "/api/auth/callback", json={"url": "http://localhost:3000/auth/callback?code=abc"}
        )

        assert response.status_code == 200
        assert response.json() == {"url": "/dashboard"}

    def test_implicit_tokens_in_fragment(self, client, fake_gateway):
        response = client.post(
            "/api/auth/callback",
            json={"url": "http://localhost:3000/auth/callback#access_token=a&refresh_token=r"},
        )

        assert response.status_code == 200
        assert fake_gateway.exchange_calls == []

    def test_failure(self, client):
        response = client.post(
            "/api/auth/callback",
            json={"url": "http://localhost:3000/auth/callback?error=access_denied"},
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "Authentication failed",
            "url": "/login?error=Authentication%20failed",
        }


class TestPasswordEndpoints:
    def test_login(self, client, fake_gateway):
        response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "Secret123"})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert fake_gateway.session is not None

    def test_login_rejected(self, client, fake_gateway):
        fake_gateway.sign_in_error = InvalidCredentialsError()

        response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "wrong"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid email or password"}

    def test_login_validation(self, client):
        response = client.post("/api/auth/login", json={"email": "nope"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation error"
        assert body["field_errors"]["email"] == ["Please enter a valid email address"]

    def test_register(self, client, store):
        response = client.post("/api/auth/register", json={"email": "new@example.com", "password": "Secret123"})

        assert response.status_code == 200
        assert "test-user-123" in store.rows

    def test_logout(self, client, fake_gateway):
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"url": "/login"}
        assert fake_gateway.signed_out == 1


class TestSessionEndpoint:
    def test_signed_out(self, client):
        response = client.get("/api/auth/session")

        assert response.status_code == 200
        body = response.json()
        assert body["is_authenticated"] is False
        assert body["is_loading"] is False

    def test_signed_in(self, client, fake_gateway, store):
        fake_gateway.session = make_session()
        store.add("test-user-123")

        body = client.get("/api/auth/session").json()

        assert body["is_authenticated"] is True
        assert body["user"]["id"] == "test-user-123"
        assert body["profile"]["email"] == "test@example.com"
