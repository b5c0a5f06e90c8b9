"""
Fixtures for API tests.

Each test gets a fresh app whose service container holds test settings, an
in-memory profile store and a fake auth gateway in place of Supabase.
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import (
    AuthContext,
    build_cookie_jar,
    get_auth_context,
    get_container,
    get_profile_service,
    reset_container,
)
from modules.auth.verifier_store import CookieVerifierStore
from modules.profiles.service import ProfileReconciler

from tests.conftest import make_settings
from tests.fakes import FakeAuthGateway, InMemoryProfileStore


@pytest.fixture
def app_settings():
    return make_settings()


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def fake_gateway() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture
def app(app_settings, store, fake_gateway) -> FastAPI:
    reset_container(app_settings)
    get_container()._profile_store = store

    app = create_app()

    def auth_context(request: Request) -> AuthContext:
        jar = build_cookie_jar(request, app_settings)
        return AuthContext(
            jar=jar,
            gateway=fake_gateway,
            verifiers=CookieVerifierStore(jar, app_settings),
        )

    app.dependency_overrides[get_auth_context] = auth_context
    app.dependency_overrides[get_profile_service] = lambda: ProfileReconciler(store)
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, follow_redirects=False)
