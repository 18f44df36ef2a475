"""
Shared fixtures for integration tests.

These fixtures provide a service-role Supabase client, an admin session and a
FastAPI TestClient wired to the real database. Question generation uses the
in-memory FakeGenerationClient, so no AI provider is needed.
"""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from supabase import Client, create_client

from api.v1.pool.dependencies import get_pool_controller
from api.v1.pool.service import PoolMaintenanceController
from app import create_app
from config.settings import ADMIN_USER_TYPE
from services.generation_settings import SettingsRepository
from services.question_store import GenerationLogRepository, QuestionStore
from tests.utils.fakes import FakeGenerationClient

# Seeded into the local Supabase auth schema.
TEST_USER_EMAIL = "test@example.com"
TEST_USER_PASSWORD = "password123"

FAKE_PROVIDER = "fake"


@pytest.fixture(scope="session")
def env() -> dict[str, str]:
    """Load and validate required environment variables for integration tests."""
    load_dotenv()

    required_vars = {
        "SUPABASE_URL": os.getenv("SUPABASE_URL"),
        "SUPABASE_ANON_KEY": os.getenv("SUPABASE_ANON_KEY"),
        "SUPABASE_SERVICE_KEY": os.getenv("SUPABASE_SERVICE_KEY"),
    }
    missing = [name for name, value in required_vars.items() if not value]
    if missing:
        pytest.skip("Missing env vars for integration tests: " + ", ".join(missing))

    return required_vars


@pytest.fixture(scope="session")
def service_supabase_client(env: dict[str, str]) -> Client:
    """Supabase client with service role key, used for setup and teardown."""
    return create_client(env["SUPABASE_URL"], env["SUPABASE_SERVICE_KEY"])


@pytest.fixture(scope="session")
def admin_session(env: dict[str, str], service_supabase_client: Client) -> dict[str, Any]:
    """Sign in as the seeded test user and make sure it is an admin."""
    client = create_client(env["SUPABASE_URL"], env["SUPABASE_ANON_KEY"])
    auth_response = client.auth.sign_in_with_password(
        {"email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD}
    )

    session = getattr(auth_response, "session", None)
    user = getattr(auth_response, "user", None)
    token = getattr(session, "access_token", None)
    user_id = getattr(user, "id", None)
    if not token or not user_id:
        pytest.fail("Failed to sign in the test user")

    service_supabase_client.table("users").upsert(
        {"id": user_id, "email": TEST_USER_EMAIL, "user_type": ADMIN_USER_TYPE}
    ).execute()

    return {"access_token": token, "user_id": user_id}


@pytest.fixture(scope="session")
def generation_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture(scope="session")
def app(service_supabase_client: Client, generation_client: FakeGenerationClient):
    """
    Create the application against the test Supabase instance.

    require_supabase_user calls get_supabase_client directly, so it is patched
    as well as overridden.
    """
    from api.v1.auth import get_supabase_client

    get_supabase_client.cache_clear()

    controller = PoolMaintenanceController(
        store=QuestionStore(service_supabase_client),
        settings_repository=SettingsRepository(service_supabase_client),
        generation_client=generation_client,
        log_repository=GenerationLogRepository(service_supabase_client),
        call_timeout=10.0,
        max_batches_per_run=1,
    )

    app_instance = create_app(start_maintenance=False)
    app_instance.dependency_overrides[get_supabase_client] = lambda: service_supabase_client
    app_instance.dependency_overrides[get_pool_controller] = lambda: controller

    with patch("api.v1.auth.get_supabase_client", return_value=service_supabase_client):
        yield app_instance


@pytest.fixture(scope="session")
def test_client(app, admin_session: dict[str, Any]) -> Generator[TestClient, None, None]:
    with TestClient(app) as client:
        client.headers["Authorization"] = f"Bearer {admin_session['access_token']}"
        yield client


@pytest.fixture
def cleanup_generated_questions(service_supabase_client: Client):
    """Delete questions inserted by the fake provider after the test."""
    yield
    service_supabase_client.table("questions").delete().eq("ai_provider", FAKE_PROVIDER).execute()
