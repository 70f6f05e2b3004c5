"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "test-signing-key-jwk")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key123")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test_razorpay_secret")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("PENDING_ORDER_SWEEP_ENABLED", "false")

from src.schemas.auth import UserContext  # noqa: E402
from tests.fakes import TEST_EMAIL, FakeRazorpay, FakeSupabase, seed_cart_item, seed_product  # noqa: E402

TEST_USER_ID = UUID("550e8400-e29b-41d4-a716-446655440000")

# Modules that call get_supabase_client() in a service constructor
SUPABASE_CONSUMERS = (
    "src.services.order_service",
    "src.services.payment_service",
    "src.services.cart_service",
)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def fake_supabase() -> Generator[FakeSupabase, None, None]:
    """Provide an in-memory Supabase wired into every store service.

    Yields:
        FakeSupabase: The shared fake client.
    """
    fake = FakeSupabase()
    patches = [patch(f"{module}.get_supabase_client", return_value=fake) for module in SUPABASE_CONSUMERS]
    for p in patches:
        p.start()
    yield fake
    for p in patches:
        p.stop()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client for the health check.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def test_user() -> UserContext:
    """The authenticated user for route tests."""
    return UserContext(user_id=TEST_USER_ID, email=TEST_EMAIL, role="authenticated")


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide an unauthenticated test client for the FastAPI application.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_client(
    fake_supabase: FakeSupabase,
    test_user: UserContext,
) -> Generator[TestClient, None, None]:
    """Provide a test client authenticated as ``test_user`` over the fake store.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.api.deps import get_current_user
    from src.main import app

    app.dependency_overrides[get_current_user] = lambda: test_user
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def wheat_cart(fake_supabase: FakeSupabase) -> FakeSupabase:
    """Cart with 20 MT of wheat at 35000 per MT."""
    seed_product(fake_supabase, "wheat", "Wheat", "35000")
    seed_cart_item(fake_supabase, TEST_EMAIL, "wheat", "Wheat", 20)
    return fake_supabase


@pytest.fixture
def fake_razorpay() -> Generator[FakeRazorpay, None, None]:
    """Route gateway order creation to an in-memory Razorpay.

    Yields:
        FakeRazorpay: Records request bodies and issues ``order_rzpN`` ids.
    """
    fake = FakeRazorpay()
    with patch("src.services.gateway_service.get_razorpay_client", return_value=fake.client()):
        yield fake
