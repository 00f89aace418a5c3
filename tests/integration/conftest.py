"""
Fixtures for API tests.

The FastAPI app runs in-process through httpx.ASGITransport with the session
factory and webhook tester dependencies overridden.
"""

import httpx
import pytest
from jose import jwt

from api.dependencies import get_webhook_tester
from api.main import app
from booking.services.webhook_tester import WebhookTester
from database.connection import get_session_factory
from shared.config import get_settings


def make_token(auth_id: str, secret: str | None = None) -> str:
    settings = get_settings()
    return jwt.encode({"sub": auth_id}, secret or settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def bearer(auth_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(auth_id)}"}


@pytest.fixture
def webhook_function_status():
    """Status code answered by the fake webhook test function."""
    return {"code": 200}


@pytest.fixture
async def client(session_factory, webhook_function_status):
    transport = httpx.MockTransport(
        lambda request: httpx.Response(webhook_function_status["code"], json={"delivered": True})
    )

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_webhook_tester] = lambda: WebhookTester(transport=transport)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user.auth_id)


@pytest.fixture
def superadmin_headers(superadmin_user):
    return bearer(superadmin_user.auth_id)


@pytest.fixture
def headers_for():
    """Authorization headers for an arbitrary identity."""
    return bearer
