"""Social Hub – Pytest Configuration.

Shared fixtures for all tests.
"""

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["META_VERIFY_TOKEN"] = "meta-verify-token"
os.environ["WHATSAPP_VERIFY_TOKEN"] = "wa-verify-token"
os.environ["META_APP_SECRET"] = ""

import pytest
from httpx import ASGITransport, AsyncClient

from app.gateway import dependencies
from app.gateway.main import app
from app.gateway.schemas import AccountPlatform, PlatformUser


@pytest.fixture(autouse=True)
def reset_hub_state():
    """Every test starts with empty stores and no dashboard attached."""
    dependencies.reset_state()
    yield
    dependencies.reset_state()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client():
    """Async test client for the FastAPI gateway."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def instagram_user() -> PlatformUser:
    user = PlatformUser(
        platform_user_id="ig-owner-1",
        access_token="ig-token",
        display_name="shopowner",
        platform=AccountPlatform.INSTAGRAM,
        authorization_code="code-1",
    )
    dependencies.credential_store.save(user)
    return user


@pytest.fixture
def facebook_user() -> PlatformUser:
    user = PlatformUser(
        platform_user_id="fb-owner-1",
        access_token="fb-user-token",
        display_name="Page Owner",
        platform=AccountPlatform.FACEBOOK,
        authorization_code="fb-code-1",
    )
    dependencies.credential_store.save(user)
    return user


class RecordingSubscriber:
    """Stand-in dashboard socket that records pushed events."""

    def __init__(self, fail: bool = False) -> None:
        self.events: list[dict] = []
        self.fail = fail

    async def send_json(self, data) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.events.append(data)


@pytest.fixture
def dashboard() -> RecordingSubscriber:
    subscriber = RecordingSubscriber()
    dependencies.live_sink.attach(subscriber)
    return subscriber
