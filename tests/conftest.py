"""
Pytest configuration and fixtures for pairing service tests.
"""

import os
from pathlib import Path
from typing import AsyncGenerator, Generator, List

import httpx
import pytest
from fastapi.testclient import TestClient

# Set test environment
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from pairing_api.config import Settings
from pairing_api.main import create_app
from pairing_api.pairing.service import PairingService
from pairing_api.sessions.registry import SessionRegistry
from tests.fakes import FakeClientFactory


@pytest.fixture
def auth_root(tmp_path) -> Path:
    return tmp_path / "auth"


@pytest.fixture
def test_settings(auth_root) -> Settings:
    """Create test settings with every delay disabled."""
    return Settings(
        _env_file=None,
        environment="development",
        auth_root=str(auth_root),
        session_ttl_seconds=600,
        cleanup_interval_seconds=600,
        socket_ready_delay_seconds=0,
        credentials_flush_delay_seconds=0,
        message_interval_seconds=0,
        socket_close_delay_seconds=0,
        rate_limit_enabled=False,
        cors_origins="*",
        brand_name="TEST BOT",
    )


@pytest.fixture
def client_factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def registry(auth_root) -> SessionRegistry:
    auth_root.mkdir(parents=True, exist_ok=True)
    return SessionRegistry(auth_root, ttl_seconds=600)


@pytest.fixture
def recorded_sleeps() -> List[float]:
    return []


@pytest.fixture
def pairing_service(test_settings, registry, client_factory, recorded_sleeps) -> PairingService:
    async def fake_sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    return PairingService(test_settings, registry, client_factory, sleep=fake_sleep)


@pytest.fixture
def app(test_settings, client_factory):
    return create_app(test_settings, client_factory=client_factory)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create test client; entering it runs the application lifespan."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
async def async_client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async client sharing the event loop with the app's background tasks."""
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
