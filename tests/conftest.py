"""Root conftest - shared test configuration and helpers."""

import os

# Human-readable logs when a test enables logging
os.environ.setdefault("SWITCHYARD_LOG_FORMAT", "text")

import pytest
from httpx import ASGITransport, AsyncClient

from switchyard.api.application import create_app
from switchyard.api.route import get_default_validator
from switchyard.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings and the default validator are cached per process."""
    get_settings.cache_clear()
    get_default_validator.cache_clear()
    yield
    get_settings.cache_clear()
    get_default_validator.cache_clear()


@pytest.fixture
async def client_for():
    """Factory: root Switch (+ create_app kwargs) → httpx client over ASGI."""
    clients: list[AsyncClient] = []

    def factory(root, **kwargs) -> AsyncClient:
        app = create_app(root, **kwargs)
        client = AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        )
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.aclose()
