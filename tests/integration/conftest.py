"""Shared fixtures for integration tests.

Every client wraps a fresh application built by ``create_app`` so tests can
switch features on and off through ``Settings`` without touching the
module-level application.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.api.main import create_app
from src.core.config import Settings

SettingsFactory = Callable[..., Settings]
AppClientFactory = Callable[..., Awaitable[AsyncClient]]


@pytest.fixture
async def client_with_settings(
    settings_factory: SettingsFactory,
) -> AsyncGenerator[AppClientFactory]:
    """Factory fixture for creating test clients with custom settings.

    Usage:
        async def test_something(client_with_settings):
            client = await client_with_settings(features={"swagger": False})

    The keyword arguments are Settings overrides; ``base_url`` selects the
    scheme and host the requests are sent to.
    """
    clients: list[AsyncClient] = []

    async def _create_client(
        base_url: str = "http://test",
        **overrides: Any,  # noqa: ANN401 - Settings field values
    ) -> AsyncClient:
        app = create_app(settings_factory(**overrides))
        client = AsyncClient(transport=ASGITransport(app=app), base_url=base_url)
        clients.append(client)
        return client

    yield _create_client

    for client in clients:
        await client.aclose()


@pytest.fixture
def app(settings_factory: SettingsFactory) -> FastAPI:
    """Application with every default feature enabled."""
    return create_app(settings_factory())


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create a test client for the default application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
