"""Shared fixtures for unit tests."""

from collections.abc import Callable
from typing import cast

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pytest_mock import MockerFixture, MockType

from src.core.config import Settings

ClientFactory = Callable[..., AsyncClient]


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide Settings built from test environment variables.

    Returns:
        Settings: Settings object with test defaults.
    """
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "3000")
    monkeypatch.setenv("OBSERVABILITY_CONFIG__ENABLE_TRACING", "false")

    return Settings()


@pytest.fixture
def mock_app(mocker: MockerFixture) -> MockType:
    """Provide a mock ASGI app for middleware construction.

    Args:
        mocker: Pytest mocker fixture.

    Returns:
        MockType: Mock app.
    """
    app = mocker.Mock()
    app.__name__ = "mock_app"
    app.__module__ = "tests.unit.conftest"
    return cast("MockType", app)


@pytest.fixture
def mock_uvicorn(mocker: MockerFixture) -> MockType:
    """Mock uvicorn.run to prevent server startup.

    Args:
        mocker: Pytest mocker fixture.

    Returns:
        MockType: The mock for assertion purposes.
    """
    return mocker.patch("uvicorn.run")


@pytest.fixture
def fake_clock() -> list[float]:
    """Mutable monotonic clock for cache expiration tests.

    Tests advance time with ``fake_clock[0] += seconds`` and pass
    ``lambda: fake_clock[0]`` as the cache clock.

    Returns:
        list[float]: Single-element list holding the current time.
    """
    return [1000.0]


@pytest.fixture
def asgi_client() -> ClientFactory:
    """Build an httpx client for a small test application.

    Returns:
        ClientFactory: Callable taking the app and the base URL. Pass
            raise_app_exceptions=False to receive the 500 response instead
            of the exception.
    """

    def factory(
        app: FastAPI,
        base_url: str = "http://test",
        *,
        raise_app_exceptions: bool = True,
    ) -> AsyncClient:
        transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        return AsyncClient(transport=transport, base_url=base_url)

    return factory
