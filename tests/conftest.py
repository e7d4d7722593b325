"""Root conftest.py for the Bastion test suite.

This file contains project-wide fixtures and pytest configuration.
"""

import os
from collections.abc import Callable, Generator
from typing import Any

import pytest

from src.core.config import Settings, get_settings
from src.core.context import RequestContext
from src.core.error_context import _get_sensitive_fields

SettingsFactory = Callable[..., Settings]

# Environment variables read by Settings, cleared around each test
SETTINGS_ENV_PREFIXES = (
    "APP_",
    "API_",
    "ENVIRONMENT",
    "DEBUG",
    "FEATURES__",
    "COMPRESSION__",
    "CACHE_PROFILES",
    "CACHING__",
    "FORWARDED_HEADERS__",
    "HOST_FILTERING__",
    "HSTS__",
    "API_VERSIONING__",
    "SWAGGER__",
    "CORRELATION_ID__",
    "LOG_CONFIG__",
    "OBSERVABILITY_CONFIG__",
)


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings before and after each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove settings environment variables so each test starts from defaults.

    Args:
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        pytest.MonkeyPatch: The monkeypatch instance for env manipulation.
    """
    for key in list(os.environ):
        if key.startswith(SETTINGS_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("K_SERVICE", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear the request context before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def settings_factory() -> SettingsFactory:
    """Build Settings with tracing off and quiet logging unless overridden.

    Usage:
        def test_something(settings_factory):
            settings = settings_factory(features={"versioning": False})

    Returns:
        SettingsFactory: Callable accepting Settings field overrides.
    """

    def factory(**overrides: Any) -> Settings:  # noqa: ANN401 - Settings field values
        values: dict[str, Any] = {
            "app_name": "TestApp",
            "app_description": "Test API.",
            "log_config": {"log_level": "WARNING"},
            "observability_config": {"enable_tracing": False},
        }
        values.update(overrides)
        return Settings(**values)

    return factory
