"""Fixtures for API middleware tests."""

from typing import cast

import pytest
from pytest_mock import MockerFixture, MockType
from starlette.datastructures import URL
from starlette.middleware.base import RequestResponseEndpoint
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from src.core.config import LogConfig


@pytest.fixture
def mock_starlette_request(mocker: MockerFixture) -> MockType:
    """Create mock Starlette Request for an HTTP request to localhost.

    Args:
        mocker: Pytest mocker fixture.

    Returns:
        MockType: Mock request object with editable headers and URL.
    """
    request = mocker.Mock(spec=StarletteRequest)
    request.method = "GET"
    request.headers = {}
    request.query_params = {}
    request.url = mocker.Mock(spec=URL)
    request.url.path = "/api/test"
    request.url.scheme = "http"
    request.url.hostname = "localhost"
    request.client = mocker.Mock()
    request.client.host = "127.0.0.1"
    request.state = mocker.Mock(spec=[])
    return cast("MockType", request)


@pytest.fixture
def mock_starlette_response(mocker: MockerFixture) -> MockType:
    """Create mock Starlette Response.

    Args:
        mocker: Pytest mocker fixture.

    Returns:
        MockType: Mock response object.
    """
    response = mocker.Mock(spec=StarletteResponse)
    response.status_code = 200
    response.headers = {}
    return cast("MockType", response)


@pytest.fixture
def mock_starlette_call_next(
    mocker: MockerFixture, mock_starlette_response: MockType
) -> MockType:
    """Create mock RequestResponseEndpoint callable.

    Args:
        mocker: Pytest mocker fixture.
        mock_starlette_response: Mock response fixture.

    Returns:
        MockType: Mock call_next function.
    """
    call_next = mocker.AsyncMock(spec=RequestResponseEndpoint)
    call_next.return_value = mock_starlette_response
    return cast("MockType", call_next)


@pytest.fixture
def mock_log_config(mocker: MockerFixture) -> MockType:
    """Create a mock LogConfig object.

    Returns:
        MockType: Mock LogConfig with default values.
    """
    config = mocker.Mock(spec=LogConfig)
    config.excluded_paths = ["/health"]
    config.slow_request_threshold_ms = 1000
    return cast("MockType", config)

