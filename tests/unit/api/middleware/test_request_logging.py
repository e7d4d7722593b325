"""Unit tests for RequestLoggingMiddleware."""

import pytest
from pytest_mock import MockerFixture, MockType

from src.api.middleware.request_logging import (
    MAX_USER_AGENT_LENGTH,
    RequestLoggingMiddleware,
)


@pytest.fixture
def request_logging_middleware(
    mock_app: MockType, mock_log_config: MockType
) -> RequestLoggingMiddleware:
    """Middleware under test with the mocked log configuration."""
    return RequestLoggingMiddleware(mock_app, log_config=mock_log_config)


@pytest.mark.unit
class TestRequestLoggingMiddleware:
    """Test suite for RequestLoggingMiddleware."""

    def test_init_middleware(
        self,
        request_logging_middleware: RequestLoggingMiddleware,
        mock_app: MockType,
        mock_log_config: MockType,
    ) -> None:
        """Test middleware initialization with all required attributes."""
        assert request_logging_middleware.app == mock_app
        assert request_logging_middleware.log_config == mock_log_config
        assert request_logging_middleware.excluded_paths == {"/health"}

    async def test_excluded_paths_skip_logging(
        self,
        mocker: MockerFixture,
        request_logging_middleware: RequestLoggingMiddleware,
        mock_starlette_request: MockType,
        mock_starlette_call_next: MockType,
    ) -> None:
        """Test that excluded paths bypass all logging logic."""
        # Arrange
        mock_starlette_request.url.path = "/health"
        mock_logger = mocker.patch("src.api.middleware.request_logging.logger")

        # Act
        response = await request_logging_middleware.dispatch(
            mock_starlette_request, mock_starlette_call_next
        )

        # Assert
        mock_starlette_call_next.assert_awaited_once_with(mock_starlette_request)
        mock_logger.contextualize.assert_not_called()
        mock_logger.info.assert_not_called()
        assert response == mock_starlette_call_next.return_value
        assert "X-Request-ID" not in response.headers

    async def test_logs_start_and_completion(
        self,
        mocker: MockerFixture,
        request_logging_middleware: RequestLoggingMiddleware,
        mock_starlette_request: MockType,
        mock_starlette_call_next: MockType,
    ) -> None:
        """Test a request produces started and completed records."""
        # Arrange
        mock_logger = mocker.patch("src.api.middleware.request_logging.logger")

        # Act
        response = await request_logging_middleware.dispatch(
            mock_starlette_request, mock_starlette_call_next
        )

        # Assert
        messages = [call.args[0] for call in mock_logger.info.call_args_list]
        assert messages == ["Request started", "Request completed"]
        completed = mock_logger.info.call_args_list[1].kwargs
        assert completed["status_code"] == 200
        assert completed["api_version"] is None
        assert response.headers["X-Request-ID"].startswith("req-")

    async def test_context_is_bound(
        self,
        mocker: MockerFixture,
        request_logging_middleware: RequestLoggingMiddleware,
        mock_starlette_request: MockType,
        mock_starlette_call_next: MockType,
    ) -> None:
        """Test the request details are bound to every record."""
        mock_starlette_request.headers = {
            "X-Request-ID": "req-client",
            "user-agent": "pytest",
        }
        mock_logger = mocker.patch("src.api.middleware.request_logging.logger")

        await request_logging_middleware.dispatch(
            mock_starlette_request, mock_starlette_call_next
        )

        mock_logger.contextualize.assert_called_once_with(
            request_id="req-client",
            method="GET",
            path="/api/test",
            client_host="127.0.0.1",
            user_agent="pytest",
        )

    async def test_reports_api_version(
        self,
        mocker: MockerFixture,
        mock_app: MockType,
        mock_log_config: MockType,
        mock_starlette_request: MockType,
        mock_starlette_call_next: MockType,
    ) -> None:
        """Test the negotiated API version is included when present."""
        mock_starlette_request.state = mocker.Mock(api_version="2.0")
        mock_logger = mocker.patch("src.api.middleware.request_logging.logger")
        middleware = RequestLoggingMiddleware(mock_app, log_config=mock_log_config)

        await middleware.dispatch(mock_starlette_request, mock_starlette_call_next)

        completed = mock_logger.info.call_args_list[1].kwargs
        assert completed["api_version"] == "2.0"

    async def test_failure_is_logged_and_reraised(
        self,
        mocker: MockerFixture,
        request_logging_middleware: RequestLoggingMiddleware,
        mock_starlette_request: MockType,
    ) -> None:
        """Test exceptions are logged as failures and propagated."""
        # Arrange
        mock_logger = mocker.patch("src.api.middleware.request_logging.logger")
        call_next = mocker.AsyncMock(side_effect=RuntimeError("boom"))

        # Act / Assert
        with pytest.raises(RuntimeError, match="boom"):
            await request_logging_middleware.dispatch(mock_starlette_request, call_next)

        mock_logger.error.assert_called_once()
        failed = mock_logger.error.call_args
        assert failed.args[0] == "Request failed"
        assert failed.kwargs["error_type"] == "RuntimeError"

    async def test_slow_request_warning(
        self,
        mocker: MockerFixture,
        request_logging_middleware: RequestLoggingMiddleware,
        mock_starlette_request: MockType,
        mock_starlette_call_next: MockType,
    ) -> None:
        """Test requests over the threshold emit a warning."""
        mock_time = mocker.patch("src.api.middleware.request_logging.time")
        mock_time.perf_counter.side_effect = [10.0, 12.5]
        mock_logger = mocker.patch("src.api.middleware.request_logging.logger")

        await request_logging_middleware.dispatch(
            mock_starlette_request, mock_starlette_call_next
        )

        mock_logger.warning.assert_called_once_with(
            "Slow request detected", duration_ms=2500.0, threshold_ms=1000
        )

    async def test_fast_request_no_warning(
        self,
        mocker: MockerFixture,
        request_logging_middleware: RequestLoggingMiddleware,
        mock_starlette_request: MockType,
        mock_starlette_call_next: MockType,
    ) -> None:
        """Test requests under the threshold do not warn."""
        mock_time = mocker.patch("src.api.middleware.request_logging.time")
        mock_time.perf_counter.side_effect = [10.0, 10.1]
        mock_logger = mocker.patch("src.api.middleware.request_logging.logger")

        await request_logging_middleware.dispatch(
            mock_starlette_request, mock_starlette_call_next
        )

        mock_logger.warning.assert_not_called()

    @pytest.mark.parametrize(
        ("headers", "expected"),
        [
            ({}, "unknown"),
            ({"user-agent": "x" * 500}, "x" * MAX_USER_AGENT_LENGTH),
        ],
    )
    def test_user_agent(
        self, mock_starlette_request: MockType, headers: dict[str, str], expected: str
    ) -> None:
        """Test the user agent is truncated and defaults to unknown."""
        mock_starlette_request.headers = headers

        assert RequestLoggingMiddleware._user_agent(mock_starlette_request) == expected

    def test_client_host_unknown(self, mock_starlette_request: MockType) -> None:
        """Test a request without client info reports unknown."""
        mock_starlette_request.client = None

        host = RequestLoggingMiddleware._client_host(mock_starlette_request)

        assert host == "unknown"
