"""Correlation ID middleware.

The correlation ID is taken from the configured request header, or generated
as a UUID4 when the client sent none. It is stored in ``RequestContext``,
bound to every Loguru record emitted while the request is processed and,
depending on ``CorrelationIdOptions``, exposed as
``request.state.trace_identifier`` and echoed in the response.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.core.config import CorrelationIdOptions
from src.core.context import RequestContext, resolve_correlation_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to manage request context and correlation IDs.

    Args:
        app: The ASGI application.
        options: Correlation ID options; defaults apply when omitted.
    """

    def __init__(
        self, app: ASGIApp, *, options: CorrelationIdOptions | None = None
    ) -> None:
        super().__init__(app)
        self.options = options or CorrelationIdOptions()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with context management.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with correlation ID header.
        """
        header_value = request.headers.get(self.options.header)
        correlation_id = resolve_correlation_id(header_value)

        RequestContext.set_correlation_id(correlation_id)
        if self.options.update_trace_identifier:
            request.state.trace_identifier = correlation_id

        # contextualize removes the binding once the request completes
        with logger.contextualize(correlation_id=correlation_id):
            response = await call_next(request)

            if self.options.include_in_response:
                response.headers[self.options.header] = correlation_id

            return response
