"""Security headers middleware, including Strict-Transport-Security.

The HSTS header only has meaning over TLS, so it is added to HTTPS responses
only, and never for excluded hosts (localhost by default) so that a developer
machine does not pin HTTPS for every local project.
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.config import HstsOptions


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    This middleware adds the following security headers:
    - X-Content-Type-Options: nosniff - Prevents MIME type sniffing
    - X-Frame-Options: DENY - Prevents clickjacking attacks
    - X-XSS-Protection: 1; mode=block - Enables XSS filtering in older browsers
    - Strict-Transport-Security (HTTPS requests, when HSTS is enabled)

    Args:
        app: The ASGI application to wrap.
        hsts_enabled: Whether to include the HSTS header.
        hsts: HSTS options; defaults apply when omitted.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        hsts_enabled: bool = True,
        hsts: HstsOptions | None = None,
    ) -> None:
        super().__init__(app)
        self.hsts_enabled = hsts_enabled
        self.hsts = hsts or HstsOptions()
        self.excluded_hosts = {host.lower() for host in self.hsts.excluded_hosts}
        self.hsts_header = self._build_hsts_header()

    def _build_hsts_header(self) -> str:
        """Build the Strict-Transport-Security header value.

        Returns:
            str: The HSTS header value string.
        """
        parts = [f"max-age={self.hsts.max_age}"]

        if self.hsts.include_subdomains:
            parts.append("includeSubDomains")

        if self.hsts.preload:
            parts.append("preload")

        return "; ".join(parts)

    def _should_send_hsts(self, request: Request) -> bool:
        if not self.hsts_enabled or request.url.scheme != "https":
            return False
        host = (request.url.hostname or "").lower()
        if ":" in host:
            # IPv6 literals are listed in bracketed form
            host = f"[{host}]"
        return host not in self.excluded_hosts

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Add security headers to the response.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or route handler.

        Returns:
            Response: The HTTP response with security headers added.
        """
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"

        if self._should_send_hsts(request):
            response.headers["Strict-Transport-Security"] = self.hsts_header

        return response
