"""GZIP response compression restricted to an allow-list of MIME types.

Compression is skipped for HTTPS requests unless ``enable_for_https`` is
set: compressing secrets next to attacker-controlled data over TLS exposes
the response to the BREACH attack.
"""

import gzip
from collections.abc import Awaitable, Callable, Iterable
from typing import cast

from fastapi import Request, Response
from fastapi.responses import StreamingResponse
from starlette.datastructures import MutableHeaders
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.api.constants import DEFAULT_COMPRESSION_MIME_TYPES
from src.core.config import CompressionOptions


def build_mime_types(extra: Iterable[str] = ()) -> frozenset[str]:
    """Return the built-in compressible MIME types plus ``extra``.

    Args:
        extra: Additional MIME types, compared case-insensitively.

    Returns:
        frozenset[str]: The lower-cased MIME types eligible for compression.
    """
    return frozenset(
        mime_type.strip().lower()
        for mime_type in (*DEFAULT_COMPRESSION_MIME_TYPES, *extra)
        if mime_type.strip()
    )


def _accepts_gzip(request: Request) -> bool:
    accept_encoding = request.headers.get("accept-encoding", "")
    encodings = (
        part.split(";")[0].strip().lower() for part in accept_encoding.split(",")
    )
    return "gzip" in encodings


class GZipCompressionMiddleware(BaseHTTPMiddleware):
    """Compress eligible responses with GZIP.

    Args:
        app: The ASGI application.
        options: Compression options; defaults apply when omitted.
    """

    def __init__(
        self, app: ASGIApp, *, options: CompressionOptions | None = None
    ) -> None:
        super().__init__(app)
        self.options = options or CompressionOptions()
        self.mime_types = build_mime_types(self.options.mime_types)

    def _is_compressible(self, response: Response) -> bool:
        if "content-encoding" in response.headers:
            return False
        content_type = response.headers.get("content-type", "")
        media_type = content_type.split(";")[0].strip().lower()
        return media_type in self.mime_types

    def _should_compress_request(self, request: Request) -> bool:
        if request.url.scheme == "https" and not self.options.enable_for_https:
            return False
        return _accepts_gzip(request)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Compress the response body when the request and response allow it.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or route handler.

        Returns:
            Response: The original response, or a compressed copy of it.
        """
        response = await call_next(request)

        if not self._should_compress_request(request):
            return response
        if not self._is_compressible(response):
            return response

        streaming = cast("StreamingResponse", response)
        body = b"".join([chunk async for chunk in streaming.body_iterator])

        if len(body) < self.options.minimum_size:
            return _rebuild(response, body, MutableHeaders(raw=response.raw_headers))

        headers = MutableHeaders(raw=list(response.raw_headers))
        headers["Content-Encoding"] = "gzip"
        headers.add_vary_header("Accept-Encoding")
        compressed = gzip.compress(body, compresslevel=self.options.compression_level)
        return _rebuild(response, compressed, headers)


def _rebuild(original: Response, body: bytes, headers: MutableHeaders) -> Response:
    """Build a response carrying ``body`` and the headers of ``original``.

    Content-Length is recomputed; every other header, including repeated ones
    such as Set-Cookie, is kept as is.
    """
    rebuilt = Response(
        content=body,
        status_code=original.status_code,
        background=original.background,
    )
    rebuilt.raw_headers = [
        (name, value)
        for name, value in headers.raw
        if name.lower() != b"content-length"
    ]
    rebuilt.headers["Content-Length"] = str(len(body))
    return rebuilt
