"""FastAPI middleware package for cross-cutting request/response concerns.

- **RequestContextMiddleware**: Correlation IDs and request context
- **GZipCompressionMiddleware**: GZIP compression for an allow-list of MIME types
- **SecurityHeadersMiddleware**: Strict-Transport-Security and related headers
- **RequestLoggingMiddleware**: Structured logging with slow request detection
- **error_handler**: Exception handlers, including validation problem details

Middleware run in reverse order of registration. ``create_app`` registers
request logging first so that it runs inside the correlation ID middleware.
"""
