"""API-related constants."""

# HTTP Status Codes
HTTP_500_INTERNAL_SERVER_ERROR = 500

# HTTP Headers
REQUEST_ID_HEADER = "X-Request-ID"
API_SUPPORTED_VERSIONS_HEADER = "api-supported-versions"
API_DEPRECATED_VERSIONS_HEADER = "api-deprecated-versions"

# Content types
PROBLEM_JSON_CONTENT_TYPE = "application/problem+json"

# Built-in MIME types eligible for response compression
DEFAULT_COMPRESSION_MIME_TYPES = (
    "text/plain",
    "text/css",
    "application/javascript",
    "text/html",
    "application/xml",
    "text/xml",
    "application/json",
    "text/json",
)

# Problem details
VALIDATION_PROBLEM_TYPE = "https://tools.ietf.org/html/rfc7231#section-6.5.1"
VALIDATION_PROBLEM_DETAIL = (
    "Please refer to the errors property for additional details."
)

# OpenAPI
API_VERSIONS_EXTENSION = "x-api-versions"
OPENAPI_HTTP_METHODS = frozenset(
    {"get", "put", "post", "delete", "options", "head", "patch", "trace"}
)
DEPRECATED_VERSION_NOTICE = " This API version has been deprecated."
UNVERSIONED_DOCUMENT_NAME = "v1"
