"""Service extensions that register cross-cutting concerns on the application.

Each ``add_*`` function registers one concern on a FastAPI application (its
middleware stack, exception handlers, ``app.state`` services or route class)
and returns the application so calls can be chained. ``add_custom_services``
applies all of them, gated by ``Settings.features``.

Registration happens once at startup. Options are read from ``Settings`` and
are not modified afterwards; invalid combinations raise before the
application serves a request.

Middleware run in reverse order of registration, so ``add_custom_services``
registers the proxy and host middleware last: they must see the request
before anything reads its scheme or host.
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from src.api.middleware.compression import GZipCompressionMiddleware, build_mime_types
from src.api.middleware.error_handler import validation_problem_details_handler
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.security_headers import SecurityHeadersMiddleware
from src.api.openapi import register_swagger_routes
from src.api.routing import LowercaseURLRoute
from src.api.versioning import ApiVersion, ApiVersionDescriptionProvider
from src.core.config import Settings
from src.infrastructure.cache import (
    DistributedCache,
    InMemoryDistributedCache,
    MemoryCache,
    RedisDistributedCache,
)


def add_correlation_id(app: FastAPI, settings: Settings) -> FastAPI:
    """Read or generate a correlation ID for every request.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    options = settings.correlation_id
    app.state.correlation_id_options = options
    app.add_middleware(RequestContextMiddleware, options=options)
    logger.info(
        "Correlation ID enabled",
        header=options.header,
        include_in_response=options.include_in_response,
    )
    return app


def add_custom_api_behavior(app: FastAPI) -> FastAPI:
    """Return invalid request models as RFC 7807 validation problem details.

    Args:
        app: The application.

    Returns:
        FastAPI: The same application.
    """
    app.add_exception_handler(
        RequestValidationError, validation_problem_details_handler
    )
    logger.info("Validation problem details enabled")
    return app


def add_custom_caching(app: FastAPI, settings: Settings) -> FastAPI:
    """Register the in-memory cache and the distributed cache.

    The distributed cache lives in process unless ``distributed_provider`` is
    ``redis``. The application lifespan closes it on shutdown.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    options = settings.caching
    app.state.memory_cache = MemoryCache(
        default_ttl_seconds=options.default_ttl_seconds
    )

    distributed_cache: DistributedCache
    if options.distributed_provider == "redis":
        distributed_cache = RedisDistributedCache.from_url(
            options.redis_url,
            key_prefix=options.key_prefix,
            default_ttl_seconds=options.default_ttl_seconds,
        )
    else:
        distributed_cache = InMemoryDistributedCache(
            default_ttl_seconds=options.default_ttl_seconds
        )
    app.state.distributed_cache = distributed_cache

    logger.info(
        "Caching enabled",
        distributed_provider=options.distributed_provider,
        default_ttl_seconds=options.default_ttl_seconds,
    )
    return app


def add_custom_options(app: FastAPI, settings: Settings) -> FastAPI:
    """Bind the option records to ``app.state``.

    Forwarded headers options win over host filtering options when both
    features are on.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    app.state.application_options = settings
    app.state.compression_options = settings.compression
    app.state.cache_profile_options = settings.cache_profiles

    if settings.features.forwarded_headers:
        app.state.forwarded_headers_options = settings.forwarded_headers
    elif settings.features.host_filtering:
        app.state.host_filtering_options = settings.host_filtering

    logger.info(
        "Options bound",
        cache_profiles=sorted(settings.cache_profiles.root),
    )
    return app


def add_custom_forwarded_headers(app: FastAPI, settings: Settings) -> FastAPI:
    """Trust X-Forwarded-For and X-Forwarded-Proto from the configured proxies.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    trusted_hosts = settings.forwarded_headers.trusted_hosts
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=trusted_hosts)
    logger.info("Forwarded headers enabled", trusted_hosts=trusted_hosts)
    return app


def add_custom_host_filtering(app: FastAPI, settings: Settings) -> FastAPI:
    """Reject requests whose Host header is not allowed.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    options = settings.host_filtering
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=options.allowed_hosts,
        www_redirect=options.www_redirect,
    )
    logger.info("Host filtering enabled", allowed_hosts=options.allowed_hosts)
    return app


def add_custom_response_compression(app: FastAPI, settings: Settings) -> FastAPI:
    """Compress responses with GZIP.

    HTTPS responses stay uncompressed unless ``enable_for_https`` is set.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    options = settings.compression
    app.add_middleware(GZipCompressionMiddleware, options=options)
    logger.info(
        "Response compression enabled",
        mime_types=sorted(build_mime_types(options.mime_types)),
        enable_for_https=options.enable_for_https,
        compression_level=options.compression_level,
    )
    return app


def add_custom_routing(app: FastAPI) -> FastAPI:
    """Generate lower-case URLs.

    Must run before routes are declared on the application.

    Args:
        app: The application.

    Returns:
        FastAPI: The same application.
    """
    app.router.route_class = LowercaseURLRoute
    logger.info("Lower-case URL generation enabled")
    return app


def add_custom_strict_transport_security(app: FastAPI, settings: Settings) -> FastAPI:
    """Send Strict-Transport-Security on HTTPS responses.

    The ``hsts_preload`` feature replaces the configured values with those
    required by the HSTS preload list.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    hsts = settings.hsts
    if settings.features.hsts_preload:
        hsts = hsts.with_preload()

    app.add_middleware(SecurityHeadersMiddleware, hsts_enabled=True, hsts=hsts)
    logger.info(
        "Strict transport security enabled",
        max_age=hsts.max_age,
        include_subdomains=hsts.include_subdomains,
        preload=hsts.preload,
    )
    return app


def add_custom_api_versioning(app: FastAPI, settings: Settings) -> FastAPI:
    """Enable API version negotiation on versioned routes.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.

    Raises:
        InvalidApiVersionError: If a configured version cannot be parsed.
    """
    options = settings.api_versioning
    default_version = ApiVersion.parse(options.default_version)
    for version in options.deprecated_versions:
        ApiVersion.parse(version)

    app.state.api_versioning_options = options
    app.state.api_version_description_provider = ApiVersionDescriptionProvider(
        app, options
    )
    logger.info(
        "API versioning enabled",
        default_version=str(default_version),
        assume_default=options.assume_default_version_when_unspecified,
        report_api_versions=options.report_api_versions,
    )
    return app


def add_custom_swagger(app: FastAPI, settings: Settings) -> FastAPI:
    """Serve one OpenAPI document per API version and a Swagger UI.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    options = settings.swagger
    app.state.swagger_options = options
    register_swagger_routes(app, options)
    logger.info(
        "OpenAPI documents enabled",
        docs_url=options.docs_url,
        openapi_url_template=options.openapi_url_template,
    )
    return app


def add_custom_services(app: FastAPI, settings: Settings) -> FastAPI:
    """Register every enabled concern.

    Call before declaring routes, since URL generation is configured here.

    Args:
        app: The application.
        settings: Application settings.

    Returns:
        FastAPI: The same application.
    """
    features = settings.features

    add_custom_caching(app, settings)
    add_custom_options(app, settings)
    add_custom_routing(app)
    add_custom_api_behavior(app)

    if features.response_compression:
        add_custom_response_compression(app, settings)

    if features.https_everywhere:
        add_custom_strict_transport_security(app, settings)
    else:
        app.add_middleware(SecurityHeadersMiddleware, hsts_enabled=False)

    if features.correlation_id:
        add_correlation_id(app, settings)

    if features.versioning:
        add_custom_api_versioning(app, settings)

    if features.swagger:
        add_custom_swagger(app, settings)

    if features.forwarded_headers:
        add_custom_forwarded_headers(app, settings)
    elif features.host_filtering:
        add_custom_host_filtering(app, settings)

    return app
