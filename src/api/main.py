"""FastAPI application initialization and configuration module.

This module serves as the main entry point for the Bastion API application.
It handles:
- Application lifecycle management (startup/shutdown)
- Exception handler and service registration
- Health check and service information endpoints
- OpenTelemetry instrumentation

Middleware are executed in reverse order of registration. Request logging is
registered first so that it runs inside the correlation ID middleware and
every request log carries the correlation ID.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI
from loguru import logger

from src.api.caching import ResponseCache
from src.api.dependencies import get_application_options
from src.api.extensions import add_custom_services
from src.api.middleware.error_handler import register_exception_handlers
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.utils.responses import ORJSONResponse
from src.api.versioning import ApiVersion, VersionedAPIRouter, get_api_version
from src.core.config import Settings, get_settings
from src.core.logging import setup_logging
from src.core.observability import instrument_app, setup_tracing
from src.infrastructure.cache import DistributedCache


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan events.

    Args:
        app_instance: The FastAPI application instance.

    Yields:
        None: Nothing is yielded, this is just a lifespan context.
    """
    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    distributed_cache: DistributedCache | None = getattr(
        app_instance.state, "distributed_cache", None
    )
    if distributed_cache is not None:
        await distributed_cache.close()
    logger.info("Application shutdown complete")


def create_info_router(settings: Settings) -> VersionedAPIRouter:
    """Build the router serving service information.

    Args:
        settings: Application settings.

    Returns:
        VersionedAPIRouter: Router for the ``/info`` endpoint.
    """
    router = VersionedAPIRouter(
        api_versions=[settings.api_versioning.default_version], tags=["info"]
    )

    @router.get(
        "/info",
        name="get_info",
        dependencies=[Depends(ResponseCache("NoCache", settings.cache_profiles))],
    )
    async def info(
        app_settings: Annotated[Settings, Depends(get_application_options)],
        api_version: Annotated[ApiVersion | None, Depends(get_api_version)],
    ) -> dict[str, Any]:
        """Get application information.

        Args:
            app_settings: Application settings injected via dependency.
            api_version: The API version negotiated for the request.

        Returns:
            dict[str, Any]: Application information including name, version,
                environment and API version.
        """
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
            "api_version": str(api_version) if api_version else None,
        }

    return router


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=settings.app_description,
        debug=settings.debug,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    register_exception_handlers(application)
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)
    add_custom_services(application, settings)

    @application.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint returning a hello world message.

        Returns:
            dict[str, str]: A dictionary containing a welcome message.
        """
        return {"message": f"Hello from {settings.app_name}!"}

    @application.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint for monitoring and container orchestration.

        Returns:
            dict[str, str]: The service status.
        """
        return {"status": "healthy"}

    application.include_router(create_info_router(settings))

    instrument_app(application, settings)

    return application


app = create_app()
