"""Main entry point for running the Bastion FastAPI application."""

import os

import uvicorn
from loguru import logger

from src.api.main import app
from src.core.config import get_settings
from src.core.logging import setup_logging


def build_uvicorn_log_config() -> dict[str, object]:
    """Route uvicorn's loggers through the Loguru intercept handler.

    Returns:
        dict[str, object]: A ``logging.config.dictConfig`` mapping.
    """
    handler = {"handlers": ["default"], "level": "INFO", "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {"class": "src.core.logging.InterceptHandler"},
        },
        "loggers": {
            "uvicorn": handler,
            "uvicorn.error": handler,
            "uvicorn.access": handler,
        },
    }


def main() -> None:
    """Main entry point for the Bastion application."""
    settings = get_settings()
    setup_logging(settings)

    # Cloud Run sets PORT to the port the container should listen on
    port = int(os.environ.get("PORT", settings.api_port))
    mode = "development mode with auto-reload" if settings.debug else "production mode"
    logger.info(f"Starting Uvicorn on http://{settings.api_host}:{port} ({mode})")

    # Reload needs the application as an import string
    uvicorn.run(
        "src.api.main:app" if settings.debug else app,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=build_uvicorn_log_config(),
        # add_custom_forwarded_headers decides which proxies are trusted
        proxy_headers=False,
    )


if __name__ == "__main__":
    main()
