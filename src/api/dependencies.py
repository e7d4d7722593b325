"""Dependency providers for the services registered on ``app.state``.

The service extensions store singletons on ``app.state``; these providers
hand them to endpoints through ``Depends``. A provider whose service was not
registered raises ``RuntimeError`` so a missing registration surfaces as an
error instead of a silent ``None``.
"""

from typing import Any

from fastapi import Request

from src.core.config import (
    CacheProfileOptions,
    CompressionOptions,
    ForwardedHeadersOptions,
    HostFilteringOptions,
    Settings,
)
from src.infrastructure.cache import DistributedCache, MemoryCache


def _get_state(request: Request, name: str) -> Any:  # noqa: ANN401 - app.state holds arbitrary services
    try:
        return getattr(request.app.state, name)
    except AttributeError as exc:
        msg = f"'{name}' is not registered; call the matching add_custom_* function"
        raise RuntimeError(msg) from exc


def get_application_options(request: Request) -> Settings:
    """Application settings bound by ``add_custom_options``."""
    settings: Settings = _get_state(request, "application_options")
    return settings


def get_compression_options(request: Request) -> CompressionOptions:
    """Compression options bound by ``add_custom_options``."""
    options: CompressionOptions = _get_state(request, "compression_options")
    return options


def get_cache_profile_options(request: Request) -> CacheProfileOptions:
    """Cache profiles bound by ``add_custom_options``."""
    options: CacheProfileOptions = _get_state(request, "cache_profile_options")
    return options


def get_forwarded_headers_options(request: Request) -> ForwardedHeadersOptions:
    options: ForwardedHeadersOptions = _get_state(request, "forwarded_headers_options")
    return options


def get_host_filtering_options(request: Request) -> HostFilteringOptions:
    options: HostFilteringOptions = _get_state(request, "host_filtering_options")
    return options


def get_memory_cache(request: Request) -> MemoryCache:
    """In-process cache registered by ``add_custom_caching``."""
    cache: MemoryCache = _get_state(request, "memory_cache")
    return cache


def get_distributed_cache(request: Request) -> DistributedCache:
    """Distributed cache registered by ``add_custom_caching``."""
    cache: DistributedCache = _get_state(request, "distributed_cache")
    return cache
