"""Centralized configuration management with environment-aware defaults.

This module implements the configuration system using Pydantic Settings,
providing type-safe option records that are bound once at startup and handed
to the service extensions unchanged.

Features:
- **Type safety**: All configuration values are validated and typed
- **Environment variables**: Supports .env files and environment overrides
- **Nested configuration**: Uses __ delimiter for option sections
- **Feature flags**: Toggle each cross-cutting concern independently
- **Fail fast**: Invalid option combinations raise at startup
- **Caching**: Configuration is cached for the process lifetime

Configuration sources (in order of precedence):
1. Environment variables
2. .env file in project root
3. Default values in model definitions
4. Environment-based defaults (production vs development)
"""

import os
from functools import lru_cache
from typing import Literal, Self

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.constants import (
    DEFAULT_HSTS_MAX_AGE,
    HSTS_PRELOAD_MAX_AGE,
    HSTS_PRELOAD_MIN_MAX_AGE,
    ONE_YEAR_SECONDS,
)


class LogConfig(BaseModel):
    """Simplified logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json", "gcp"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Paths to exclude from request logging",
    )
    slow_request_threshold_ms: int = Field(
        default=1000,
        gt=0,
        description="Threshold for slow request warnings (milliseconds)",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "api_key",
            "authorization",
        ],
        description="Field names to redact",
    )


class ObservabilityConfig(BaseModel):
    """Cloud-agnostic observability configuration."""

    enable_tracing: bool = Field(
        default=True,
        description="Enable OpenTelemetry tracing",
    )
    exporter_type: Literal["console", "gcp", "otlp", "none"] = Field(
        default="console",
        description="Trace exporter type. Defaults to console for development.",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint",
    )
    gcp_project_id: str | None = Field(
        default=None,
        description="GCP project ID (only for GCP exporter)",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )

    @field_validator("exporter_endpoint", "gcp_project_id", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class FeatureFlags(BaseModel):
    """Switches for the optional cross-cutting concerns."""

    correlation_id: bool = Field(default=True, description="Correlation ID header")
    response_compression: bool = Field(
        default=True, description="GZIP response compression"
    )
    https_everywhere: bool = Field(
        default=True, description="Strict-Transport-Security header"
    )
    hsts_preload: bool = Field(
        default=False,
        description="Use HSTS preload settings (1 year, subdomains, preload)",
    )
    versioning: bool = Field(default=True, description="API version negotiation")
    swagger: bool = Field(default=True, description="OpenAPI documents and UI")
    forwarded_headers: bool = Field(
        default=True, description="Honour X-Forwarded-* headers from proxies"
    )
    host_filtering: bool = Field(
        default=False,
        description="Restrict Host header values (ignored with forwarded_headers)",
    )


class CompressionOptions(BaseModel):
    """Response compression options."""

    mime_types: list[str] = Field(
        default_factory=list,
        description="MIME types to compress in addition to the built-in defaults",
    )
    enable_for_https: bool = Field(
        default=False,
        description="Compress HTTPS responses (exposes the BREACH vulnerability)",
    )
    compression_level: int = Field(
        default=6,
        ge=1,
        le=9,
        description="GZIP compression level",
    )
    minimum_size: int = Field(
        default=500,
        ge=0,
        description="Smallest response body in bytes worth compressing",
    )


class CacheProfile(BaseModel):
    """Response caching settings shared by several endpoints."""

    duration: int = Field(default=0, ge=0, description="max-age in seconds")
    location: Literal["any", "client", "none"] = Field(
        default="any",
        description="Where the response may be cached",
    )
    no_store: bool = Field(default=False, description="Forbid storing the response")
    vary_by_header: str | None = Field(
        default=None, description="Value of the Vary response header"
    )


class CacheProfileOptions(RootModel[dict[str, CacheProfile]]):
    """Named cache profiles."""

    root: dict[str, CacheProfile] = Field(
        default_factory=lambda: {
            "StaticFiles": CacheProfile(duration=ONE_YEAR_SECONDS, location="any"),
            "NoCache": CacheProfile(location="none", no_store=True),
        }
    )

    def __getitem__(self, name: str) -> CacheProfile:
        return self.root[name]

    def __contains__(self, name: object) -> bool:
        return name in self.root


class CachingOptions(BaseModel):
    """In-memory and distributed cache configuration."""

    distributed_provider: Literal["memory", "redis"] = Field(
        default="memory",
        description="Backing store for the distributed cache",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (redis provider only)",
    )
    key_prefix: str = Field(
        default="bastion:",
        description="Prefix applied to every distributed cache key",
    )
    default_ttl_seconds: int | None = Field(
        default=None,
        gt=0,
        description="Absolute expiration used when a caller sets none",
    )


class ForwardedHeadersOptions(BaseModel):
    """Proxies trusted to set X-Forwarded-For and X-Forwarded-Proto."""

    trusted_hosts: list[str] = Field(
        default_factory=lambda: ["127.0.0.1"],
        description="Proxy addresses whose forwarded headers are honoured",
    )


class HostFilteringOptions(BaseModel):
    """Allowed values of the Host request header."""

    allowed_hosts: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Host names accepted by the application",
    )
    www_redirect: bool = Field(
        default=True,
        description="Redirect to www. when only the www. host is allowed",
    )


class HstsOptions(BaseModel):
    """Strict-Transport-Security header settings."""

    max_age: int = Field(
        default=DEFAULT_HSTS_MAX_AGE, ge=0, description="max-age in seconds"
    )
    include_subdomains: bool = Field(
        default=False, description="Add the includeSubDomains directive"
    )
    preload: bool = Field(default=False, description="Add the preload directive")
    excluded_hosts: list[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "[::1]"],
        description="Hosts that never receive the header",
    )

    @model_validator(mode="after")
    def check_preload_requirements(self) -> Self:
        """Preloading requires subdomains and a max-age of at least 18 weeks."""
        if self.preload and (
            not self.include_subdomains or self.max_age < HSTS_PRELOAD_MIN_MAX_AGE
        ):
            msg = (
                "HSTS preload requires include_subdomains and a max_age of at "
                f"least {HSTS_PRELOAD_MIN_MAX_AGE} seconds"
            )
            raise ValueError(msg)
        return self

    def with_preload(self) -> "HstsOptions":
        """Return a copy configured for the HSTS preload list."""
        return self.model_copy(
            update={
                "include_subdomains": True,
                "max_age": HSTS_PRELOAD_MAX_AGE,
                "preload": True,
            }
        )


class ApiVersioningOptions(BaseModel):
    """API version negotiation settings."""

    default_version: str = Field(default="1.0", description="Default API version")
    assume_default_version_when_unspecified: bool = Field(
        default=True,
        description="Use the default version when a request specifies none",
    )
    report_api_versions: bool = Field(
        default=True,
        description="Report supported and deprecated versions in response headers",
    )
    deprecated_versions: list[str] = Field(
        default_factory=list, description="Versions flagged as deprecated"
    )
    query_parameter: str = Field(
        default="api-version", description="Query string parameter name"
    )
    header_name: str = Field(default="X-Api-Version", description="Header name")


class SwaggerOptions(BaseModel):
    """OpenAPI document and Swagger UI settings."""

    docs_url: str = Field(default="/docs", description="Swagger UI URL")
    openapi_url_template: str = Field(
        default="/swagger/{document_name}/swagger.json",
        description="URL of each OpenAPI document",
    )

    @field_validator("openapi_url_template", mode="after")
    @classmethod
    def require_document_name(cls, v: str) -> str:
        """The template must contain the {document_name} placeholder."""
        if "{document_name}" not in v:
            msg = "openapi_url_template must contain '{document_name}'"
            raise ValueError(msg)
        return v


class CorrelationIdOptions(BaseModel):
    """Correlation ID propagation settings."""

    header: str = Field(default="X-Correlation-ID", description="Header name")
    include_in_response: bool = Field(
        default=True, description="Echo the correlation ID in the response"
    )
    update_trace_identifier: bool = Field(
        default=True,
        description="Expose the correlation ID as request.state.trace_identifier",
    )


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
    )

    # Application settings
    app_name: str = Field(default="Bastion", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    app_description: str = Field(
        default="Bastion HTTP API.", description="Application description"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=True, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")

    features: FeatureFlags = Field(default_factory=FeatureFlags)
    compression: CompressionOptions = Field(default_factory=CompressionOptions)
    cache_profiles: CacheProfileOptions = Field(default_factory=CacheProfileOptions)
    caching: CachingOptions = Field(default_factory=CachingOptions)
    forwarded_headers: ForwardedHeadersOptions = Field(
        default_factory=ForwardedHeadersOptions
    )
    host_filtering: HostFilteringOptions = Field(default_factory=HostFilteringOptions)
    hsts: HstsOptions = Field(default_factory=HstsOptions)
    api_versioning: ApiVersioningOptions = Field(default_factory=ApiVersioningOptions)
    swagger: SwaggerOptions = Field(default_factory=SwaggerOptions)
    correlation_id: CorrelationIdOptions = Field(default_factory=CorrelationIdOptions)

    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

        if self.environment == "production":
            if self.observability_config.exporter_type == "console":
                self.observability_config.exporter_type = self._detect_exporter()
            if self.observability_config.trace_sample_rate == 1.0:
                self.observability_config.trace_sample_rate = 0.1

    def _detect_formatter(self) -> Literal["console", "json", "gcp"]:
        """Auto-detect log formatter based on environment."""
        if os.getenv("K_SERVICE"):  # Cloud Run
            return "gcp"
        if self.environment == "development":
            return "console"
        return "json"

    def _detect_exporter(self) -> Literal["console", "gcp", "otlp", "none"]:
        """Auto-detect trace exporter based on environment."""
        if os.getenv("K_SERVICE"):  # Cloud Run
            return "gcp"
        if self.environment == "development":
            return "console"
        return "otlp"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
