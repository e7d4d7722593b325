"""Bastion - FastAPI service with opt-in cross-cutting concerns.

Architecture Overview:
- **API Layer**: FastAPI application, service extensions and middleware
- **Core Layer**: Configuration, logging, tracing and the exception hierarchy
- **Infrastructure Layer**: In-process and Redis-backed caches

Each concern (caching, compression, lower-case URLs, API versioning, OpenAPI
documents, HSTS, correlation IDs and validation problem details) is
registered at startup by a service extension and toggled by a feature flag.
"""
