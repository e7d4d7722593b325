"""HTTP API layer built on FastAPI.

Key components:
- **main**: Application factory and lifecycle management
- **extensions**: Startup registration of every cross-cutting concern
- **middleware**: Correlation IDs, compression, security headers, logging
  and exception handlers
- **versioning**: API version negotiation for versioned routers
- **openapi**: Per-version OpenAPI documents and the Swagger UI
- **caching**: Cache-Control headers from named cache profiles
- **routing**: Lower-case URL generation
- **dependencies**: ``Depends`` providers for services on ``app.state``
- **schemas**: Error and problem details response models
- **utils**: orjson response classes
"""
