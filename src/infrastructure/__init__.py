"""Infrastructure layer for external system integrations.

Key responsibilities:
- **Caching**: In-process and distributed caches registered at startup
- **External services**: Integration points for third-party stores (Redis)
"""
