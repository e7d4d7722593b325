"""Utility modules for the API layer.

- **responses**: orjson response classes, including problem+json
"""
