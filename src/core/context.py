"""Correlation ID of the request being served.

``RequestContextMiddleware`` resolves the ID once per request and stores it
here. Everything that runs inside the request then reads it back without the
request object: the exception handlers put it in error bodies, the problem
details handler adds it as ``correlationId``, and the tracing hook copies it
onto the server span. A ``ContextVar`` keeps concurrent requests apart.
"""

import uuid
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class RequestContext:
    """Accessors for the current request's correlation ID."""

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Return the correlation ID, or None outside a request."""
        return _correlation_id_var.get()

    @staticmethod
    def clear() -> None:
        _correlation_id_var.set(None)


def generate_correlation_id() -> str:
    """New correlation ID for requests that arrive without one (a UUID4)."""
    return str(uuid.uuid4())


def resolve_correlation_id(header_value: str | None) -> str:
    """Use the client's correlation ID, generating one when it is missing or blank.

    Args:
        header_value: Value of the correlation header, if the client sent it.

    Returns:
        str: The stripped header value, or a new UUID4.
    """
    candidate = (header_value or "").strip()
    return candidate or generate_correlation_id()


def generate_request_id() -> str:
    """ID of one request/response exchange, ``req-`` followed by a UUID4.

    Unlike the correlation ID, it is never taken from the client.
    """
    return f"req-{uuid.uuid4()}"
