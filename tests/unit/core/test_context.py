"""Unit tests for the request context."""

import asyncio
import uuid

import pytest

from src.core.context import (
    RequestContext,
    generate_correlation_id,
    generate_request_id,
    resolve_correlation_id,
)


@pytest.mark.unit
class TestRequestContext:
    """Test correlation ID storage."""

    def test_set_and_get(self) -> None:
        """Test a stored correlation ID is returned."""
        RequestContext.set_correlation_id("abc-123")

        assert RequestContext.get_correlation_id() == "abc-123"

    def test_clear(self) -> None:
        """Test clear removes the correlation ID."""
        RequestContext.set_correlation_id("abc-123")
        RequestContext.clear()

        assert RequestContext.get_correlation_id() is None

    async def test_isolated_between_tasks(self) -> None:
        """Test concurrent tasks see only their own correlation ID."""

        async def worker(correlation_id: str) -> str | None:
            RequestContext.set_correlation_id(correlation_id)
            await asyncio.sleep(0)
            return RequestContext.get_correlation_id()

        results = await asyncio.gather(worker("first"), worker("second"))

        assert results == ["first", "second"]


@pytest.mark.unit
class TestIdGeneration:
    """Test ID generators."""

    def test_correlation_id_is_uuid4(self) -> None:
        """Test correlation IDs are UUID4 strings."""
        value = generate_correlation_id()

        assert uuid.UUID(value).version == 4

    def test_request_id_prefix(self) -> None:
        """Test request IDs are prefixed with req-."""
        value = generate_request_id()

        assert value.startswith("req-")
        assert uuid.UUID(value.removeprefix("req-")).version == 4

    @pytest.mark.parametrize("header_value", [None, "", "   "])
    def test_resolve_generates_when_missing(self, header_value: str | None) -> None:
        """Test a missing or blank header yields a new UUID4."""
        value = resolve_correlation_id(header_value)

        assert uuid.UUID(value).version == 4

    def test_resolve_keeps_client_value(self) -> None:
        """Test the client's correlation ID is kept, without surrounding spaces."""
        assert resolve_correlation_id("  order-42 ") == "order-42"
