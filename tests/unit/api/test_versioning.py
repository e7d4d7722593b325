"""Unit tests for API version negotiation."""

from collections.abc import Callable

import pytest
import pytest_check
from fastapi import Depends, FastAPI
from fastapi.routing import APIRoute
from httpx import AsyncClient

from src.api.middleware.error_handler import register_exception_handlers
from src.api.versioning import (
    ApiVersion,
    ApiVersionDescriptionProvider,
    ApiVersionNegotiator,
    VersionedAPIRouter,
    get_api_version,
    get_operation_api_versions,
)
from src.core.config import ApiVersioningOptions
from src.core.exceptions import InvalidApiVersionError

ClientFactory = Callable[..., AsyncClient]


def build_app(options: ApiVersioningOptions | None = None) -> FastAPI:
    """Application serving /items in versions 1.0 and 2.0."""
    app = FastAPI()
    register_exception_handlers(app)
    if options is not None:
        app.state.api_versioning_options = options

    router = VersionedAPIRouter(api_versions=["1.0", "2.0"])

    @router.get("/items")
    async def list_items(
        api_version: ApiVersion | None = Depends(get_api_version),  # noqa: B008
    ) -> dict[str, str | None]:
        return {"api_version": str(api_version) if api_version else None}

    app.include_router(router)
    return app


@pytest.mark.unit
class TestApiVersion:
    """Test parsing and ordering of API versions."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1", ApiVersion(1, 0)),
            ("1.0", ApiVersion(1, 0)),
            ("v2", ApiVersion(2, 0)),
            ("V1.1", ApiVersion(1, 1)),
            (" 3.2 ", ApiVersion(3, 2)),
        ],
    )
    def test_parse(self, text: str, expected: ApiVersion) -> None:
        """Test the accepted version spellings."""
        assert ApiVersion.parse(text) == expected

    @pytest.mark.parametrize(
        "text", ["", "abc", "1.0.0", "v", "1.", "9" * 5000, "1." + "9" * 10]
    )
    def test_parse_invalid(self, text: str) -> None:
        """Test malformed versions raise InvalidApiVersionError."""
        with pytest.raises(InvalidApiVersionError):
            ApiVersion.parse(text)

    def test_parse_existing_version(self) -> None:
        """Test an ApiVersion passes through parse unchanged."""
        version = ApiVersion(2, 1)

        assert ApiVersion.parse(version) == version

    @pytest.mark.parametrize(
        ("version", "group_name"),
        [(ApiVersion(1, 0), "v1"), (ApiVersion(1, 1), "v1.1"), (ApiVersion(2), "v2")],
    )
    def test_group_name(self, version: ApiVersion, group_name: str) -> None:
        """Test document names drop a zero minor version."""
        assert version.group_name == group_name

    def test_str_and_ordering(self) -> None:
        """Test versions print as major.minor and sort numerically."""
        versions = [ApiVersion(10), ApiVersion(2, 1), ApiVersion(2)]

        assert [str(v) for v in sorted(versions)] == ["2.0", "2.1", "10.0"]


@pytest.mark.unit
class TestVersionedAPIRouter:
    """Test route registration through VersionedAPIRouter."""

    def test_requires_a_version(self) -> None:
        """Test a router without versions is rejected."""
        with pytest.raises(ValueError, match="at least one API version"):
            VersionedAPIRouter(api_versions=[])

    def test_routes_declare_versions(self) -> None:
        """Test included routes carry their versions into the OpenAPI operation."""
        operation = build_app().openapi()["paths"]["/items"]["get"]

        assert get_operation_api_versions(operation) == (ApiVersion(1), ApiVersion(2))

    def test_neutral_operation_declares_nothing(self) -> None:
        """Test operations without the extension are version-neutral."""
        assert get_operation_api_versions({"responses": {}}) == ()

    def test_existing_openapi_extra_is_kept(self) -> None:
        """Test caller-supplied openapi_extra survives."""
        router = VersionedAPIRouter(api_versions=["1.0"])

        @router.get("/things", openapi_extra={"x-owner": "team"})
        async def things() -> None:
            return None

        route = router.routes[0]
        assert isinstance(route, APIRoute)
        assert route.openapi_extra == {"x-owner": "team", "x-api-versions": ["1.0"]}


@pytest.mark.unit
class TestApiVersionDescriptionProvider:
    """Test the description of every served version."""

    def test_descriptions_sorted_with_default(self) -> None:
        """Test declared versions and the default are described in order."""
        options = ApiVersioningOptions(default_version="0.9", deprecated_versions=["1"])
        provider = ApiVersionDescriptionProvider(build_app(), options)

        descriptions = provider.api_version_descriptions

        pytest_check.equal(
            [d.group_name for d in descriptions], ["v0.9", "v1", "v2"]
        )
        pytest_check.equal(
            [d.is_deprecated for d in descriptions], [False, True, False]
        )
        pytest_check.equal(provider.deprecated_versions, frozenset({ApiVersion(1)}))


@pytest.mark.unit
class TestApiVersionNegotiator:
    """Test version negotiation on requests."""

    def test_versions_are_sorted_and_unique(self) -> None:
        """Test the negotiator normalizes the served versions."""
        negotiator = ApiVersionNegotiator([ApiVersion(2), ApiVersion(1), ApiVersion(2)])

        assert negotiator.api_versions == (ApiVersion(1), ApiVersion(2))

    async def test_default_version_assumed(self, asgi_client: ClientFactory) -> None:
        """Test requests without a version get the default one."""
        async with asgi_client(build_app(ApiVersioningOptions())) as client:
            response = await client.get("/items")

        assert response.status_code == 200
        assert response.json() == {"api_version": "1.0"}
        assert response.headers["api-supported-versions"] == "1.0, 2.0"
        assert "api-deprecated-versions" not in response.headers

    async def test_query_parameter(self, asgi_client: ClientFactory) -> None:
        """Test the version is read from the query string."""
        async with asgi_client(build_app(ApiVersioningOptions())) as client:
            response = await client.get("/items", params={"api-version": "2.0"})

        assert response.json() == {"api_version": "2.0"}

    async def test_header(self, asgi_client: ClientFactory) -> None:
        """Test the version is read from the header."""
        async with asgi_client(build_app(ApiVersioningOptions())) as client:
            response = await client.get("/items", headers={"X-Api-Version": "2"})

        assert response.json() == {"api_version": "2.0"}

    async def test_query_wins_over_header(self, asgi_client: ClientFactory) -> None:
        """Test the query string is checked before the header."""
        async with asgi_client(build_app(ApiVersioningOptions())) as client:
            response = await client.get(
                "/items",
                params={"api-version": "1.0"},
                headers={"X-Api-Version": "2.0"},
            )

        assert response.json() == {"api_version": "1.0"}

    async def test_unsupported_version(self, asgi_client: ClientFactory) -> None:
        """Test an undeclared version is rejected with 400."""
        async with asgi_client(build_app(ApiVersioningOptions())) as client:
            response = await client.get("/items", params={"api-version": "3.0"})

        body = response.json()
        pytest_check.equal(response.status_code, 400)
        pytest_check.equal(body["error_code"], "UNSUPPORTED_API_VERSION")
        pytest_check.equal(
            body["message"],
            "The requested API version '3.0' is not supported by '/items'.",
        )
        pytest_check.equal(body["details"]["supported_versions"], ["1.0", "2.0"])

    async def test_default_outside_route_versions(
        self, asgi_client: ClientFactory
    ) -> None:
        """Test an assumed default the route does not serve is rejected."""
        options = ApiVersioningOptions(default_version="3.0")

        async with asgi_client(build_app(options)) as client:
            response = await client.get("/items")

        assert response.status_code == 400
        assert response.json()["error_code"] == "UNSUPPORTED_API_VERSION"

    async def test_version_required(self, asgi_client: ClientFactory) -> None:
        """Test a missing version is rejected when no default is assumed."""
        options = ApiVersioningOptions(assume_default_version_when_unspecified=False)

        async with asgi_client(build_app(options)) as client:
            response = await client.get("/items")

        assert response.status_code == 400
        assert response.json()["message"] == (
            "An API version is required, but was not specified."
        )

    async def test_invalid_version(self, asgi_client: ClientFactory) -> None:
        """Test a malformed version is rejected with 400."""
        async with asgi_client(build_app(ApiVersioningOptions())) as client:
            response = await client.get("/items", params={"api-version": "latest"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_API_VERSION"

    async def test_oversized_version(self, asgi_client: ClientFactory) -> None:
        """Test a version with thousands of digits is a 400, not a server error."""
        async with asgi_client(build_app(ApiVersioningOptions())) as client:
            response = await client.get("/items", params={"api-version": "9" * 5000})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_API_VERSION"

    async def test_deprecated_versions_reported(
        self, asgi_client: ClientFactory
    ) -> None:
        """Test deprecated versions are listed in their own header."""
        options = ApiVersioningOptions(deprecated_versions=["1.0"])

        async with asgi_client(build_app(options)) as client:
            response = await client.get("/items")

        assert response.headers["api-supported-versions"] == "2.0"
        assert response.headers["api-deprecated-versions"] == "1.0"

    async def test_reporting_disabled(self, asgi_client: ClientFactory) -> None:
        """Test no version headers are sent when reporting is off."""
        options = ApiVersioningOptions(report_api_versions=False)

        async with asgi_client(build_app(options)) as client:
            response = await client.get("/items")

        assert "api-supported-versions" not in response.headers

    async def test_without_versioning(self, asgi_client: ClientFactory) -> None:
        """Test versioned routes behave as plain routes until versioning is added."""
        async with asgi_client(build_app()) as client:
            response = await client.get("/items", params={"api-version": "9.0"})

        assert response.status_code == 200
        assert response.json() == {"api_version": None}
        assert "api-supported-versions" not in response.headers
