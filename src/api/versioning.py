"""API version negotiation.

Routes declare the versions they serve through ``VersionedAPIRouter``. Once
``add_custom_api_versioning`` has stored ``ApiVersioningOptions`` on
``app.state``, every versioned route resolves the requested version from the
query string (``?api-version=1.0``) or a header (``X-Api-Version: 1.0``)
before its endpoint runs:

- no version given: the default version is assumed when configured,
  otherwise the request is rejected
- an undeclared version: the request is rejected with
  ``UnsupportedApiVersionError`` (HTTP 400)
- a served version: it is stored on ``request.state.api_version`` and, when
  reporting is enabled, the ``api-supported-versions`` and
  ``api-deprecated-versions`` headers list the versions of the route

Without ``add_custom_api_versioning`` the routes behave like plain routes.
"""

import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Self

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.openapi.utils import get_openapi

from src.api.constants import (
    API_DEPRECATED_VERSIONS_HEADER,
    API_SUPPORTED_VERSIONS_HEADER,
    API_VERSIONS_EXTENSION,
    OPENAPI_HTTP_METHODS,
)
from src.api.routing import LowercaseURLRoute
from src.core.config import ApiVersioningOptions
from src.core.exceptions import InvalidApiVersionError, UnsupportedApiVersionError

_VERSION_PATTERN = re.compile(r"^[vV]?(?P<major>\d{1,9})(?:\.(?P<minor>\d{1,9}))?$")


@dataclass(frozen=True, order=True)
class ApiVersion:
    """A major.minor API version."""

    major: int
    minor: int = 0

    @classmethod
    def parse(cls, value: "str | ApiVersion") -> Self:
        """Parse ``"1"``, ``"1.0"``, ``"v1"`` or ``"v1.1"``.

        Args:
            value: The version text, or an existing version.

        Returns:
            ApiVersion: The parsed version.

        Raises:
            InvalidApiVersionError: If the text is not a version.
        """
        if isinstance(value, ApiVersion):
            return cls(value.major, value.minor)

        match = _VERSION_PATTERN.match(value.strip())
        if match is None:
            raise InvalidApiVersionError(value)
        return cls(int(match["major"]), int(match["minor"] or 0))

    @property
    def group_name(self) -> str:
        """Name of the OpenAPI document serving this version."""
        if self.minor:
            return f"v{self.major}.{self.minor}"
        return f"v{self.major}"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class ApiVersionDescription:
    """An API version as presented in the OpenAPI documents."""

    api_version: ApiVersion
    group_name: str
    is_deprecated: bool


def get_operation_api_versions(operation: dict[str, Any]) -> tuple[ApiVersion, ...]:
    """Versions declared by an OpenAPI operation; empty for version-neutral ones."""
    declared = operation.get(API_VERSIONS_EXTENSION, ())
    return tuple(ApiVersion.parse(version) for version in declared)


def iter_operations(
    document: dict[str, Any],
) -> Iterator[tuple[str, str, dict[str, Any]]]:
    """Yield ``(path, method, operation)`` for every operation of a document."""
    for path, path_item in document.get("paths", {}).items():
        for method, operation in path_item.items():
            if method in OPENAPI_HTTP_METHODS:
                yield path, method, operation


class ApiVersionDescriptionProvider:
    """Describes every API version the application serves.

    Declared versions are read from the application's OpenAPI operations, so
    routes are found however FastAPI nests included routers. Routes excluded
    from the schema do not contribute versions.

    Args:
        app: The application whose routes are inspected.
        options: Versioning options supplying the default and deprecated versions.
    """

    def __init__(self, app: FastAPI, options: ApiVersioningOptions) -> None:
        self.app = app
        self.options = options

    @property
    def deprecated_versions(self) -> frozenset[ApiVersion]:
        return frozenset(
            ApiVersion.parse(version) for version in self.options.deprecated_versions
        )

    @property
    def api_version_descriptions(self) -> list[ApiVersionDescription]:
        """Describe the declared versions plus the default, in ascending order."""
        versions = {ApiVersion.parse(self.options.default_version)}
        document = get_openapi(
            title=self.app.title, version=self.app.version, routes=self.app.routes
        )
        for _, _, operation in iter_operations(document):
            versions.update(get_operation_api_versions(operation))

        deprecated = self.deprecated_versions
        return [
            ApiVersionDescription(
                api_version=version,
                group_name=version.group_name,
                is_deprecated=version in deprecated,
            )
            for version in sorted(versions)
        ]


class ApiVersionNegotiator:
    """Route dependency resolving the API version of a request.

    Args:
        api_versions: The versions served by the route.
    """

    def __init__(self, api_versions: Sequence[ApiVersion]) -> None:
        self.api_versions = tuple(sorted(set(api_versions)))

    def _requested_version(
        self, request: Request, options: ApiVersioningOptions
    ) -> str | None:
        value = request.query_params.get(options.query_parameter)
        if not value:
            value = request.headers.get(options.header_name)
        return value.strip() if value and value.strip() else None

    def _report_versions(
        self, response: Response, options: ApiVersioningOptions
    ) -> None:
        deprecated = {ApiVersion.parse(v) for v in options.deprecated_versions}
        supported = [v for v in self.api_versions if v not in deprecated]
        deprecated_served = [v for v in self.api_versions if v in deprecated]

        if supported:
            response.headers[API_SUPPORTED_VERSIONS_HEADER] = ", ".join(
                str(v) for v in supported
            )
        if deprecated_served:
            response.headers[API_DEPRECATED_VERSIONS_HEADER] = ", ".join(
                str(v) for v in deprecated_served
            )

    async def __call__(self, request: Request, response: Response) -> ApiVersion | None:
        options: ApiVersioningOptions | None = getattr(
            request.app.state, "api_versioning_options", None
        )
        if options is None:
            return None

        supported = [str(v) for v in self.api_versions]
        requested = self._requested_version(request, options)
        if requested is None:
            if not options.assume_default_version_when_unspecified:
                raise UnsupportedApiVersionError(
                    "An API version is required, but was not specified.",
                    supported_versions=supported,
                )
            api_version = ApiVersion.parse(options.default_version)
        else:
            api_version = ApiVersion.parse(requested)

        if api_version not in self.api_versions:
            requested_text = requested or str(api_version)
            raise UnsupportedApiVersionError(
                f"The requested API version '{requested_text}' is not supported "
                f"by '{request.url.path}'.",
                requested_version=requested_text,
                supported_versions=supported,
            )

        request.state.api_version = api_version
        if options.report_api_versions:
            self._report_versions(response, options)
        return api_version


class VersionedAPIRouter(APIRouter):
    """Router whose routes serve a fixed set of API versions.

    Args:
        api_versions: Versions served by every route of the router.
        **kwargs: Passed to ``APIRouter``; ``route_class`` defaults to
            ``LowercaseURLRoute``.
    """

    def __init__(self, *, api_versions: Sequence[str], **kwargs: Any) -> None:  # noqa: ANN401 - forwarded to APIRouter
        kwargs.setdefault("route_class", LowercaseURLRoute)
        super().__init__(**kwargs)
        if not api_versions:
            msg = "VersionedAPIRouter requires at least one API version"
            raise ValueError(msg)
        self.api_versions = tuple(ApiVersion.parse(v) for v in api_versions)

    def add_api_route(
        self,
        path: str,
        endpoint: Callable[..., Any],
        **kwargs: Any,  # noqa: ANN401 - forwarded to APIRouter.add_api_route
    ) -> None:
        kwargs["openapi_extra"] = {
            **(kwargs.get("openapi_extra") or {}),
            API_VERSIONS_EXTENSION: [str(v) for v in self.api_versions],
        }
        kwargs["dependencies"] = [
            *(kwargs.get("dependencies") or []),
            Depends(ApiVersionNegotiator(self.api_versions)),
        ]
        super().add_api_route(path, endpoint, **kwargs)


def get_api_version(request: Request) -> ApiVersion | None:
    """Dependency returning the version negotiated for the current request."""
    return getattr(request.state, "api_version", None)
