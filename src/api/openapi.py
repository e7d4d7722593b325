"""OpenAPI documents per API version and the Swagger UI that lists them.

One document is generated for each version described by
``ApiVersionDescriptionProvider`` (a single ``v1`` document when versioning is
off). A document contains the routes serving its version plus the
version-neutral routes. After generation, each operation goes through the
operation filters below and the document goes through the schema filter.
Documents are generated on first request and cached on ``app.state``.
"""

from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.openapi.utils import get_openapi
from fastapi.responses import HTMLResponse
from loguru import logger

from src.api.constants import (
    API_VERSIONS_EXTENSION,
    DEPRECATED_VERSION_NOTICE,
    OPENAPI_HTTP_METHODS,
    UNVERSIONED_DOCUMENT_NAME,
)
from src.api.schemas.problem_details import ProblemDetails, ValidationProblemDetails
from src.api.utils.responses import ORJSONResponse
from src.api.versioning import (
    ApiVersion,
    ApiVersionDescription,
    ApiVersionDescriptionProvider,
    get_operation_api_versions,
    iter_operations,
)
from src.core.config import (
    ApiVersioningOptions,
    CorrelationIdOptions,
    SwaggerOptions,
)
from src.core.exceptions import NotFoundError

UNAUTHORIZED_DESCRIPTION = (
    "Unauthorized - The user has not supplied the necessary credentials to "
    "access the resource."
)
FORBIDDEN_DESCRIPTION = (
    "Forbidden - The user does not have the necessary permissions to access "
    "the resource."
)

OperationFilter = Callable[[dict[str, Any]], None]


def api_version_operation_filter(
    api_version: str | None, options: ApiVersioningOptions | None
) -> OperationFilter:
    """Document the ``api-version`` query parameter of versioned operations."""

    def apply(operation: dict[str, Any]) -> None:
        declared = operation.pop(API_VERSIONS_EXTENSION, None)
        if declared is None or api_version is None or options is None:
            return

        parameters = operation.setdefault("parameters", [])
        if any(p.get("name") == options.query_parameter for p in parameters):
            return
        parameters.append(
            {
                "name": options.query_parameter,
                "in": "query",
                "required": not options.assume_default_version_when_unspecified,
                "description": "The requested API version",
                "schema": {"type": "string", "default": api_version},
            }
        )

    return apply


def correlation_id_operation_filter(options: CorrelationIdOptions) -> OperationFilter:
    """Document the optional correlation ID request header."""

    def apply(operation: dict[str, Any]) -> None:
        parameters = operation.setdefault("parameters", [])
        parameters.append(
            {
                "name": options.header,
                "in": "header",
                "required": False,
                "description": (
                    "Used to uniquely identify the HTTP request. This ID is used "
                    "to correlate the HTTP request between a client and server."
                ),
                "schema": {
                    "type": "string",
                    "example": "7b6a4ae6-1c6e-4d6a-9b6f-8c1a3f3e2d10",
                },
            }
        )

    return apply


def _security_response_filter(status_code: str, description: str) -> OperationFilter:
    def apply(operation: dict[str, Any]) -> None:
        if not operation.get("security"):
            return
        responses = operation.setdefault("responses", {})
        responses.setdefault(status_code, {"description": description})

    return apply


def forbidden_response_operation_filter() -> OperationFilter:
    """Add a 403 response to operations that declare security requirements."""
    return _security_response_filter("403", FORBIDDEN_DESCRIPTION)


def unauthorized_response_operation_filter() -> OperationFilter:
    """Add a 401 response to operations that declare security requirements."""
    return _security_response_filter("401", UNAUTHORIZED_DESCRIPTION)


def problem_details_schema_filter(document: dict[str, Any]) -> None:
    """Register the problem details models as document components."""
    schemas = document.setdefault("components", {}).setdefault("schemas", {})
    for model in (ProblemDetails, ValidationProblemDetails):
        schemas.setdefault(
            model.__name__,
            model.model_json_schema(
                by_alias=True, ref_template="#/components/schemas/{model}"
            ),
        )


def _select_version(document: dict[str, Any], api_version: ApiVersion) -> None:
    """Drop operations declaring other versions, then paths left empty."""
    paths = document.get("paths", {})
    for path, method, operation in list(iter_operations(document)):
        versions = get_operation_api_versions(operation)
        if versions and api_version not in versions:
            del paths[path][method]

    empty = [p for p, item in paths.items() if OPENAPI_HTTP_METHODS.isdisjoint(item)]
    for path in empty:
        del paths[path]


def _operation_filters(
    app: FastAPI, description: ApiVersionDescription | None
) -> list[OperationFilter]:
    versioning: ApiVersioningOptions | None = getattr(
        app.state, "api_versioning_options", None
    )
    api_version = str(description.api_version) if description else None
    filters = [api_version_operation_filter(api_version, versioning)]

    correlation: CorrelationIdOptions | None = getattr(
        app.state, "correlation_id_options", None
    )
    if correlation is not None:
        filters.append(correlation_id_operation_filter(correlation))

    filters.append(forbidden_response_operation_filter())
    filters.append(unauthorized_response_operation_filter())
    return filters


def build_openapi_document(
    app: FastAPI, description: ApiVersionDescription | None
) -> dict[str, Any]:
    """Generate the OpenAPI document of one API version.

    Args:
        app: The application to document.
        description: The version to document, or None when versioning is off.

    Returns:
        dict[str, Any]: The OpenAPI document.
    """
    version = UNVERSIONED_DOCUMENT_NAME
    info_description = app.description
    if description is not None:
        version = str(description.api_version)
        if description.is_deprecated:
            info_description += DEPRECATED_VERSION_NOTICE

    document = get_openapi(
        title=app.title,
        version=version,
        description=info_description,
        routes=app.routes,
    )
    if description is not None:
        _select_version(document, description.api_version)

    filters = _operation_filters(app, description)
    for _, _, operation in iter_operations(document):
        for operation_filter in filters:
            operation_filter(operation)

    problem_details_schema_filter(document)
    return document


def get_api_version_descriptions(app: FastAPI) -> list[ApiVersionDescription]:
    """Versions documented by the application; empty when versioning is off."""
    provider: ApiVersionDescriptionProvider | None = getattr(
        app.state, "api_version_description_provider", None
    )
    if provider is None:
        return []
    return provider.api_version_descriptions


def get_openapi_documents(app: FastAPI) -> dict[str, dict[str, Any]]:
    """Return every OpenAPI document keyed by name, generating them once."""
    documents: dict[str, dict[str, Any]] | None = getattr(
        app.state, "openapi_documents", None
    )
    if documents is not None:
        return documents

    descriptions = get_api_version_descriptions(app)
    if descriptions:
        documents = {
            description.group_name: build_openapi_document(app, description)
            for description in descriptions
        }
    else:
        documents = {UNVERSIONED_DOCUMENT_NAME: build_openapi_document(app, None)}

    app.state.openapi_documents = documents
    logger.debug("Generated OpenAPI documents: {}", ", ".join(documents))
    return documents


def swagger_ui_urls(app: FastAPI, options: SwaggerOptions) -> list[dict[str, str]]:
    """Entries of the Swagger UI document selector, newest version first."""
    descriptions = get_api_version_descriptions(app)
    if not descriptions:
        return [
            {
                "url": options.openapi_url_template.format(
                    document_name=UNVERSIONED_DOCUMENT_NAME
                ),
                "name": UNVERSIONED_DOCUMENT_NAME.upper(),
            }
        ]

    urls = []
    for description in reversed(descriptions):
        name = f"Version {description.api_version}"
        if description.is_deprecated:
            name += " (Deprecated)"
        urls.append(
            {
                "url": options.openapi_url_template.format(
                    document_name=description.group_name
                ),
                "name": name,
            }
        )
    return urls


def register_swagger_routes(app: FastAPI, options: SwaggerOptions) -> None:
    """Serve the OpenAPI documents and the Swagger UI.

    Args:
        app: The application to document.
        options: Swagger options holding the URLs.
    """

    async def openapi_document(request: Request, document_name: str) -> ORJSONResponse:
        documents = get_openapi_documents(request.app)
        if document_name not in documents:
            raise NotFoundError(
                f"OpenAPI document '{document_name}' was not found",
                context={"document_name": document_name},
            )
        return ORJSONResponse(documents[document_name])

    async def swagger_ui(request: Request) -> HTMLResponse:
        urls = swagger_ui_urls(request.app, options)
        return get_swagger_ui_html(
            openapi_url=urls[0]["url"],
            title=f"{request.app.title} - Swagger UI",
            swagger_ui_parameters={"urls": urls},
        )

    app.add_api_route(
        options.openapi_url_template,
        openapi_document,
        methods=["GET"],
        include_in_schema=False,
    )
    app.add_api_route(
        options.docs_url, swagger_ui, methods=["GET"], include_in_schema=False
    )
