"""Global exception handlers for the FastAPI application.

Application and HTTP exceptions are returned as ``ErrorResponse`` bodies.
Invalid request models are returned as RFC 7807 validation problem details
once ``add_custom_api_behavior`` has registered
``validation_problem_details_handler``.
"""

import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from src.api.constants import (
    HTTP_500_INTERNAL_SERVER_ERROR,
    VALIDATION_PROBLEM_DETAIL,
    VALIDATION_PROBLEM_TYPE,
)
from src.api.schemas.errors import ErrorResponse, ServiceInfo
from src.api.schemas.problem_details import ValidationProblemDetails
from src.api.utils.responses import ORJSONResponse, ProblemJSONResponse
from src.core.config import Settings, get_settings
from src.core.context import RequestContext, generate_request_id
from src.core.error_context import sanitize_dict, sanitize_error_context
from src.core.exceptions import (
    BastionError,
    BusinessRuleError,
    ErrorCode,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


def get_service_info(settings: Settings) -> ServiceInfo:
    """Create ServiceInfo from application settings.

    Args:
        settings: Application settings

    Returns:
        ServiceInfo: Instance with current service metadata
    """
    return ServiceInfo(
        name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


def _status_for(exc: BastionError) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, UnauthorizedError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, BusinessRuleError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def bastion_error_handler(request: Request, exc: Exception) -> Response:
    """Handle BastionError exceptions.

    Args:
        request: The FastAPI request that caused the exception
        exc: The BastionError exception to handle

    Returns:
        Response: ORJSONResponse with error details

    Raises:
        TypeError: If exc is not a BastionError instance
    """
    if not isinstance(exc, BastionError):
        raise TypeError(f"Expected BastionError, got {type(exc).__name__}")

    settings = get_settings()
    correlation_id = RequestContext.get_correlation_id()

    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": str(request.url.path),
            "error_code": exc.error_code,
        },
    )
    log = logger.warning if exc.is_expected else logger.error
    log(
        "Handling {exception_type}: {message}",
        exception_type=type(exc).__name__,
        message=exc.message,
        correlation_id=correlation_id,
        **error_context,
    )

    debug_info = None
    if settings.environment == "development":
        debug_info = {
            "stack_trace": exc.stack_trace,
            "error_context": exc.context,
            "exception_type": type(exc).__name__,
        }
        if exc.cause:
            debug_info["cause"] = {
                "type": type(exc.cause).__name__,
                "message": str(exc.cause),
            }

    error_response = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.context or None,
        correlation_id=correlation_id,
        request_id=generate_request_id(),
        severity=exc.severity.value,
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=_status_for(exc),
        content=error_response.model_dump(mode="json"),
    )


def _field_name(error: dict[str, Any]) -> str:
    # Malformed JSON is reported at ("body", <character offset>)
    path = error.get("loc", ())[1:]
    if error.get("type") == "json_invalid" or all(isinstance(p, int) for p in path):
        return ""
    return ".".join(str(part) for part in path)


def build_validation_problem_details(
    request: Request, exc: RequestValidationError
) -> ValidationProblemDetails:
    """Group validation errors by field into a problem details body.

    The location prefix (``body``, ``query``, ``path``...) is dropped from each
    field path; errors without a field are grouped under the empty key.

    Args:
        request: The request whose model failed validation
        exc: The validation error raised by FastAPI

    Returns:
        ValidationProblemDetails: The problem details body
    """
    errors: dict[str, list[str]] = {}
    raw_errors = exc.errors()
    for error in raw_errors:
        field_name = _field_name(error)
        errors.setdefault(field_name, []).append(error.get("msg", "Invalid value"))

    return ValidationProblemDetails(
        type=VALIDATION_PROBLEM_TYPE,
        title=f"{len(raw_errors)} validation error(s) occurred.",
        status=status.HTTP_400_BAD_REQUEST,
        detail=VALIDATION_PROBLEM_DETAIL,
        instance=request.url.path,
        errors=errors,
        correlation_id=RequestContext.get_correlation_id(),
    )


async def validation_problem_details_handler(
    request: Request, exc: Exception
) -> Response:
    """Handle RequestValidationError with a 400 problem details response.

    Args:
        request: The FastAPI request that caused the exception
        exc: The RequestValidationError exception to handle

    Returns:
        Response: ProblemJSONResponse with the validation errors

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    problem = build_validation_problem_details(request, exc)

    logger.warning(
        "Request validation failed",
        path=str(request.url.path),
        method=request.method,
        status_code=status.HTTP_400_BAD_REQUEST,
        validation_errors=sanitize_dict(problem.errors),
    )

    return ProblemJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=problem.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException.

    Args:
        request: The FastAPI request that caused the exception
        exc: The HTTPException to handle

    Returns:
        Response: ORJSONResponse with error details

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    settings = get_settings()
    correlation_id = RequestContext.get_correlation_id()

    error_code = ErrorCode.INTERNAL_ERROR.value
    severity = "MEDIUM"
    if exc.status_code == status.HTTP_400_BAD_REQUEST:
        error_code = ErrorCode.VALIDATION_ERROR.value
        severity = "LOW"
    elif exc.status_code == status.HTTP_401_UNAUTHORIZED:
        error_code = ErrorCode.UNAUTHORIZED.value
        severity = "HIGH"
    elif exc.status_code == status.HTTP_404_NOT_FOUND:
        error_code = ErrorCode.NOT_FOUND.value
        severity = "LOW"
    elif exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        severity = "HIGH"

    logger.warning(
        "HTTP exception",
        correlation_id=correlation_id,
        **sanitize_error_context(
            exc,
            {
                "status": exc.status_code,
                "method": request.method,
                "path": str(request.url.path),
            },
        ),
    )

    error_response = ErrorResponse(
        error_code=error_code,
        message=str(exc.detail),
        correlation_id=correlation_id,
        request_id=generate_request_id(),
        severity=severity,
        service_info=get_service_info(settings),
    )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json"),
        headers=exc.headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle unhandled exceptions, hiding internals in production.

    Args:
        request: The FastAPI request that caused the exception
        exc: The unhandled exception

    Returns:
        Response: ORJSONResponse with generic error message
    """
    settings = get_settings()
    correlation_id = RequestContext.get_correlation_id()

    logger.exception(
        "Unhandled exception: {exception_type}",
        exception_type=type(exc).__name__,
        correlation_id=correlation_id,
        **sanitize_error_context(
            exc,
            {
                "request_method": request.method,
                "request_path": str(request.url.path),
            },
        ),
    )

    if settings.environment == "production":
        message = "An internal server error occurred"
        details = None
        debug_info = None
    else:
        message = f"Internal server error: {type(exc).__name__}"
        details = {"error": str(exc), "type": type(exc).__name__}
        debug_info = {
            "stack_trace": traceback.format_tb(exc.__traceback__),
            "exception_type": type(exc).__name__,
        }

    error_response = ErrorResponse(
        error_code=ErrorCode.INTERNAL_ERROR.value,
        message=message,
        details=details,
        correlation_id=correlation_id,
        request_id=generate_request_id(),
        severity="CRITICAL",
        service_info=get_service_info(settings),
        debug_info=debug_info,
    )

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the application, HTTP and fallback exception handlers.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(BastionError, bastion_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
