"""RFC 7807 problem details schemas.

``ValidationProblemDetails`` is the body returned when a request model fails
validation. Both models are also registered as OpenAPI components so that
clients can see the shape of error responses.
"""

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetails(BaseModel):
    """Machine-readable details of an HTTP error (RFC 7807)."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "type": "https://tools.ietf.org/html/rfc7231#section-6.5.4",
                "title": "Not Found",
                "status": 404,
                "detail": "The requested resource could not be found.",
                "instance": "/info",
            }
        },
    )

    type: str = Field(
        default="about:blank",
        description="URI reference identifying the problem type",
    )
    title: str | None = Field(
        default=None, description="Short summary of the problem type"
    )
    status: int | None = Field(default=None, description="HTTP status code")
    detail: str | None = Field(
        default=None, description="Explanation specific to this occurrence"
    )
    instance: str | None = Field(
        default=None, description="URI reference of this occurrence"
    )
    correlation_id: str | None = Field(
        default=None,
        alias="correlationId",
        description="Request correlation ID",
    )


class ValidationProblemDetails(ProblemDetails):
    """Problem details listing every validation error by field."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "type": "https://tools.ietf.org/html/rfc7231#section-6.5.1",
                "title": "2 validation error(s) occurred.",
                "status": 400,
                "detail": "Please refer to the errors property for additional details.",
                "instance": "/items",
                "errors": {
                    "name": ["Field required"],
                    "quantity": ["Input should be greater than 0"],
                },
            }
        },
    )

    errors: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Validation error messages keyed by field path",
    )
