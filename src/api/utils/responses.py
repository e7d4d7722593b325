"""JSON response classes using orjson serialization.

``ORJSONResponse`` is the default response class of the application.
``ProblemJSONResponse`` carries RFC 7807 problem details and differs only in
its media type.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.constants import PROBLEM_JSON_CONTENT_TYPE


class ORJSONResponse(JSONResponse):
    """FastAPI Response class using orjson for JSON serialization.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Render the content as JSON using orjson.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json", by_alias=True, exclude_none=True)

        return orjson.dumps(content, option=orjson.OPT_SORT_KEYS)


class ProblemJSONResponse(ORJSONResponse):
    """Response carrying an ``application/problem+json`` body."""

    media_type = PROBLEM_JSON_CONTENT_TYPE
