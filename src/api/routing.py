"""Lower-case URL generation.

Paths produced by ``app.url_path_for`` and ``request.url_for`` are lower-cased
for routes built with ``LowercaseURLRoute``. Incoming request matching is not
affected.
"""

from typing import Any

from fastapi.routing import APIRoute
from starlette.datastructures import URLPath


class LowercaseURLRoute(APIRoute):
    """API route whose generated URL paths are lower-case."""

    def url_path_for(self, name: str, /, **path_params: Any) -> URLPath:  # noqa: ANN401 - path params may be any convertible value
        url_path = super().url_path_for(name, **path_params)
        return URLPath(url_path.lower(), protocol=url_path.protocol, host=url_path.host)
