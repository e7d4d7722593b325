"""HTTP response caching driven by named cache profiles.

Endpoints opt in with ``dependencies=[Depends(ResponseCache("NoCache"))]``.
The dependency resolves the profile from the ``CacheProfileOptions`` bound
on ``app.state`` and writes ``Cache-Control``, ``Pragma`` and ``Vary``.
"""

from fastapi import Request, Response

from src.core.config import CacheProfile, CacheProfileOptions, get_settings


def build_cache_headers(profile: CacheProfile) -> dict[str, str]:
    """Translate a cache profile into response headers.

    Args:
        profile: The cache profile.

    Returns:
        dict[str, str]: Header names and values to set on the response.
    """
    headers: dict[str, str] = {}

    if profile.no_store:
        headers["Cache-Control"] = "no-store"
        if profile.location == "none":
            headers["Pragma"] = "no-cache"
    elif profile.location == "none":
        headers["Cache-Control"] = "no-cache"
        headers["Pragma"] = "no-cache"
    else:
        visibility = "public" if profile.location == "any" else "private"
        headers["Cache-Control"] = f"{visibility},max-age={profile.duration}"

    if profile.vary_by_header:
        headers["Vary"] = profile.vary_by_header

    return headers


class ResponseCache:
    """Dependency applying a named cache profile to the response.

    Args:
        profile_name: Name of the profile in ``CacheProfileOptions``.
        profiles: Profiles to validate the name against immediately. An
            unknown name then fails when the route is declared.

    Raises:
        KeyError: If ``profiles`` is given and has no such profile.
    """

    def __init__(
        self, profile_name: str, profiles: CacheProfileOptions | None = None
    ) -> None:
        if profiles is not None and profile_name not in profiles:
            msg = f"Cache profile '{profile_name}' is not configured"
            raise KeyError(msg)
        self.profile_name = profile_name

    def __call__(self, request: Request, response: Response) -> None:
        profiles: CacheProfileOptions = getattr(
            request.app.state, "cache_profile_options", None
        ) or get_settings().cache_profiles

        for name, value in build_cache_headers(profiles[self.profile_name]).items():
            response.headers[name] = value
