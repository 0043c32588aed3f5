"""
Security headers middleware for the JSON API.

Every response gets headers suited to an API that is called from a separate
web frontend and never renders HTML. Stored report images served under
``UPLOAD_URL_PREFIX`` may be cached by browsers; everything else may not.
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from models.config import settings

API_CONTENT_SECURITY_POLICY = "default-src 'none'; img-src 'self'; frame-ancestors 'none'"

# The report form asks for the user's location; other sensor APIs stay off.
PERMISSIONS_POLICY = "camera=(), geolocation=(self), microphone=(), payment=(), usb=()"

UPLOAD_CACHE_CONTROL = "public, max-age=86400, immutable"
API_CACHE_CONTROL = "no-store"


def security_headers_for(path: str, environment: str) -> dict[str, str]:
    """
    Headers to add to a response for ``path``.

    Args:
        path: Request path
        environment: Deployment environment name

    Returns:
        Header names and values
    """
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": PERMISSIONS_POLICY,
        "Content-Security-Policy": API_CONTENT_SECURITY_POLICY,
    }
    if environment == "production":
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    if path.startswith(settings.UPLOAD_URL_PREFIX.rstrip("/") + "/"):
        headers["Cache-Control"] = UPLOAD_CACHE_CONTROL
    else:
        headers["Cache-Control"] = API_CACHE_CONTROL
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds ``security_headers_for`` to every response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        for name, value in security_headers_for(
            request.url.path, settings.ENVIRONMENT
        ).items():
            if name == "Cache-Control" and name in response.headers:
                continue
            response.headers[name] = value
        return response
