"""
Page gate middleware.
HTML pages require a valid session cookie; anonymous visitors are sent to
/login with a callbackUrl, and signed-in visitors skip the login page.
"""
import re
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

PUBLIC_PREFIXES = ("/api", "/health", "/docs", "/redoc", "/openapi.json", "/static")
ASSET_PATTERN = re.compile(r"\.(svg|png|jpg|jpeg|gif|webp|ico)$", re.IGNORECASE)
LOGIN_PATH = "/login"


def safe_callback_url(value: str) -> str:
    """Only same-site relative paths are accepted as redirect targets."""
    if value and value.startswith("/") and not value.startswith(("//", "/\\")):
        return value
    return "/"


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Redirect-based session gate for browser pages."""

    def __init__(self, app, session_resolver):
        super().__init__(app)
        # Callable(request) -> decoded session or None
        self.session_resolver = session_resolver

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        # APIs enforce auth themselves; assets are public
        if path.startswith(PUBLIC_PREFIXES) or ASSET_PATTERN.search(path):
            return await call_next(request)

        signed_in = self.session_resolver(request) is not None

        if path == LOGIN_PATH:
            if signed_in:
                target = safe_callback_url(request.query_params.get("callbackUrl", "/"))
                return RedirectResponse(target, status_code=307)
            return await call_next(request)

        if not signed_in:
            callback = path + (f"?{request.url.query}" if request.url.query else "")
            return RedirectResponse(
                f"{LOGIN_PATH}?callbackUrl={quote(callback, safe='')}",
                status_code=307,
            )

        return await call_next(request)
