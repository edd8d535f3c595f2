"""
Security headers middleware.

WHY: The API serves survey answers and analytics over HTTP; browser-facing
security headers stop clients from sniffing, framing or caching them.
"""

from typing import Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


SECURITY_HEADERS: Dict[str, str] = {
    # HTTPS only for a year, subdomains included
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
}

# JSON only; nothing may be loaded or framed
API_CONTENT_SECURITY_POLICY = "default-src 'none'; frame-ancestors 'none'"

# Interactive docs load their assets from a CDN
DOCS_PATHS = ("/api/docs", "/api/redoc", "/api/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    API responses also get a strict CSP and no-store caching, since they
    carry respondent answers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value

        path = request.url.path
        if path.startswith(DOCS_PATHS):
            return response

        response.headers["Content-Security-Policy"] = API_CONTENT_SECURITY_POLICY
        if path.startswith("/api"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
            response.headers["Pragma"] = "no-cache"

        return response
