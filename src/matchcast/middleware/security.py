"""Security headers middleware.

Every HTTP response gets:
- X-Content-Type-Options: nosniff
- X-Frame-Options: DENY
- Referrer-Policy: strict-origin-when-cross-origin
- Strict-Transport-Security, only on HTTPS connections

API responses are JSON snapshots of live matches and commentary, so they
also get `Cache-Control: no-store` and a deny-everything CSP. A cached
match list would hide events a client already missed on the socket.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

API_PREFIX = "/api/"

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

API_HEADERS = {
    "Cache-Control": "no-store",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to HTTP responses; /ws handshakes pass through."""

    def __init__(self, app, api_prefix: str = API_PREFIX):
        super().__init__(app)
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(BASE_HEADERS)
        if request.url.path.startswith(self.api_prefix):
            for name, value in API_HEADERS.items():
                response.headers.setdefault(name, value)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response
