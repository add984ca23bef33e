"""
Hypertube API — Security Headers Middleware
============================================

What:  Adds X-Frame-Options: SAMEORIGIN and X-XSS-Protection: 1; mode=block
       to every response, whatever produced it.
How:   Registered outside the body parser and session layers, so their own
       fault responses get the headers too. The fallback 500 handler runs
       outside all middleware and applies SECURITY_HEADERS itself.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SECURITY_HEADERS = {
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "1; mode=block",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response
