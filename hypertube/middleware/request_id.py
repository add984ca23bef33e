"""
Hypertube API — Request ID Middleware
======================================

What:  Tags each request with a short correlation id and echoes it back.
How:   Takes the client's X-Request-ID when present, otherwise generates
       one. The id is stored in a ContextVar so loggers and fault responses
       can read it without access to the request.
When:  Outermost middleware, before anything logs.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns X-Request-ID (client-provided or an 8 character uuid prefix)."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
