"""
TripShare Backend — Request ID Middleware
===========================================

What:  Assigns a correlation id to each request and echoes it in the response.
Why:   Ties together every log line of one request, including the toggle's
       retry warnings, and lets clients quote the id in bug reports.
How:   Uses the client's X-Request-ID when present, otherwise a short UUID.
       Stored in a ContextVar (per-coroutine) and on request.state.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ContextVar rather than threading.local: concurrent requests share a thread
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_MAX_CLIENT_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Sets request_id_var and the X-Request-ID response header."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")[:_MAX_CLIENT_ID_LENGTH]
        if not rid:
            rid = str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
