"""
School Directory Backend — Request ID Middleware
==================================================

What:  Assigns a correlation ID to each request and echoes it in the response.
Why:   A failed upload touches the Blob Store and the database; the ID ties
       the storage and database log lines of one request together, and is
       returned in every error body so a user report can be matched to logs.

ID rules:
    - A client X-Request-ID is reused only if it is 1-64 characters of
      [A-Za-z0-9._-]; anything else (newlines, spaces, huge values) is
      replaced, since the ID is written verbatim into log lines.
    - Generated IDs are the first 8 hex characters of a uuid4.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(client_value: Optional[str]) -> str:
    """Return the client's ID if it is safe to log, otherwise a fresh one."""
    if client_value and _VALID_REQUEST_ID.match(client_value):
        return client_value
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request ID to the current context for the life of one request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = rid

        # Left set after the response: the catch-all 500 handler runs outside
        # this middleware and still reads it
        request_id_var.set(rid)
        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
