"""
School Directory Backend — Request Logging Middleware
=======================================================

What:  One access log line per HTTP request.

Line format:
    <METHOD> <path>[?id=<n>] <status> <ms>ms [<request id>] in=<bytes> from <ip>

    - `id` is the only query parameter echoed (the school being touched);
      `imagePath` and form bodies are never logged
    - `in` is the request Content-Length, i.e. the upload size for POST/PUT
    - image file fetches (GET /schoolImages/...) log at DEBUG, /health not at all
    - a request that raises out of the app is logged as 500 and re-raised
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from school_directory.config import settings
from school_directory.middleware.request_id import request_id_var

logger = logging.getLogger("school_directory.access")

_SILENT_PATHS = {"/health"}


def _status_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _describe_target(request: Request) -> str:
    school_id: Optional[str] = request.query_params.get("id")
    path = request.url.path
    return f"{path}?id={school_id}" if school_id else path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, target, status, duration and upload size of each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _SILENT_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            level = _status_level(status)
            if path.startswith(settings.image_url_prefix + "/") and level == logging.INFO:
                level = logging.DEBUG
            self._log(request, status, (time.perf_counter() - started) * 1000, level)

    @staticmethod
    def _log(request: Request, status: int, duration_ms: float, level: int) -> None:
        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        size_in = request.headers.get("content-length", "0")

        logger.log(
            level,
            "%s %s %d %.1fms [%s] in=%s from %s",
            request.method,
            _describe_target(request),
            status,
            duration_ms,
            rid,
            size_in,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "bytes_in": size_in,
                "client_ip": client_ip,
            },
        )
