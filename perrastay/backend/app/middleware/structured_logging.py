# backend/app/middleware/structured_logging.py
from __future__ import annotations

import json
import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .request_id import get_request_id

log = logging.getLogger("perrastay.request")


def _json_log(payload: dict) -> None:
    # one JSON line per request
    log.info(json.dumps(payload, default=str))


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one structured log line per request with:
      request_id, method, path, status_code, latency_ms

    Bodies and query strings are never logged; sign-in and reset requests
    carry passwords and tokens.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.time()

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = int((time.time() - t0) * 1000)

            _json_log(
                {
                    "event": "http_request",
                    "request_id": get_request_id(),
                    "method": request.method,
                    "path": _redact_path(request.url.path),
                    "status_code": status_code,
                    "latency_ms": latency_ms,
                }
            )


def _redact_path(path: str) -> str:
    # verification tokens travel in the path
    if path.startswith("/api/verify-email/"):
        return "/api/verify-email/<redacted>"
    return path
