# src/cloudmcp/infrastructure/middleware/access_log.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Sidecar access log.

One ``sidecar_access`` record per request. The level follows the outcome so a
scrape loop at debug level stays quiet while auth failures, throttling and
server errors surface at the default level:

    ======== ============================ ========
    outcome  status                       level
    ======== ============================ ========
    ok       < 400, other 4xx             DEBUG
    rejected 401, 403, 429                INFO
    error    >= 500 or unhandled          WARNING
    ======== ============================ ========

Headers, query strings and bodies are never logged; the Authorization header
in particular never reaches a log sink.
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cloudmcp.infrastructure.concurrency.cancellation import Clock, SystemClock
from cloudmcp.infrastructure.logging.logger import get_json_logger
from cloudmcp.infrastructure.middleware.request_metrics import route_template

__all__ = ["AccessLogMiddleware", "classify_status"]

_logger: logging.Logger = get_json_logger(__name__)

_REJECTED = frozenset({401, 403, 429})
_LEVELS = {"ok": logging.DEBUG, "rejected": logging.INFO, "error": logging.WARNING}


def classify_status(status: int) -> str:
    """Map an HTTP status to ``ok``, ``rejected`` or ``error``."""
    if status >= 500:
        return "error"
    if status in _REJECTED:
        return "rejected"
    return "ok"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log each sidecar request at a level chosen by its outcome."""

    def __init__(self, app: Any, *, clock: Clock | None = None) -> None:
        super().__init__(app)
        self._clock = clock or SystemClock()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = self._clock.monotonic()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            outcome = classify_status(status)
            _logger.log(
                _LEVELS[outcome],
                "sidecar_access",
                extra={
                    "extra": {
                        "method": request.method,
                        "path": request.url.path,
                        "route": route_template(request),
                        "status": status,
                        "outcome": outcome,
                        "elapsed_ms": round(
                            max(0.0, self._clock.monotonic() - started) * 1000.0, 2
                        ),
                        "client_ip": request.client.host if request.client else None,
                    }
                },
            )
