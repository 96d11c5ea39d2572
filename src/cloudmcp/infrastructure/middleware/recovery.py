# src/cloudmcp/infrastructure/middleware/recovery.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Recovery Middleware.

Innermost middleware of the sidecar chain: any exception escaping a route
handler is logged and converted to a ``500`` error envelope, so the outer
middleware (rate limit, security headers, metrics) still sees a response.
"""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from cloudmcp.infrastructure.http.errors import handle_unhandled_exception
from cloudmcp.infrastructure.logging.logger import get_json_logger

__all__ = ["RecoveryMiddleware"]

logger = get_json_logger(__name__)


class RecoveryMiddleware(BaseHTTPMiddleware):
    """Trap handler exceptions and answer ``500``."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(
                "sidecar_handler_failed",
                extra={"extra": {"path": request.url.path, "method": request.method}},
            )
            return await handle_unhandled_exception(request, exc)
