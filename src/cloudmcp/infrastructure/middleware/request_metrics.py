# src/cloudmcp/infrastructure/middleware/request_metrics.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Sidecar request latency middleware.

Every request that reaches the sidecar, rejected ones included, lands in the
``cloudmcp_http_request_seconds`` histogram under ``(method, handler, status)``.
The handler label is the route template; paths that match no route share the
``unmatched`` label so scanners cannot grow the series set.

Usage:
    app.add_middleware(RequestLatencyMiddleware, metrics=provider, clock=clock)
"""

from __future__ import annotations

from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cloudmcp.infrastructure.concurrency.cancellation import Clock, SystemClock
from cloudmcp.infrastructure.logging.logger import get_json_logger
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

__all__ = ["RequestLatencyMiddleware", "route_template", "UNMATCHED_ROUTE"]

logger = get_json_logger(__name__)

UNMATCHED_ROUTE = "unmatched"


def route_template(request: Request) -> str:
    """Return the matched route's path template, or ``unmatched``.

    Only meaningful once the router has run, i.e. after ``call_next`` returns.
    """
    route = request.scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    return template if isinstance(template, str) and template else UNMATCHED_ROUTE


class RequestLatencyMiddleware(BaseHTTPMiddleware):
    """Observe request latency into the sidecar histogram."""

    def __init__(
        self, app: Any, *, metrics: MetricsProvider, clock: Clock | None = None
    ) -> None:
        super().__init__(app)
        self._metrics = metrics
        self._clock = clock or SystemClock()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = self._clock.monotonic()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            elapsed = max(0.0, self._clock.monotonic() - started)
            try:
                self._metrics.record_http_request(
                    request.method.upper(), route_template(request), status, elapsed
                )
            except Exception:
                # A broken collector must not turn a served request into a 500.
                logger.debug("request_latency_unrecorded", exc_info=True)
