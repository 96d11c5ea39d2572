# src/cloudmcp/infrastructure/middleware/rate_limit.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Rate Limit Middleware (shared token bucket)

Summary:
    One token bucket per sidecar instance, shared by every client. A bucket
    with burst ``B`` admits exactly ``B`` back-to-back requests, then one
    more per ``1 / rate`` seconds. Rejected requests get ``429``.

Emitted headers:
    X-RateLimit-Limit, X-RateLimit-Remaining, Retry-After (on 429)
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass

from fastapi import Request
from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from cloudmcp.domain.exceptions import RateLimited
from cloudmcp.infrastructure.concurrency.cancellation import Clock, SystemClock
from cloudmcp.infrastructure.http.errors import error_envelope
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

__all__ = ["RateLimitMiddleware", "TokenBucket"]


@dataclass
class _BucketState:
    """Token bucket state."""

    tokens: float
    last: float


class TokenBucket:
    """Thread-safe token bucket.

    Args:
        rate_per_sec: Token refill rate per second (> 0).
        burst: Bucket capacity (>= 1); the bucket starts full.
        clock: Monotonic time source.
    """

    def __init__(self, rate_per_sec: float, burst: int, *, clock: Clock | None = None) -> None:
        if rate_per_sec <= 0:
            raise ValueError("rate_per_sec must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self.rate = float(rate_per_sec)
        self.capacity = float(burst)
        self._clock = clock or SystemClock()
        self._state = _BucketState(tokens=self.capacity, last=self._clock.monotonic())
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock.monotonic()
        delta = max(0.0, now - self._state.last)
        self._state.tokens = min(self.capacity, self._state.tokens + delta * self.rate)
        self._state.last = now

    def try_acquire(self) -> bool:
        """Consume one token if available."""
        with self._lock:
            self._refill()
            if self._state.tokens < 1.0:
                return False
            self._state.tokens -= 1.0
            return True

    @property
    def remaining(self) -> int:
        with self._lock:
            self._refill()
            return int(self._state.tokens)

    def retry_after(self) -> float:
        """Seconds until one token is available."""
        with self._lock:
            self._refill()
            return max(0.0, (1.0 - self._state.tokens) / self.rate)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests once the shared bucket is empty.

    Args:
        app: ASGI application.
        bucket: Shared bucket of this sidecar instance.
        metrics: Optional provider counting rejections.
    """

    def __init__(
        self, app: ASGIApp, *, bucket: TokenBucket, metrics: MetricsProvider | None = None
    ) -> None:
        super().__init__(app)
        self.bucket = bucket
        self._metrics = metrics

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Apply token-bucket limiting and annotate responses with standard headers."""
        limit = str(int(self.bucket.capacity))
        if not self.bucket.try_acquire():
            if self._metrics is not None:
                self._metrics.record_rate_limited()
            retry_after = max(1, math.ceil(self.bucket.retry_after()))
            limited = JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_envelope(
                    code=RateLimited.code,
                    http_status=RateLimited.http_status,
                    message="Rate limit exceeded",
                ),
            )
            limited.headers.update(
                {
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": limit,
                    "X-RateLimit-Remaining": "0",
                }
            )
            return limited

        response: Response = await call_next(request)
        response.headers.update(
            {"X-RateLimit-Limit": limit, "X-RateLimit-Remaining": str(self.bucket.remaining)}
        )
        return response
