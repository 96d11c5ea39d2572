# src/cloudmcp/infrastructure/middleware/security_headers.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""
Security Headers Middleware

Summary:
    Sits outside the rate limiter and Basic auth, so the fixed header set
    lands on every response including their 401 and 429 rejections.

Headers set:
    X-Content-Type-Options: nosniff
    X-Frame-Options: DENY
    Referrer-Policy: strict-origin-when-cross-origin
    Content-Security-Policy: default-src 'self'

Optional:
    Strict-Transport-Security, only when the listener serves TLS.
"""

from __future__ import annotations

from typing import Final

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

__all__ = ["HSTS_MAX_AGE", "SecurityHeadersMiddleware"]

HSTS_MAX_AGE: Final[int] = 31_536_000


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every response.

    Args:
        app: The ASGI application.
        tls_enabled: Also set ``Strict-Transport-Security``.
        hsts_max_age: HSTS max-age in seconds.
        hsts_include_subdomains: Add ``; includeSubDomains`` to HSTS.

    The middleware uses ``setdefault`` so route-specific headers can override.
    """

    _BASE_HEADERS: Final[dict[str, str]] = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": "default-src 'self'",
    }

    def __init__(
        self,
        app: ASGIApp,
        *,
        tls_enabled: bool = False,
        hsts_max_age: int = HSTS_MAX_AGE,
        hsts_include_subdomains: bool = True,
    ) -> None:
        super().__init__(app)
        self._hsts: str | None = None
        if tls_enabled and hsts_max_age > 0:
            parts = [f"max-age={int(hsts_max_age)}"]
            if hsts_include_subdomains:
                parts.append("includeSubDomains")
            self._hsts = "; ".join(parts)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Add headers after the downstream handler produces a response."""
        response: Response = await call_next(request)

        for key, value in self._BASE_HEADERS.items():
            response.headers.setdefault(key, value)

        if self._hsts is not None:
            response.headers.setdefault("Strict-Transport-Security", self._hsts)

        return response
