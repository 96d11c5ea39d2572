# src/cloudmcp/infrastructure/middleware/basic_auth.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""HTTP Basic Authentication Middleware.

Summary:
    Guards the sensitive sidecar paths (``/metrics``, ``/provider/health``)
    with HTTP Basic credentials. Liveness (``/health``) and the index (``/``)
    stay public.

Design:
    * Username and password are both compared with ``hmac.compare_digest``
      and both comparisons always run, so timing does not reveal which
      part was wrong.
    * Failures return ``401`` with a ``WWW-Authenticate`` challenge and are
      logged without the submitted credentials.
"""

from __future__ import annotations

import base64
import binascii
import hmac
from collections.abc import Iterable
from typing import Final

from fastapi import Request
from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from cloudmcp.domain.exceptions import Unauthorized
from cloudmcp.infrastructure.http.errors import error_envelope
from cloudmcp.infrastructure.logging.logger import get_json_logger

__all__ = ["DEFAULT_PROTECTED_PATHS", "DEFAULT_REALM", "BasicAuthMiddleware"]

logger = get_json_logger(__name__)

DEFAULT_PROTECTED_PATHS: Final[tuple[str, ...]] = ("/metrics", "/provider/health")
DEFAULT_REALM: Final[str] = "CloudMCP Metrics"


def _parse_basic(header: str | None) -> tuple[str, str] | None:
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Require Basic credentials on protected paths.

    Args:
        app: ASGI application.
        username: Expected username.
        password: Expected password.
        protected_paths: Exact paths requiring credentials.
        realm: Realm advertised in the challenge.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        username: str,
        password: str,
        protected_paths: Iterable[str] = DEFAULT_PROTECTED_PATHS,
        realm: str = DEFAULT_REALM,
    ) -> None:
        super().__init__(app)
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")
        self._protected = frozenset(protected_paths)
        self._challenge = f'Basic realm="{realm}"'

    def _authorized(self, header: str | None) -> bool:
        credentials = _parse_basic(header)
        if credentials is None:
            return False
        user_ok = hmac.compare_digest(credentials[0].encode("utf-8"), self._username)
        pass_ok = hmac.compare_digest(credentials[1].encode("utf-8"), self._password)
        return user_ok & pass_ok

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Reject unauthenticated requests to protected paths."""
        if request.url.path not in self._protected:
            return await call_next(request)

        header = request.headers.get("authorization")
        if self._authorized(header):
            return await call_next(request)

        logger.warning(
            "sidecar_auth_failed",
            extra={
                "extra": {
                    "path": request.url.path,
                    "credentials_present": header is not None,
                    "client_ip": request.client.host if request.client else None,
                }
            },
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=error_envelope(
                code=Unauthorized.code,
                http_status=Unauthorized.http_status,
                message="Authentication required",
            ),
            headers={"WWW-Authenticate": self._challenge},
        )
